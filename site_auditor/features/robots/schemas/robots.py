from typing import List, Literal

from pydantic import BaseModel, Field


class RobotsTxtRule(BaseModel):
    userAgent: str = "*"
    type: Literal["Allow", "Disallow"]
    path: str = ""


class RobotsTxtAnalysis(BaseModel):
    rules: List[RobotsTxtRule] = Field(default_factory=list)
    sitemaps: List[str] = Field(default_factory=list)
