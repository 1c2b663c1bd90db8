from typing import List, Optional

from pydantic import BaseModel, Field


class AdsTxtRecord(BaseModel):
    domain: str
    publisherId: str
    relationship: str  # DIRECT, RESELLER, or whatever the file declares
    tagId: Optional[str] = None


class AdsTxtAnalysis(BaseModel):
    records: List[AdsTxtRecord] = Field(default_factory=list)
    malformedLines: List[str] = Field(default_factory=list)
