from enum import Enum

from pydantic import BaseModel


class Provider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    OPENROUTER = "openrouter"

    @property
    def display_name(self) -> str:
        return {
            Provider.GEMINI: "Gemini",
            Provider.OPENAI: "OpenAI",
            Provider.OPENROUTER: "OpenRouter",
        }[self]


class AIAgent(BaseModel):
    """Model configuration chosen by the user for an audit run."""
    name: str = "Default Agent"
    provider: Provider
    model: str
    system_prompt: str = "You are an expert technical SEO auditor."

    class Config:
        json_schema_extra = {
            "example": {
                "name": "SEO Analyst",
                "provider": "gemini",
                "model": "gemini-2.5-flash",
                "system_prompt": "You are an expert technical SEO auditor."
            }
        }


class PromptParts(BaseModel):
    """System and user text sent to a backend in one completion call."""
    system: str = ""
    user: str

