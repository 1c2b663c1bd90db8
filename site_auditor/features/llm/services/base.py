from abc import ABC, abstractmethod
from typing import Optional

from site_auditor.features.llm.schemas.agent import PromptParts, Provider


class ModelBackend(ABC):
    """
    One language-model provider behind a single completion call.

    Variants differ only in transport, auth and response envelope; each one
    owns its envelope handling and raises ModelBackendError for provider-side
    failures (non-2xx, embedded error bodies, blocked prompts).
    """

    provider: Provider

    def __init__(self, api_key: str):
        self.api_key = api_key

    @abstractmethod
    async def complete(
        self,
        prompt: PromptParts,
        model: str,
        *,
        max_output_tokens: Optional[int] = None,
        json_response: bool = True,
    ) -> str:
        """Return the raw text of the model's answer."""

    async def aclose(self) -> None:
        return None
