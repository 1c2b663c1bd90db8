from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from site_auditor.features.llm.schemas.agent import PromptParts, Provider
from site_auditor.features.llm.services.base import ModelBackend
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import MalformedResponseError, ModelBackendError
from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)


class OpenAICompatibleBackend(ModelBackend):
    """
    Chat-completions backend shared by OpenAI and OpenRouter.

    OpenRouter is the same wire protocol on another base URL, plus the
    attribution headers it asks clients to send.
    """

    def __init__(
        self,
        api_key: str,
        provider: Provider = Provider.OPENAI,
        client: Optional[AsyncOpenAI] = None,
    ):
        if provider not in (Provider.OPENAI, Provider.OPENROUTER):
            raise ValueError(f"{provider} is not an OpenAI-compatible provider")
        super().__init__(api_key)
        self.provider = provider
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if self.provider == Provider.OPENROUTER:
                self._client = AsyncOpenAI(
                    base_url=settings.OPENROUTER_BASE_URL,
                    api_key=self.api_key,
                    timeout=settings.MODEL_REQUEST_TIMEOUT_SECONDS,
                    default_headers={
                        "HTTP-Referer": settings.OPENROUTER_REFERER,
                        "X-Title": settings.APP_NAME,
                    },
                )
            else:
                self._client = AsyncOpenAI(
                    base_url=settings.OPENAI_BASE_URL,
                    api_key=self.api_key,
                    timeout=settings.MODEL_REQUEST_TIMEOUT_SECONDS,
                )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    @staticmethod
    def _build_messages(prompt: PromptParts) -> List[Dict[str, str]]:
        messages = []
        if prompt.system:
            messages.append({"role": "system", "content": prompt.system})
        messages.append({"role": "user", "content": prompt.user})
        return messages

    async def complete(
        self,
        prompt: PromptParts,
        model: str,
        *,
        max_output_tokens: Optional[int] = None,
        json_response: bool = True,
    ) -> str:
        name = self.provider.display_name
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(prompt),
        }
        if json_response:
            kwargs["response_format"] = {"type": "json_object"}
        if max_output_tokens:
            kwargs["max_tokens"] = max_output_tokens

        try:
            completion = await self._get_client().chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            message = e.message
            if isinstance(e.body, dict):
                error = e.body.get("error", e.body)
                if isinstance(error, dict):
                    message = error.get("message") or message
            raise ModelBackendError(
                f"{name} API Error ({e.status_code}): {message}",
                provider=self.provider.value,
                status_code=e.status_code,
            )
        except openai.APIError as e:
            raise ModelBackendError(f"{name} request failed: {e}", provider=self.provider.value)

        # OpenRouter can answer 200 with {"error": {...}} instead of choices
        extra = getattr(completion, "model_extra", None) or {}
        if extra.get("error"):
            error = extra["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise ModelBackendError(
                f"{name} API Error: {message}",
                provider=self.provider.value,
                status_code=code if isinstance(code, int) else None,
            )

        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise MalformedResponseError(f"{name} returned no choices")

        content = choices[0].message.content if choices[0].message else None
        if not content:
            raise MalformedResponseError(f"{name} returned an empty message")

        logger.debug(f"{name} ({model}) returned {len(content)} chars")
        return content
