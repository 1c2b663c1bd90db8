import json
from typing import Any, Dict, Optional

import httpx

from site_auditor.features.llm.schemas.agent import PromptParts, Provider
from site_auditor.features.llm.services.base import ModelBackend
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import ModelBackendError
from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)


class GeminiBackend(ModelBackend):
    """Google Gemini over the public generateContent REST endpoint."""

    provider = Provider.GEMINI

    def __init__(
        self,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
    ):
        super().__init__(api_key)
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.MODEL_REQUEST_TIMEOUT_SECONDS)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _build_payload(
        prompt: PromptParts,
        max_output_tokens: Optional[int],
        json_response: bool,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt.user}]}],
        }
        if prompt.system:
            payload["systemInstruction"] = {"parts": [{"text": prompt.system}]}

        generation_config: Dict[str, Any] = {}
        if max_output_tokens:
            generation_config["maxOutputTokens"] = max_output_tokens
        if json_response:
            generation_config["responseMimeType"] = "application/json"
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    @staticmethod
    def _error_message(body: Any, fallback: str) -> str:
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return body["error"].get("message") or body["error"].get("status") or fallback
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return fallback

    async def complete(
        self,
        prompt: PromptParts,
        model: str,
        *,
        max_output_tokens: Optional[int] = None,
        json_response: bool = True,
    ) -> str:
        url = f"{self.base_url}/models/{model}:generateContent"
        payload = self._build_payload(prompt, max_output_tokens, json_response)

        try:
            response = await self._get_client().post(
                url,
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )
        except httpx.HTTPError as e:
            raise ModelBackendError(f"Gemini request failed: {e}", provider=self.provider.value)

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = self._error_message(body, response.text or f"HTTP {response.status_code}")
            raise ModelBackendError(
                f"Gemini API Error ({response.status_code}): {message}",
                provider=self.provider.value,
                status_code=response.status_code,
            )

        if not isinstance(body, dict):
            raise ModelBackendError("Gemini returned a non-JSON response body", provider=self.provider.value)

        # 200 with an error envelope
        if body.get("error"):
            raise ModelBackendError(
                f"Gemini API Error: {self._error_message(body, 'unknown error')}",
                provider=self.provider.value,
            )

        block_reason = (body.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise ModelBackendError(f"Gemini blocked the prompt: {block_reason}", provider=self.provider.value)

        candidates = body.get("candidates") or []
        if not candidates:
            raise ModelBackendError("Gemini returned no candidates", provider=self.provider.value)

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))

        if not text and candidate.get("finishReason") == "SAFETY":
            raise ModelBackendError("Gemini blocked the response for safety reasons", provider=self.provider.value)

        if text.strip().startswith('{"error"'):
            try:
                embedded = json.loads(text)
            except json.JSONDecodeError:
                embedded = None
            if isinstance(embedded, dict) and embedded.get("error"):
                raise ModelBackendError(
                    f"Gemini API Error: {self._error_message(embedded, 'unknown error')}",
                    provider=self.provider.value,
                )

        logger.debug(f"Gemini ({model}) returned {len(text)} chars")
        return text
