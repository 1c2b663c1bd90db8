from typing import Callable, Dict, Optional, Union

from site_auditor.features.llm.schemas.agent import Provider
from site_auditor.features.llm.services.base import ModelBackend
from site_auditor.features.llm.services.gemini_backend import GeminiBackend
from site_auditor.features.llm.services.openai_backend import OpenAICompatibleBackend
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import ConfigurationError

BackendFactory = Callable[..., ModelBackend]

_BACKENDS: Dict[Provider, Callable[[str], ModelBackend]] = {
    Provider.GEMINI: lambda api_key: GeminiBackend(api_key),
    Provider.OPENAI: lambda api_key: OpenAICompatibleBackend(api_key, provider=Provider.OPENAI),
    Provider.OPENROUTER: lambda api_key: OpenAICompatibleBackend(api_key, provider=Provider.OPENROUTER),
}

_DEFAULT_KEYS = {
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.OPENROUTER: "OPENROUTER_API_KEY",
}


def _as_provider(provider: Union[Provider, str]) -> Provider:
    try:
        return Provider(provider)
    except ValueError:
        raise ConfigurationError(f"Unknown model provider: {provider}")


def resolve_api_key(provider: Union[Provider, str], api_key: Optional[str] = None) -> str:
    """
    Pick the credential for a run: the caller's own key first, then the
    shared default configured for the provider.
    """
    provider = _as_provider(provider)
    key = (api_key or "").strip() or (getattr(settings, _DEFAULT_KEYS[provider]) or "").strip()
    if not key:
        raise ConfigurationError(
            f"No personal or default API key found for {provider.display_name}. "
            f"Provide an API key or configure {_DEFAULT_KEYS[provider]}."
        )
    return key


def get_backend(provider: Union[Provider, str], api_key: str) -> ModelBackend:
    provider = _as_provider(provider)
    if not api_key:
        raise ConfigurationError(f"{provider.display_name} API key is required.")
    return _BACKENDS[provider](api_key)
