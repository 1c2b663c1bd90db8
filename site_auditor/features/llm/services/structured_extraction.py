import json
from typing import Any, Dict, Iterable, Optional

from site_auditor.features.llm.schemas.agent import PromptParts
from site_auditor.features.llm.services.base import ModelBackend
from site_auditor.features.llm.utils.json_extractor import extract_json_span, unwrap_single_key_list
from site_auditor.platform.exceptions import MalformedResponseError
from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)


async def request_structured_json(
    backend: ModelBackend,
    prompt: PromptParts,
    model: str,
    *,
    max_output_tokens: Optional[int] = None,
) -> Any:
    """
    Run one completion and return the JSON value found in its text.

    Raises:
        ModelBackendError: provider-side failure (propagated from the backend)
        MalformedResponseError: no JSON span, or the span does not decode
    """
    raw_text = await backend.complete(prompt, model, max_output_tokens=max_output_tokens)

    json_text = extract_json_span(raw_text)
    if not json_text:
        raise MalformedResponseError("AI returned a response without valid JSON content.")

    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.debug(f"Raw response: {raw_text[:500]}")
        raise MalformedResponseError(f"Failed to parse AI JSON response: {e}")

    return unwrap_single_key_list(parsed)


async def request_structured_object(
    backend: ModelBackend,
    prompt: PromptParts,
    model: str,
    required_keys: Iterable[str],
    *,
    shape_name: str = "expected",
) -> Dict[str, Any]:
    """
    Like request_structured_json, but the answer must be one JSON object
    whose every key in `required_keys` holds a JSON array.
    """
    parsed = await request_structured_json(backend, prompt, model)
    if not isinstance(parsed, dict) or any(not isinstance(parsed.get(key), list) for key in required_keys):
        raise MalformedResponseError(f"Parsed data does not match the {shape_name} structure.")
    return parsed
