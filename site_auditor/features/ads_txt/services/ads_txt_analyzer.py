from typing import Any, Dict, Optional

from site_auditor.features.ads_txt.schemas.ads_txt import AdsTxtAnalysis, AdsTxtRecord
from site_auditor.features.fetching.services.fetch_service import FetchService
from site_auditor.features.llm.schemas.agent import AIAgent, PromptParts
from site_auditor.features.llm.services.backend_factory import BackendFactory, get_backend
from site_auditor.features.llm.services.structured_extraction import request_structured_object
from site_auditor.platform.exceptions import ConfigurationError, TransportError, classify_model_error
from site_auditor.platform.logger import get_logger
from site_auditor.platform.utils.url_validator import site_origin

logger = get_logger(__name__)

KNOWN_RELATIONSHIPS = ("DIRECT", "RESELLER")


class AdsTxtAnalyzer:
    """Model-backed structuring of a site's ads.txt (IAB authorized sellers)."""

    def __init__(self, fetcher: FetchService, backend_factory: Optional[BackendFactory] = None):
        self.fetcher = fetcher
        self.backend_factory = backend_factory or get_backend

    @staticmethod
    def _build_prompt(agent: AIAgent, content: str) -> PromptParts:
        user = f"""**Task**: You are an expert in digital advertising standards. Parse the provided ads.txt file content and structure the data as JSON.

**ads.txt Content:**
```
{content}
```

**Methodology:**
1.  **Analyze Each Line**: Read the file line by line. Ignore empty lines and lines starting with '#'.
2.  **Extract Data**: For each valid data line, parse it into four fields:
    *   `domain`: The domain name of the advertising system.
    *   `publisherId`: The publisher's account ID.
    *   `relationship`: The type of relationship ('DIRECT' or 'RESELLER').
    *   `tagId`: (Optional) The certification authority ID.
3.  **Handle Malformed Lines**: Any line that is not a comment and does not conform to the expected format should be collected.
4.  **Structure the Data**: Organize the extracted data into the specified JSON format.

**Format the Final Response**: Return ONLY a valid JSON object with two top-level keys: "records" and "malformedLines".
*   `records`: An array of objects, each with "domain", "publisherId", "relationship", and an optional "tagId".
*   `malformedLines`: An array of strings, containing any lines that could not be parsed.

**CRITICAL RULES:**
*   If the content is empty or contains no valid records, return `{{"records": [], "malformedLines": []}}`."""
        return PromptParts(
            system=f"{agent.system_prompt}\n\nYou are an expert in advertising standards designed to output JSON.",
            user=user,
        )

    @staticmethod
    def _to_analysis(parsed: Dict[str, Any]) -> AdsTxtAnalysis:
        records = []
        for record in parsed.get("records") or []:
            if not isinstance(record, dict) or not record.get("domain") or not record.get("publisherId"):
                continue
            relationship = str(record.get("relationship") or "").strip()
            if relationship.upper() in KNOWN_RELATIONSHIPS:
                relationship = relationship.upper()
            tag_id = record.get("tagId")
            records.append(AdsTxtRecord(
                domain=str(record["domain"]).strip(),
                publisherId=str(record["publisherId"]).strip(),
                relationship=relationship,
                tagId=str(tag_id).strip() if tag_id else None,
            ))
        malformed = [str(line) for line in parsed.get("malformedLines") or [] if line is not None]
        return AdsTxtAnalysis(records=records, malformedLines=malformed)

    async def analyze_ads_txt(self, url: str, agent: AIAgent, api_key: str) -> AdsTxtAnalysis:
        """
        An absent ads.txt is not an error: fetch failure yields an empty analysis.

        Raises:
            ConfigurationError: no credential
            RateLimitError, ModelBackendError, MalformedResponseError: model step failed
        """
        if not api_key:
            raise ConfigurationError(f"{agent.provider.display_name} API key is required.")

        ads_url = f"{site_origin(url)}/ads.txt"
        try:
            content = await self.fetcher.fetch_resource(ads_url)
        except TransportError as e:
            logger.info(f"No ads.txt available at {ads_url}: {e}")
            return AdsTxtAnalysis()

        backend = self.backend_factory(agent.provider, api_key)
        try:
            parsed = await request_structured_object(
                backend,
                self._build_prompt(agent, content),
                agent.model,
                ("records", "malformedLines"),
                shape_name="AdsTxtAnalysis",
            )
        except Exception as e:
            logger.error(f"Failed to parse {agent.provider.value} response for ads.txt: {e}")
            raise classify_model_error(e, agent.provider.value) from e
        finally:
            await backend.aclose()

        return self._to_analysis(parsed)
