from typing import Any, Dict, List, Optional

from site_auditor.features.fetching.services.fetch_service import FetchService
from site_auditor.features.llm.schemas.agent import AIAgent, PromptParts
from site_auditor.features.llm.services.backend_factory import BackendFactory, get_backend
from site_auditor.features.llm.services.structured_extraction import request_structured_object
from site_auditor.features.robots.schemas.robots import RobotsTxtAnalysis, RobotsTxtRule
from site_auditor.platform.exceptions import ConfigurationError, TransportError, classify_model_error
from site_auditor.platform.logger import get_logger
from site_auditor.platform.utils.url_validator import site_origin

logger = get_logger(__name__)

RULE_TYPES = {"allow": "Allow", "disallow": "Disallow"}


class RobotsTxtAnalyzer:
    """Model-backed structuring of a site's robots.txt."""

    def __init__(self, fetcher: FetchService, backend_factory: Optional[BackendFactory] = None):
        self.fetcher = fetcher
        self.backend_factory = backend_factory or get_backend

    @staticmethod
    def _build_prompt(agent: AIAgent, content: str) -> PromptParts:
        user = f"""**Task**: Parse the provided robots.txt content and structure it as JSON.
**robots.txt Content:** ```
{content}
```
**Methodology**:
1.  Parse all directives: User-agent sections, 'Allow'/'Disallow' rules, and 'Sitemap' URLs.
2.  Structure the data into the specified JSON format.
**Format**: Return ONLY a valid JSON object with two keys: "rules" (an array of objects with "userAgent", "type", "path") and "sitemaps" (an array of strings).
**CRITICAL**: If content is empty, return `{{"rules": [], "sitemaps": []}}`."""
        return PromptParts(
            system=f"{agent.system_prompt}\n\nYou are a technical SEO expert designed to output JSON.",
            user=user,
        )

    @staticmethod
    def _to_analysis(parsed: Dict[str, Any]) -> RobotsTxtAnalysis:
        rules: List[RobotsTxtRule] = []
        for rule in parsed.get("rules") or []:
            if not isinstance(rule, dict):
                continue
            rule_type = RULE_TYPES.get(str(rule.get("type", "")).strip().lower())
            if rule_type is None:
                continue
            rules.append(RobotsTxtRule(
                userAgent=str(rule.get("userAgent") or "*"),
                type=rule_type,
                path=str(rule.get("path") or ""),
            ))
        sitemaps = [str(s) for s in parsed.get("sitemaps") or [] if s]
        return RobotsTxtAnalysis(rules=rules, sitemaps=sitemaps)

    async def analyze_robots_txt(self, url: str, agent: AIAgent, api_key: str) -> RobotsTxtAnalysis:
        """
        A missing or unreachable robots.txt is a normal state and yields an
        empty analysis.

        Raises:
            ConfigurationError: no credential
            RateLimitError, ModelBackendError, MalformedResponseError: model step failed
        """
        if not api_key:
            raise ConfigurationError(f"{agent.provider.display_name} API key is required.")

        robots_url = f"{site_origin(url)}/robots.txt"
        try:
            content = await self.fetcher.fetch_resource(robots_url)
        except TransportError as e:
            logger.info(f"No robots.txt available at {robots_url}: {e}")
            return RobotsTxtAnalysis()

        backend = self.backend_factory(agent.provider, api_key)
        try:
            parsed = await request_structured_object(
                backend,
                self._build_prompt(agent, content),
                agent.model,
                ("rules", "sitemaps"),
                shape_name="RobotsTxtAnalysis",
            )
        except Exception as e:
            logger.error(f"Failed to parse {agent.provider.value} response for robots.txt: {e}")
            raise classify_model_error(e, agent.provider.value) from e
        finally:
            await backend.aclose()

        return self._to_analysis(parsed)
