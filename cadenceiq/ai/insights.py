"""Social profile insights for a contact.

The contact store treats insight fetching as an opaque collaborator:
it hands over the contact's social URLs and stores whatever profile
comes back. ClaudeInsightSource is the production implementation.

Gating rule: at least one of company LinkedIn, contact LinkedIn or
Facebook must be present. The LinkedIn URL sent is the contact's,
falling back to the company's.

Usage:
    from cadenceiq.ai.insights import ClaudeInsightSource

    source = ClaudeInsightSource()
    store.request_insights(contact_id, source)
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import anthropic
import jinja2

from cadenceiq.ai.claude_client import ClaudeClientMixin
from cadenceiq.core.config import CLAUDE_MODEL, Config, get_config
from cadenceiq.core.exceptions import (
    ConfigurationError,
    ExternalFetchFailure,
    IntegrationError,
    ValidationError,
)
from cadenceiq.core.logging import get_logger
from cadenceiq.db.models import Contact, SocialProfile
from cadenceiq.integrations.base import IntegrationBase, RetryPolicy

logger = get_logger(__name__)

COMPANY_INFO_KEYS = ("founded", "milestones", "awards", "recentNews", "offerings", "culture")
PERSONAL_INFO_KEYS = (
    "career",
    "education",
    "interests",
    "publications",
    "causes",
    "recentActivity",
    "achievements",
)

# Errors worth another attempt; anything else (auth, bad request) fails fast
_TRANSIENT_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)

_PROMPT_TEMPLATE = """\
You are a research assistant preparing a salesperson for cold outreach.
Using what is publicly known about the profiles below, summarize the company
and the person.
{% if urls.linkedin %}
LinkedIn: {{ urls.linkedin }}
{% endif %}{% if urls.facebook %}
Facebook: {{ urls.facebook }}
{% endif %}
Respond with a single JSON object and nothing else, shaped like:
{
  "companyInfo": {
{% for key in company_keys %}    "{{ key }}": {{ '""' if key == "founded" else "[]" }}{{ "," if not loop.last }}
{% endfor %}  },
  "personalInfo": {
{% for key in personal_keys %}    "{{ key }}": []{{ "," if not loop.last }}
{% endfor %}  }
}
Use short factual strings. Use null for a section you know nothing about.
"""

_env = jinja2.Environment(undefined=jinja2.StrictUndefined, keep_trailing_newline=True)
_prompt = _env.from_string(_PROMPT_TEMPLATE)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


@dataclass
class SocialUrls:
    """URLs sent to the insight source."""

    linkedin: Optional[str] = None
    facebook: Optional[str] = None


def social_urls_for(contact: Contact) -> SocialUrls:
    """Pick the URLs to research for a contact.

    Raises:
        ValidationError: If the contact has no LinkedIn or Facebook link at all
    """
    if not contact.has_social_links:
        raise ValidationError(
            "No social profiles available for analysis. "
            "Add at least one LinkedIn or Facebook link."
        )
    linkedin = contact.contact_linkedin.strip() or contact.company_linkedin.strip()
    facebook = contact.contact_facebook.strip()
    return SocialUrls(linkedin=linkedin or None, facebook=facebook or None)


class InsightSource(ABC):
    """Insight-fetch collaborator."""

    @abstractmethod
    def fetch_insights(self, urls: SocialUrls) -> SocialProfile:
        """Return a populated profile for these URLs.

        Raises:
            ExternalFetchFailure: With the original cause message
        """
        pass


def render_prompt(urls: SocialUrls) -> str:
    """Build the insight request prompt."""
    return _prompt.render(
        urls=urls,
        company_keys=COMPANY_INFO_KEYS,
        personal_keys=PERSONAL_INFO_KEYS,
    )


def _section(data: dict[str, Any], key: str) -> Optional[dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ExternalFetchFailure(f"Insight section {key!r} is not an object")
    return value


def parse_profile(text: str, fetched_at: datetime) -> SocialProfile:
    """Parse Claude's JSON answer into a SocialProfile.

    Code fences around the JSON are tolerated.

    Raises:
        ExternalFetchFailure: If the answer is not a JSON object with insights
    """
    match = _FENCE_RE.search(text)
    payload = match.group(1) if match else text

    try:
        data = json.loads(payload.strip())
    except json.JSONDecodeError as e:
        raise ExternalFetchFailure(f"Insight response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ExternalFetchFailure("Insight response is not a JSON object")

    company_info = _section(data, "companyInfo")
    personal_info = _section(data, "personalInfo")
    if company_info is None and personal_info is None:
        raise ExternalFetchFailure("Insight response contained no company or personal info")

    return SocialProfile(
        company_info=company_info,
        personal_info=personal_info,
        last_updated=fetched_at,
    )


class ClaudeInsightSource(ClaudeClientMixin, IntegrationBase, InsightSource):
    """Insight source backed by the Claude messages API.

    Transient API errors are retried with exponential backoff. Every
    failure, including a missing API key, surfaces as ExternalFetchFailure.
    """

    service = "Claude insights"

    def __init__(
        self,
        config: Optional[Config] = None,
        client: Optional[Any] = None,
        retries: int = 2,
        retry_delay: float = 1.0,
    ) -> None:
        """Initialize insight source.

        Args:
            config: App config (defaults to the global config)
            client: Prebuilt Anthropic client (tests)
            retries: Extra attempts for transient API errors
            retry_delay: Initial backoff in seconds
        """
        self._config = config or get_config()
        self._client = client
        self._policy = RetryPolicy(retries, retry_delay, _TRANSIENT_ERRORS)

    def _get_claude_config(self):
        return self._config

    def is_configured(self) -> bool:
        return self._client is not None or self.is_available()

    def _call_api(self, prompt: str) -> str:
        client = self._get_client()
        response = client.messages.create(
            model=CLAUDE_MODEL,
            max_tokens=1500,
            messages=[{"role": "user", "content": prompt}],
        )
        self._log_usage(
            "insights",
            CLAUDE_MODEL,
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        blocks = response.content or []
        text = getattr(blocks[0], "text", None) if blocks else None
        if not text:
            raise ExternalFetchFailure("Claude returned an empty response")
        return str(text)

    def fetch_insights(self, urls: SocialUrls) -> SocialProfile:
        prompt = render_prompt(urls)

        try:
            text = self.with_retry(lambda: self._call_api(prompt), self._policy)
        except ExternalFetchFailure:
            raise
        except (ConfigurationError, IntegrationError) as e:
            raise ExternalFetchFailure(str(e)) from e
        except anthropic.APIError as e:
            raise ExternalFetchFailure(f"Claude API error: {e}") from e

        profile = parse_profile(text, datetime.now())
        logger.info(
            "Insights fetched",
            extra={"context": {"linkedin": bool(urls.linkedin), "facebook": bool(urls.facebook)}},
        )
        return profile
