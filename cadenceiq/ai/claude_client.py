"""Shared Claude API client mixin.

Lazy client construction plus the is_available() gate, so callers
never build an Anthropic client they cannot use.
"""

from typing import Any, Optional

import anthropic

from cadenceiq.core.config import get_config
from cadenceiq.core.exceptions import ConfigurationError
from cadenceiq.core.logging import get_logger

logger = get_logger(__name__)


class ClaudeClientMixin:
    """Mixin providing lazy Anthropic client initialization.

    Classes using this mixin should set ``self._client = None`` in their
    own ``__init__`` (or pass a prebuilt client for tests).
    """

    _client: Optional[Any] = None

    def _get_claude_config(self):
        """Return the app config (override if config is stored differently)."""
        return get_config()

    def is_available(self) -> bool:
        """Check if the Claude API key is configured."""
        return bool(self._get_claude_config().claude_api_key)

    def _get_client(self) -> Any:
        """Get or create the Anthropic client (lazy singleton).

        Raises:
            ConfigurationError: If CLAUDE_API_KEY is not set
        """
        if self._client is None:
            config = self._get_claude_config()
            if not config.claude_api_key:
                raise ConfigurationError("CLAUDE_API_KEY not configured")
            self._client = anthropic.Anthropic(api_key=config.claude_api_key)
        return self._client

    def _log_usage(self, caller: str, model: str, input_tokens: int, output_tokens: int) -> None:
        """Record token usage for one API call in the log."""
        logger.info(
            "Claude call",
            extra={
                "context": {
                    "caller": caller,
                    "model": model,
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                }
            },
        )
