"""Shared plumbing for outbound service calls.

Each integration declares whether it is usable (is_configured) and,
if its calls are safe to repeat, a RetryPolicy naming the errors
worth another attempt. The contact store never retries on its own.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, TypeVar

from cadenceiq.core.exceptions import IntegrationError
from cadenceiq.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How one integration call is repeated.

    Attributes:
        retries: Extra attempts after the first one
        delay: Seconds before the first retry; doubles after each retry
        retry_on: Error types that earn another attempt; others propagate at once
    """

    retries: int = 2
    delay: float = 1.0
    retry_on: tuple[type[BaseException], ...] = ()

    @property
    def attempts(self) -> int:
        return self.retries + 1

    def backoff(self) -> list[float]:
        """Sleep before each retry, in order."""
        return [self.delay * 2**n for n in range(self.retries)]


class IntegrationBase(ABC):
    """Outbound service client.

    Attributes:
        service: Name used in logs and error messages
    """

    service = "integration"

    @abstractmethod
    def is_configured(self) -> bool:
        """True when the credentials this service needs are present."""
        pass

    def with_retry(self, call: Callable[[], T], policy: RetryPolicy) -> T:
        """Run call, repeating it on the policy's transient errors.

        Raises:
            IntegrationError: If every attempt failed with a transient error
        """
        for attempt, pause in enumerate(policy.backoff(), start=1):
            try:
                return call()
            except policy.retry_on as e:
                logger.warning(
                    f"{self.service} attempt {attempt}/{policy.attempts} failed, "
                    f"retrying in {pause}s",
                    extra={"context": {"service": self.service, "error": str(e)}},
                )
                time.sleep(pause)

        try:
            return call()
        except policy.retry_on as e:
            raise IntegrationError(
                f"{self.service} failed after {policy.attempts} attempts: {e}"
            ) from e
