"""Retry-with-backoff policy for calls into external capabilities."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from lexiclear.core.exceptions import CapabilityError, CapabilityUnavailableError

if TYPE_CHECKING:
    from lexiclear.core.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff applied uniformly to capability calls.

    Only :class:`CapabilityError` instances flagged ``retryable`` are retried.
    Any other exception propagates untouched; capability errors that are not
    retryable, or that persist past ``max_attempts``, are re-raised as
    :class:`CapabilityUnavailableError`.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        base_delay: Delay in seconds before the second attempt.
        max_delay: Upper bound for a single delay.
        jitter: Fraction of the delay added at random (0 disables jitter).
        sleep: Sleep function, replaceable in tests.
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.1
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got: {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays must be non-negative")
        if self.jitter < 0:
            raise ValueError(f"jitter must be non-negative, got: {self.jitter}")

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "RetryPolicy":
        retry = settings.retry
        params = {
            "max_attempts": retry.max_attempts,
            "base_delay": retry.base_delay,
            "max_delay": retry.max_delay,
            "jitter": retry.jitter,
        }
        params.update(overrides)
        return cls(**params)

    def delay_for(self, attempt: int) -> float:
        """Return the delay to wait after the given failed attempt (1-based)."""
        delay = min(self.max_delay, self.base_delay * (2 ** max(0, attempt - 1)))
        if self.jitter and delay:
            delay += random.uniform(0.0, self.jitter * delay)
        return delay

    def call(
        self,
        fn: Callable[..., T],
        *args: Any,
        description: str = "capability call",
        **kwargs: Any,
    ) -> T:
        """Invoke ``fn`` and retry transient capability failures.

        Raises:
            CapabilityUnavailableError: When attempts are exhausted or the
                failure is flagged as non-retryable.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn(*args, **kwargs)
            except CapabilityError as exc:
                if not exc.retryable:
                    raise CapabilityUnavailableError(
                        f"{description} failed with a non-retryable error: {exc}",
                        attempts=attempt,
                        last_error=exc,
                    ) from exc
                if attempt >= self.max_attempts:
                    raise CapabilityUnavailableError(
                        f"{description} failed after {attempt} attempts: {exc}",
                        attempts=attempt,
                        last_error=exc,
                    ) from exc
                wait = self.delay_for(attempt)
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                    description,
                    attempt,
                    self.max_attempts,
                    wait,
                    exc,
                )
                self.sleep(wait)
