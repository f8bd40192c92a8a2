"""Exception hierarchy shared across LexiClear components.

Three families are distinguished:

- Input errors: the caller supplied something unusable (empty document,
  blank query). They are reported immediately and never retried.
- Capability errors: an external embedding or generation backend failed.
  Providers raise :class:`CapabilityError` and flag whether a retry may help;
  :class:`~lexiclear.core.retry.RetryPolicy` turns exhaustion into
  :class:`CapabilityUnavailableError`.
- Verification negatives are *not* exceptions; they live in
  :class:`~lexiclear.verification.report.VerificationReport`.
"""

from __future__ import annotations

from typing import Optional


class LexiClearError(Exception):
    """Base class for all LexiClear errors."""


class InputError(LexiClearError, ValueError):
    """Raised when caller-supplied input cannot be processed."""


class CapabilityError(LexiClearError, RuntimeError):
    """Raised by an external capability adapter when a call fails.

    Attributes:
        retryable: Whether repeating the same call may succeed.
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class CapabilityUnavailableError(LexiClearError, RuntimeError):
    """Raised when an external capability stays unavailable after retries."""

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        last_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


RETRYABLE_STATUS_CODES = frozenset({408, 409, 425, 429})


def is_retryable_status(status_code: int) -> bool:
    """Return True for HTTP statuses worth retrying (throttling, server errors)."""
    return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES
