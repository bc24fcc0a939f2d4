"""
Retry policy and the retrying wrapper around a signing primitive.

The signing service is slow and rate limited rather than congested, so
every retry waits the same configured interval: no exponential backoff
and no jitter.
"""

from __future__ import annotations

__all__ = ["RetryPolicy", "RetryState", "RetryingSigner"]

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..constants import DEFAULT_RETRY_LIMIT, DEFAULT_RETRY_WAIT
from ..errors import RetriesExhaustedError, SigningError

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..network.protocol import SigningPrimitive

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Fixed-interval retry decisions.

    Attempt indices are 1-based: the first call is attempt 1, not a retry.

    Attributes:
        limit: Number of retries after the first attempt (0 = one attempt).
        wait: Seconds to wait before every retry.
    """

    limit: int = DEFAULT_RETRY_LIMIT
    wait: float = DEFAULT_RETRY_WAIT

    def should_retry(self, attempt_index: int, limit: int | None = None) -> bool:
        """Whether another attempt may follow the failed attempt *attempt_index*."""
        return attempt_index <= (self.limit if limit is None else limit)

    def wait_before(self, next_attempt_index: int) -> float:  # noqa: ARG002 -- fixed interval
        return self.wait


@dataclass(slots=True)
class RetryState:
    """Attempt bookkeeping for a single :meth:`RetryingSigner.sign` call."""

    attempts_made: int = 0
    last_error: SigningError | None = None


class RetryingSigner:
    """Drives a :class:`SigningPrimitive` until success or exhaustion.

    Args:
        primitive: The external signing operation.
        policy: Retry decisions (limit and fixed wait).
        logger: Receives one record per attempt.
        sleep: Blocking wait function, replaceable in tests.
    """

    def __init__(
        self,
        primitive: SigningPrimitive,
        policy: RetryPolicy | None = None,
        *,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.primitive = primitive
        self.policy = policy or RetryPolicy()
        self._logger = logger or _logger
        self._sleep = sleep

    def sign(self, data: bytes, digest_algorithm: str | None = None, *, label: str = "archive") -> bytes:
        """
        Sign *data*, retrying transient failures.

        The wait happens strictly between failed attempts, never before the
        first one and never after the last one.

        Args:
            data: Archive bytes to sign.
            digest_algorithm: Digest algorithm name, or None for the
                primitive's default.
            label: Name used in log records (usually the archive file name).

        Returns:
            Signed archive bytes.

        Raises:
            RetriesExhaustedError: If every permitted attempt failed.
            SigningError: If the primitive failed with a non-retryable error.
        """
        state = RetryState()

        while True:
            state.attempts_made += 1
            started = time.monotonic()
            try:
                signed = self.primitive.sign(data, digest_algorithm)
            except SigningError as exc:  # noqa: PERF203 -- try-except is the retry mechanism
                elapsed = time.monotonic() - started
                state.last_error = exc
                self._logger.warning(
                    "Signing %s failed (attempt %d/%d, %.1fs): %s",
                    label,
                    state.attempts_made,
                    self.policy.limit + 1,
                    elapsed,
                    exc,
                )
                if not exc.retryable:
                    raise
                if not self.policy.should_retry(state.attempts_made):
                    raise RetriesExhaustedError(exc, state.attempts_made) from exc

                wait = self.policy.wait_before(state.attempts_made + 1)
                self._logger.info("Retrying %s in %.1fs...", label, wait)
                self._sleep(wait)
            else:
                self._logger.info(
                    "Signed %s (attempt %d, %.1fs, %d bytes)",
                    label,
                    state.attempts_made,
                    time.monotonic() - started,
                    len(signed),
                )
                return signed
