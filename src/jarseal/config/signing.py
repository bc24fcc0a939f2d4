"""
Validated signing configuration.

:class:`SigningConfig` is immutable and is only built through
:func:`make_signing_config`, so every instance in circulation holds
values that have already been checked.
"""

from __future__ import annotations

__all__ = ["SigningConfig", "make_signing_config"]

from dataclasses import dataclass

from ..constants import (
    DEFAULT_CONTINUE_ON_FAIL,
    DEFAULT_INNER_WORKERS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_RESIGNING,
    DEFAULT_RETRY_LIMIT,
    DEFAULT_RETRY_WAIT,
    DIGEST_ALGORITHMS,
    MAX_DEPTH,
    RESIGNING_STRATEGIES,
)
from ..core.retry import RetryPolicy
from ..errors import ConfigurationError


@dataclass(frozen=True)
class SigningConfig:
    """How archives are signed.

    Attributes:
        retry_limit: Retries after the first failed attempt.
        retry_wait: Seconds to wait between two attempts.
        max_depth: 0 leaves nested archives alone, 1 signs them first.
        continue_on_fail: Keep going after a failed artifact or nested archive.
        digest_algorithm: Digest algorithm name, or None for the signer's default.
        resigning: What to do with already signed archives.
        inner_workers: Nested archives signed concurrently.
    """

    retry_limit: int = DEFAULT_RETRY_LIMIT
    retry_wait: float = DEFAULT_RETRY_WAIT
    max_depth: int = DEFAULT_MAX_DEPTH
    continue_on_fail: bool = DEFAULT_CONTINUE_ON_FAIL
    digest_algorithm: str | None = None
    resigning: str = DEFAULT_RESIGNING
    inner_workers: int = DEFAULT_INNER_WORKERS

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(limit=self.retry_limit, wait=self.retry_wait)


def _normalize_digest(digest_algorithm: str | None) -> str | None:
    if digest_algorithm is None or not digest_algorithm.strip():
        return None
    wanted = digest_algorithm.strip().upper()
    # Accept "SHA256" as well as "SHA-256"
    for name in DIGEST_ALGORITHMS:
        if wanted in (name, name.replace("-", "")):
            return name
    available = ", ".join(DIGEST_ALGORITHMS)
    raise ConfigurationError(f"Unsupported digest algorithm {digest_algorithm!r}. Available: {available}")


def make_signing_config(
    *,
    retry_limit: int = DEFAULT_RETRY_LIMIT,
    retry_wait: float = DEFAULT_RETRY_WAIT,
    max_depth: int = DEFAULT_MAX_DEPTH,
    continue_on_fail: bool = DEFAULT_CONTINUE_ON_FAIL,
    digest_algorithm: str | None = None,
    resigning: str = DEFAULT_RESIGNING,
    inner_workers: int = DEFAULT_INNER_WORKERS,
) -> SigningConfig:
    """
    Validate settings and build a :class:`SigningConfig`.

    Raises:
        ConfigurationError: If any value is out of range or unknown.
    """
    if isinstance(retry_limit, bool) or not isinstance(retry_limit, int) or retry_limit < 0:
        raise ConfigurationError(f"retry_limit must be a non-negative integer, got {retry_limit!r}")
    if isinstance(retry_wait, bool) or not isinstance(retry_wait, (int, float)) or retry_wait < 0:
        raise ConfigurationError(f"retry_wait must be a non-negative number, got {retry_wait!r}")
    if max_depth not in (0, MAX_DEPTH) or isinstance(max_depth, bool):
        raise ConfigurationError(f"max_depth must be 0 or {MAX_DEPTH}, got {max_depth!r}")
    if isinstance(inner_workers, bool) or not isinstance(inner_workers, int) or inner_workers < 1:
        raise ConfigurationError(f"inner_workers must be a positive integer, got {inner_workers!r}")

    strategy = resigning.lower().strip()
    if strategy not in RESIGNING_STRATEGIES:
        available = ", ".join(RESIGNING_STRATEGIES)
        raise ConfigurationError(f"Unknown resigning strategy {resigning!r}. Available: {available}")

    return SigningConfig(
        retry_limit=retry_limit,
        retry_wait=retry_wait,
        max_depth=max_depth,
        continue_on_fail=bool(continue_on_fail),
        digest_algorithm=_normalize_digest(digest_algorithm),
        resigning=strategy,
        inner_workers=inner_workers,
    )
