"""jarseal error types."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .core.models import BatchResult, Failure, SigningResult

__all__ = [
    "AlreadySignedError",
    "ArchiveFormatError",
    "BatchSigningError",
    "ConfigurationError",
    "InnerArchiveError",
    "JarsealError",
    "RetriesExhaustedError",
    "SigningError",
    "TransientSigningError",
]


class JarsealError(Exception):
    """Base error for jarseal operations."""


class SigningError(JarsealError):
    """The signing primitive failed.

    Args:
        message: Human-readable error description.
        output: Raw diagnostic from the signing service or command
            (response body, captured stdout/stderr), if any.
        retryable: Whether this error is transient and worth retrying.
    """

    def __init__(self, message: str, *, output: str = "", retryable: bool = False) -> None:
        super().__init__(message)
        self.output = output
        self.retryable = retryable

    def __reduce__(self) -> tuple[type[SigningError], tuple[str], dict[str, Any]]:
        """Preserve output and retryable flag across pickle/unpickle."""
        return (type(self), (str(self),), {"output": self.output, "retryable": self.retryable})

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.output = state.get("output", "")
        self.retryable = state.get("retryable", False)


class TransientSigningError(SigningError):
    """Network failure, process failure or timeout. Retried."""

    def __init__(self, message: str, *, output: str = "", retryable: bool = True) -> None:
        super().__init__(message, output=output, retryable=retryable)


class RetriesExhaustedError(JarsealError):
    """Every permitted attempt failed.

    The most recent failure is available as ``cause`` (and ``__cause__``).
    """

    def __init__(self, cause: SigningError, attempts: int) -> None:
        super().__init__(f"Signing failed after {attempts} attempt(s): {cause}")
        self.cause = cause
        self.attempts = attempts


class AlreadySignedError(JarsealError):
    """Archive is already signed and the reject strategy is in effect."""


class ArchiveFormatError(JarsealError):
    """Unreadable or corrupt archive, or unexpected entry structure."""


class InnerArchiveError(JarsealError):
    """Signing a nested archive failed, so the outer archive was not rewritten."""

    def __init__(self, entry: str, failure: Failure, results: tuple[SigningResult, ...] = ()) -> None:
        super().__init__(f"Nested archive {entry!r} could not be signed: {failure.message}")
        self.entry = entry
        self.failure = failure
        self.cause = failure.cause
        self.results = results or (failure,)


class BatchSigningError(JarsealError):
    """A batch run ended with failures (fail-fast abort or absorbed failures)."""

    def __init__(self, result: BatchResult) -> None:
        failures = result.failures
        if result.verdict.value == "aborted" and failures:
            message = f"Signing aborted at {failures[-1].path}: {failures[-1].message}"
        else:
            parts = []
            if failures or not result.nested_failures:
                parts.append(f"{len(failures)} artifact(s)")
            if result.nested_failures:
                parts.append(f"{len(result.nested_failures)} nested archive(s)")
            message = f"{' and '.join(parts)} failed to sign"
        super().__init__(message)
        self.result = result


class ConfigurationError(JarsealError):
    """Configuration validation error."""
