"""Artifacts, per-artifact signing results and batch results."""

from __future__ import annotations

__all__ = [
    "Artifact",
    "ArtifactKind",
    "BatchResult",
    "Failure",
    "SigningRequest",
    "SigningResult",
    "Skipped",
    "Success",
    "Verdict",
    "failure_from_error",
]

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Union

from ..constants import ARCHIVE_SUFFIX
from ..errors import BatchSigningError, InnerArchiveError, RetriesExhaustedError, SigningError

if TYPE_CHECKING:
    from ..config.signing import SigningConfig


class ArtifactKind(enum.Enum):
    ARCHIVE = "archive"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Artifact:
    """A build output to sign. Only archives enter the signing pipeline."""

    path: Path
    kind: ArtifactKind = ArtifactKind.ARCHIVE

    @classmethod
    def from_path(cls, path: str | Path) -> Artifact:
        """Classify *path* by its extension: ``.jar`` files are archives."""
        p = Path(path)
        kind = ArtifactKind.ARCHIVE if p.name.endswith(ARCHIVE_SUFFIX) else ArtifactKind.OTHER
        return cls(path=p, kind=kind)

    @property
    def is_archive(self) -> bool:
        return self.kind is ArtifactKind.ARCHIVE


@dataclass(frozen=True, slots=True)
class SigningRequest:
    """One artifact plus the configuration it is signed under."""

    artifact: Artifact
    config: SigningConfig


# ── Per-artifact results ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Success:
    """The archive at ``path`` is signed (or was left as is by the ignore strategy).

    ``inner_results`` holds the outcome of every nested archive that was
    processed while signing this one.
    """

    path: Path
    inner_results: tuple[SigningResult, ...] = ()

    ok = True

    @property
    def inner_failures(self) -> list[Failure]:
        """Failed nested archives at any depth below this one."""
        found: list[Failure] = []
        for result in self.inner_results:
            if isinstance(result, Failure):
                found.append(result)
            elif isinstance(result, Success):
                found.extend(result.inner_failures)
        return found


@dataclass(frozen=True, slots=True)
class Failure:
    """Signing the archive at ``path`` failed.

    Attributes:
        path: The artifact or nested entry that failed.
        cause: The error that ended the attempt (the last one when retried).
        retries_exhausted: True when every permitted attempt was used up.
        inner_results: Nested archive outcomes gathered before the failure.
    """

    path: Path
    cause: Exception
    retries_exhausted: bool = False
    inner_results: tuple[SigningResult, ...] = ()

    ok = False

    @property
    def message(self) -> str:
        return str(self.cause)

    @property
    def diagnostic(self) -> str:
        """Raw output of the signing service or command, if it produced any."""
        cause: BaseException | None = self.cause
        while cause is not None:
            if isinstance(cause, SigningError) and cause.output:
                return cause.output
            cause = getattr(cause, "cause", None) or cause.__cause__
        return ""


@dataclass(frozen=True, slots=True)
class Skipped:
    """The artifact was not an archive and was not signed."""

    path: Path
    reason: str = "not an archive"

    ok = True


SigningResult = Union[Success, Failure, Skipped]


def failure_from_error(
    path: Path,
    exc: Exception,
    inner_results: tuple[SigningResult, ...] = (),
) -> Failure:
    """Turn an error raised while signing *path* into a :class:`Failure`."""
    if isinstance(exc, RetriesExhaustedError):
        return Failure(path, exc.cause, retries_exhausted=True, inner_results=inner_results)
    if isinstance(exc, InnerArchiveError):
        return Failure(
            path,
            exc,
            retries_exhausted=exc.failure.retries_exhausted,
            inner_results=inner_results or exc.results,
        )
    return Failure(path, exc, inner_results=inner_results)


# ── Batch result ──────────────────────────────────────────────────


class Verdict(enum.Enum):
    ALL_SUCCEEDED = "all-succeeded"
    PARTIAL_FAILURE = "partial-failure"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Ordered per-artifact results of one orchestrator run."""

    results: tuple[SigningResult, ...] = ()
    verdict: Verdict = Verdict.ALL_SUCCEEDED
    skipped_run: bool = False

    @property
    def ok(self) -> bool:
        return self.verdict is Verdict.ALL_SUCCEEDED

    @property
    def failures(self) -> list[Failure]:
        return [r for r in self.results if isinstance(r, Failure)]

    @property
    def nested_failures(self) -> list[Failure]:
        """Nested archive failures absorbed into otherwise signed artifacts."""
        return [f for r in self.succeeded for f in r.inner_failures]

    @property
    def succeeded(self) -> list[Success]:
        return [r for r in self.results if isinstance(r, Success)]

    @property
    def skipped(self) -> list[Skipped]:
        return [r for r in self.results if isinstance(r, Skipped)]

    def raise_for_verdict(self) -> None:
        """Raise the batch's terminal error if the run did not fully succeed.

        Raises:
            BatchSigningError: For aborted and partially failed runs.
        """
        if not self.ok:
            raise BatchSigningError(self)
