"""
Nested archive handling.

An outer archive may package other archives (``lib/foo.jar``). With a
maximum depth of 1 every such entry is extracted, signed on its own, and
put back before the outer archive itself is signed. Archives nested two
levels deep are carried along as opaque bytes and never signed.

The outer archive is rewritten only when every nested archive was signed,
unless failures are tolerated, in which case a failed entry keeps its
original bytes.
"""

from __future__ import annotations

__all__ = ["InnerArchiveProcessor", "InnerProcessingOutcome", "find_candidates"]

import logging
import os
import tempfile
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from ..constants import ARCHIVE_SUFFIX, DEFAULT_INNER_WORKERS, DEFAULT_MAX_DEPTH
from ..errors import InnerArchiveError, JarsealError
from .archive import open_archive, read_entry, rewrite_archive
from .models import Failure, Success, failure_from_error

if TYPE_CHECKING:
    from collections.abc import Callable

    from .models import SigningResult

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InnerProcessingOutcome:
    """Result of nested archive processing for one outer archive.

    Attributes:
        path: Archive to hand to the signer: the rewritten copy, or the
            original path when nothing was replaced.
        results: One result per nested archive, in archive order.
    """

    path: Path
    results: tuple[SigningResult, ...] = ()


def find_candidates(archive: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
    """Nested archives of *archive*: non-directory entries named ``*.jar``."""
    return [
        info
        for info in archive.infolist()
        if not info.is_dir() and info.filename.lower().endswith(ARCHIVE_SUFFIX)
    ]


class InnerArchiveProcessor:
    """Signs the archives nested one level inside an outer archive.

    Args:
        sign_entry: Signs one extracted archive without further nesting:
            takes (archive path, work directory, entry name) and returns the
            path of the signed copy. Raises on failure.
        max_depth: 0 disables nested processing, 1 enables it.
        continue_on_fail: Keep the original bytes of failed entries and go
            on, instead of failing the outer archive.
        workers: Nested archives signed concurrently.
        logger: Receives progress records.
    """

    def __init__(
        self,
        sign_entry: Callable[[Path, Path, str], Path],
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        continue_on_fail: bool = False,
        workers: int = DEFAULT_INNER_WORKERS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sign_entry = sign_entry
        self.max_depth = max_depth
        self.continue_on_fail = continue_on_fail
        self.workers = workers
        self._logger = logger or _logger

    def process(self, archive: Path, workdir: Path) -> InnerProcessingOutcome:
        """
        Sign the nested archives of *archive* and rewrite it.

        Args:
            archive: Outer archive; never modified.
            workdir: Per-artifact scratch directory for extracted entries
                and the rewritten archive.

        Returns:
            The archive to sign next and the nested results.

        Raises:
            InnerArchiveError: If a nested archive failed and failures are
                not tolerated. Nothing is rewritten in that case.
            ArchiveFormatError: If the outer archive cannot be read.
        """
        if self.max_depth == 0:
            return InnerProcessingOutcome(archive)

        with open_archive(archive) as zf:
            candidates = find_candidates(zf)
            if not candidates:
                self._logger.debug("%s has no nested archives", archive.name)
                return InnerProcessingOutcome(archive)
            self._logger.info("%s: %d nested archive(s) to sign", archive.name, len(candidates))
            extracted = [(info.filename, self._extract(zf, info, workdir)) for info in candidates]

        outcomes = self._sign_all(archive, extracted, workdir)
        results = tuple(result for result, _ in outcomes)

        failure = next((r for r in results if isinstance(r, Failure)), None)
        if failure is not None and not self.continue_on_fail:
            entry = next(name for (name, _), (r, _) in zip(extracted, outcomes) if r is failure)
            raise InnerArchiveError(entry, failure, results)

        # Entries left as they were (failed, or ignored as already signed) are not replaced
        replacements = {
            name: signed
            for (name, path), (_, signed) in zip(extracted, outcomes)
            if signed is not None and signed != path
        }
        if not replacements:
            self._logger.debug("%s: no nested archive changed", archive.name)
            return InnerProcessingOutcome(archive, results)

        rewritten = rewrite_archive(archive, replacements, workdir)
        self._logger.debug("%s rewritten with %d signed nested archive(s)", archive.name, len(replacements))
        return InnerProcessingOutcome(rewritten, results)

    def _extract(self, zf: zipfile.ZipFile, info: zipfile.ZipInfo, workdir: Path) -> Path:
        """Copy one nested archive into *workdir* under a unique name."""
        stem = PurePosixPath(info.filename).name
        fd, tmp_path = tempfile.mkstemp(dir=workdir, prefix="inner-", suffix=f"-{stem}")
        with os.fdopen(fd, "wb") as f:
            f.write(read_entry(zf, info.filename))
        return Path(tmp_path)

    def _sign_all(
        self,
        archive: Path,
        extracted: list[tuple[str, Path]],
        workdir: Path,
    ) -> list[tuple[SigningResult, Path | None]]:
        if self.workers > 1 and len(extracted) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self.workers, len(extracted)),
                thread_name_prefix="jarseal-inner",
            ) as pool:
                futures = [
                    pool.submit(self._sign_one, archive, name, path, workdir)
                    for name, path in extracted
                ]
                return [future.result() for future in futures]

        outcomes: list[tuple[SigningResult, Path | None]] = []
        for name, path in extracted:
            outcome = self._sign_one(archive, name, path, workdir)
            outcomes.append(outcome)
            if isinstance(outcome[0], Failure) and not self.continue_on_fail:
                break
        return outcomes

    def _sign_one(
        self,
        archive: Path,
        name: str,
        extracted: Path,
        workdir: Path,
    ) -> tuple[SigningResult, Path | None]:
        label = archive / name
        try:
            signed = self._sign_entry(extracted, workdir, name)
        except (JarsealError, OSError, zipfile.BadZipFile) as exc:
            self._logger.error("Nested archive %s failed: %s", label, exc)
            return failure_from_error(label, exc), None
        return Success(label), signed
