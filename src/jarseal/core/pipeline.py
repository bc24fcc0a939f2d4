"""
Per-artifact signing pipeline.

For one archive::

    already signed? -> resigning strategy -> nested archives -> signer -> replace

Work happens in a scratch directory created next to the artifact, so the
final replacement is an atomic rename on the same filesystem. The scratch
directory is removed on every exit path and the artifact is only ever
touched by that final rename.
"""

from __future__ import annotations

__all__ = ["ArchivePipeline"]

import functools
import logging
import os
import shutil
import tempfile
import time
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import ArchiveFormatError, JarsealError
from .detection import is_signed
from .inner import InnerArchiveProcessor
from .models import Success, failure_from_error
from .retry import RetryingSigner
from .strategy import get_resigning_strategy

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..config.signing import SigningConfig
    from ..network.protocol import SigningPrimitive
    from .models import SigningResult

_logger = logging.getLogger(__name__)

_WORKDIR_PREFIX = ".jarseal-"


class ArchivePipeline:
    """Signs one archive at a time under a :class:`SigningConfig`.

    Args:
        primitive: The external signing operation.
        config: Validated signing configuration.
        logger: Receives progress records for every stage.
        sleep: Wait function used between retries.
    """

    def __init__(
        self,
        primitive: SigningPrimitive,
        config: SigningConfig,
        *,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._logger = logger or _logger
        self.signer = RetryingSigner(primitive, config.retry_policy, logger=self._logger, sleep=sleep)
        self.strategy = get_resigning_strategy(config.resigning, config.digest_algorithm)
        self.inner = InnerArchiveProcessor(
            self.sign_nested,
            max_depth=config.max_depth,
            continue_on_fail=config.continue_on_fail,
            workers=config.inner_workers,
            logger=self._logger,
        )

    def sign_archive(self, path: Path) -> SigningResult:
        """
        Sign the archive at *path* in place.

        Never raises for per-artifact problems: they are returned as a
        :class:`Failure`, and the archive is left byte-identical.
        """
        self._logger.info("Signing %s", path)
        inner_results: list[SigningResult] = []
        try:
            with tempfile.TemporaryDirectory(dir=path.parent, prefix=_WORKDIR_PREFIX) as tmp:
                workdir = Path(tmp)
                signed = self._dispatch(path, workdir, inner_results, nested=False)
                if signed != path:
                    _replace(signed, path)
        except (JarsealError, OSError, zipfile.BadZipFile) as exc:
            self._logger.error("Signing %s failed: %s", path, exc)
            return failure_from_error(path, exc, tuple(inner_results))
        return Success(path, tuple(inner_results))

    def sign_nested(self, archive: Path, workdir: Path, label: str | None = None) -> Path:
        """Sign an extracted nested archive; its own nested archives stay untouched.

        *label* names the archive in log records, usually its entry name
        inside the outer archive.
        """
        return self._dispatch(archive, workdir, [], nested=True, label=label)

    def _dispatch(
        self,
        archive: Path,
        workdir: Path,
        inner_results: list[SigningResult],
        *,
        nested: bool,
        label: str | None = None,
    ) -> Path:
        sign = functools.partial(
            self._sign,
            workdir=workdir,
            inner_results=inner_results,
            nested=nested,
            label=label or archive.name,
        )
        if is_signed(archive, logger=self._logger):
            return self.strategy.resign(archive, sign, self.config.digest_algorithm)
        return sign(archive, self.config.digest_algorithm)

    def _sign(
        self,
        archive: Path,
        digest_algorithm: str | None,
        *,
        workdir: Path,
        inner_results: list[SigningResult],
        nested: bool,
        label: str,
    ) -> Path:
        source = archive
        if not nested:
            outcome = self.inner.process(archive, workdir)
            inner_results.extend(outcome.results)
            source = outcome.path

        signed = self.signer.sign(source.read_bytes(), digest_algorithm, label=label)

        fd, tmp_path = tempfile.mkstemp(dir=workdir, prefix="signed-", suffix=".jar")
        with os.fdopen(fd, "wb") as f:
            f.write(signed)
        if not zipfile.is_zipfile(tmp_path):
            raise ArchiveFormatError(f"The signer returned something that is not an archive for {label}")
        return Path(tmp_path)


def _replace(signed: Path, target: Path) -> None:
    """Move *signed* over *target* atomically, keeping *target*'s permissions."""
    try:
        shutil.copymode(target, signed)
    except OSError:
        _logger.warning("Could not copy permissions of %s", target)
    signed.replace(target)
