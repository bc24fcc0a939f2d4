"""
Batch driver: signs a list of build artifacts one after another.

Non-archives are skipped. A failed archive either stops the run
(fail-fast, verdict ``aborted``) or is recorded while the run goes on
(continue-on-fail, verdict ``partial-failure``).
"""

from __future__ import annotations

__all__ = ["SigningOrchestrator"]

import logging
import time
from typing import TYPE_CHECKING

from .models import Artifact, BatchResult, Failure, Skipped, Success, Verdict
from .pipeline import ArchivePipeline

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

    from ..config.signing import SigningConfig
    from ..network.protocol import SigningPrimitive
    from .models import SigningResult

_logger = logging.getLogger(__name__)


class SigningOrchestrator:
    """Runs the archive pipeline over a batch of artifacts.

    Args:
        primitive: The external signing operation.
        config: Validated signing configuration.
        logger: Receives progress records.
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
        self.pipeline = ArchivePipeline(primitive, config, logger=self._logger, sleep=sleep)

    def run(self, artifacts: Iterable[Artifact | str | Path], *, skip: bool = False) -> BatchResult:
        """
        Sign every archive in *artifacts*, in order.

        Args:
            artifacts: Artifacts, or paths classified by extension.
            skip: Do nothing and report success.

        Returns:
            Per-artifact results and the batch verdict. Under fail-fast the
            failure that stopped the run is the last result.
        """
        if skip:
            self._logger.info("Skipping signing")
            return BatchResult(skipped_run=True)

        results: list[SigningResult] = []
        failed = False
        for item in artifacts:
            artifact = item if isinstance(item, Artifact) else Artifact.from_path(item)

            if not artifact.is_archive:
                self._logger.info("Skipping %s: not an archive", artifact.path)
                results.append(Skipped(artifact.path))
                continue

            result = self.pipeline.sign_archive(artifact.path)
            results.append(result)
            if isinstance(result, Failure):
                failed = True
                if not self.config.continue_on_fail:
                    self._logger.error("Aborting: %s could not be signed", artifact.path)
                    return BatchResult(tuple(results), Verdict.ABORTED)
                self._logger.warning("Continuing after failure of %s", artifact.path)
            elif isinstance(result, Success) and result.inner_failures:
                failed = True
                self._logger.warning(
                    "%s signed with %d nested archive failure(s)",
                    artifact.path,
                    len(result.inner_failures),
                )

        verdict = Verdict.PARTIAL_FAILURE if failed else Verdict.ALL_SUCCEEDED
        self._logger.info(
            "Signed %d archive(s), %d failed, %d skipped",
            sum(1 for r in results if not isinstance(r, (Failure, Skipped))),
            sum(1 for r in results if isinstance(r, Failure)),
            sum(1 for r in results if isinstance(r, Skipped)),
        )
        return BatchResult(tuple(results), verdict)
