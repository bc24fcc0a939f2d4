"""
Resigning strategies: what to do with an archive that is already signed.

Choosing a strategy is a configuration decision; a strategy only carries
out its decision given the archive and a way to sign it.
"""

from __future__ import annotations

__all__ = [
    "IgnoreStrategy",
    "RejectStrategy",
    "ResignStrategy",
    "ResigningStrategy",
    "SignFunction",
    "get_resigning_strategy",
]

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from ..constants import RESIGNING_STRATEGIES
from ..errors import AlreadySignedError, ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

_logger = logging.getLogger(__name__)


class SignFunction(Protocol):
    """Signs the archive at a path with a digest algorithm; returns the signed path."""

    def __call__(self, archive: Path, digest_algorithm: str | None) -> Path: ...


class ResigningStrategy(Protocol):
    """Decides what happens to an archive reported as already signed."""

    name: str

    def resign(self, archive: Path, sign: SignFunction, digest_algorithm: str | None = None) -> Path:
        """
        Handle an already signed archive.

        Args:
            archive: The already signed archive.
            sign: Continues the normal signing pipeline for the archive.
            digest_algorithm: The configured digest algorithm.

        Returns:
            Path of the resulting archive.

        Raises:
            AlreadySignedError: If the strategy refuses signed archives.
        """
        ...


@dataclass(frozen=True)
class ResignStrategy:
    """Sign again; the new signature supersedes the existing one.

    Attributes:
        digest_algorithm: Digest algorithm for the new signature. When None,
            the configured digest algorithm is used.
    """

    digest_algorithm: str | None = None
    name: str = "resign"

    def resign(self, archive: Path, sign: SignFunction, digest_algorithm: str | None = None) -> Path:
        algorithm = self.digest_algorithm or digest_algorithm
        _logger.info("%s is already signed, resigning (digest: %s)", archive.name, algorithm or "default")
        return sign(archive, algorithm)


@dataclass(frozen=True)
class RejectStrategy:
    """Refuse already signed archives without calling the signing primitive."""

    name: str = "reject"

    def resign(self, archive: Path, sign: SignFunction, digest_algorithm: str | None = None) -> Path:  # noqa: ARG002
        raise AlreadySignedError(f"{archive.name} is already signed")


@dataclass(frozen=True)
class IgnoreStrategy:
    """Leave already signed archives untouched."""

    name: str = "ignore"

    def resign(self, archive: Path, sign: SignFunction, digest_algorithm: str | None = None) -> Path:  # noqa: ARG002
        _logger.info("%s is already signed, leaving it unchanged", archive.name)
        return archive


def get_resigning_strategy(name: str, digest_algorithm: str | None = None) -> ResigningStrategy:
    """
    Look up a resigning strategy by name.

    Args:
        name: "resign", "reject" or "ignore" (case-insensitive).
        digest_algorithm: Digest algorithm for the resign strategy.

    Raises:
        ConfigurationError: If no strategy matches.
    """
    key = name.lower().strip()
    if key == "resign":
        return ResignStrategy(digest_algorithm)
    if key == "reject":
        return RejectStrategy()
    if key == "ignore":
        return IgnoreStrategy()
    available = ", ".join(RESIGNING_STRATEGIES)
    raise ConfigurationError(f"Unknown resigning strategy {name!r}. Available: {available}")
