"""
jarseal — sign Java archives through a remote signing service or jarsigner.

Wraps the signing operation with fixed-interval retries, already-signed
detection, one level of nested archive signing, and fail-fast or
continue-on-fail batch handling.
"""

from __future__ import annotations

from .api import make_primitive, sign_jars
from .config import SigningConfig, make_signing_config
from .constants import __version__
from .core.detection import is_signed
from .core.models import Artifact, BatchResult, Failure, Skipped, Success, Verdict
from .core.orchestrator import SigningOrchestrator
from .core.pipeline import ArchivePipeline
from .core.retry import RetryingSigner, RetryPolicy
from .errors import (
    AlreadySignedError,
    ArchiveFormatError,
    BatchSigningError,
    ConfigurationError,
    InnerArchiveError,
    JarsealError,
    RetriesExhaustedError,
    SigningError,
    TransientSigningError,
)

__all__ = [
    "AlreadySignedError",
    "ArchiveFormatError",
    "ArchivePipeline",
    "Artifact",
    "BatchResult",
    "BatchSigningError",
    "ConfigurationError",
    "Failure",
    "InnerArchiveError",
    "JarsealError",
    "RetriesExhaustedError",
    "RetryPolicy",
    "RetryingSigner",
    "SigningConfig",
    "SigningError",
    "SigningOrchestrator",
    "Skipped",
    "Success",
    "TransientSigningError",
    "Verdict",
    "__version__",
    "is_signed",
    "make_primitive",
    "make_signing_config",
    "sign_jars",
]
