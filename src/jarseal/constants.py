"""
Application-wide constants for jarseal.

All timeout values, retry defaults, archive naming rules and environment
variable names are centralized here for easy maintenance and configuration.
"""

from __future__ import annotations

import importlib.metadata

try:
    __version__ = importlib.metadata.version("jarseal")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "ARCHIVE_SUFFIX",
    "BYTES_PER_MB",
    "DEFAULT_CONTINUE_ON_FAIL",
    "DEFAULT_INNER_WORKERS",
    "DEFAULT_JARSIGNER",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_PART_NAME",
    "DEFAULT_RESIGNING",
    "DEFAULT_RETRY_LIMIT",
    "DEFAULT_RETRY_WAIT",
    "DEFAULT_SIGNER_URL",
    "DEFAULT_TIMEOUT_COMMAND",
    "DEFAULT_TIMEOUT_HTTP",
    "DIGEST_ALGORITHMS",
    "ENV_CONTINUE_ON_FAIL",
    "ENV_RETRY_LIMIT",
    "ENV_RETRY_WAIT",
    "ENV_TIMEOUT",
    "ENV_URL",
    "MANIFEST_NAME",
    "MAX_DEPTH",
    "MAX_RESPONSE_SIZE",
    "META_INF",
    "RECV_BUFFER_SIZE",
    "RESIGNING_STRATEGIES",
    "SIGNATURE_BLOCK_SUFFIXES",
    "SIGNATURE_FILE_SUFFIX",
    "__version__",
]

# ── Retry configuration ───────────────────────────────────────────────

# Number of retries after the first failed attempt
DEFAULT_RETRY_LIMIT = 3

# Fixed wait between two attempts (seconds).
# The signing service is slow and rate limited, so every retry waits the same.
DEFAULT_RETRY_WAIT = 30

# ── Batch and nesting behavior ────────────────────────────────────────

DEFAULT_CONTINUE_ON_FAIL = False

# 0 = leave nested archives alone, 1 = sign first-level nested archives
DEFAULT_MAX_DEPTH = 1
MAX_DEPTH = 1

# Number of nested archives signed concurrently inside one outer archive
DEFAULT_INNER_WORKERS = 1

# ── Resigning ─────────────────────────────────────────────────────────

RESIGNING_STRATEGIES = ("resign", "reject", "ignore")
DEFAULT_RESIGNING = "resign"

# Standard names accepted by jarsigner -digestalg
DIGEST_ALGORITHMS = ("SHA-1", "SHA-224", "SHA-256", "SHA-384", "SHA-512")

# ── Timeout values (seconds) ──────────────────────────────────────────

# HTTP upload to the signing service
DEFAULT_TIMEOUT_HTTP = 300

# Local jarsigner process (includes the timestamping round trip)
DEFAULT_TIMEOUT_COMMAND = 120

# ── Signing service ───────────────────────────────────────────────────

DEFAULT_SIGNER_URL = "http://build.eclipse.org:31338/sign"

# Name of the multipart form part holding the archive
DEFAULT_PART_NAME = "file"

DEFAULT_JARSIGNER = "jarsigner"

# ── Size limits (bytes) ───────────────────────────────────────────────

BYTES_PER_MB = 1024 * 1024

# Maximum size of a signed archive returned by the service (512 MB)
MAX_RESPONSE_SIZE = 512 * BYTES_PER_MB

RECV_BUFFER_SIZE = 64 * 1024

# ── Archive layout ────────────────────────────────────────────────────

ARCHIVE_SUFFIX = ".jar"
META_INF = "META-INF/"
MANIFEST_NAME = "META-INF/MANIFEST.MF"
SIGNATURE_FILE_SUFFIX = ".SF"
SIGNATURE_BLOCK_SUFFIXES = (".RSA", ".DSA", ".EC")

# ── Environment variable names ──────────────────────────────────────

ENV_URL = "JARSEAL_URL"
ENV_TIMEOUT = "JARSEAL_TIMEOUT"
ENV_RETRY_LIMIT = "JARSEAL_RETRY_LIMIT"
ENV_RETRY_WAIT = "JARSEAL_RETRY_WAIT"
ENV_CONTINUE_ON_FAIL = "JARSEAL_CONTINUE_ON_FAIL"
