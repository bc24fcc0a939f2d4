"""
Common CLI helper functions for jarseal.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from ..core.models import Failure, Skipped

if TYPE_CHECKING:
    from pathlib import Path

    from ..core.models import SigningResult

__all__ = [
    "file_size",
    "format_size_kb",
    "print_result",
]

_BYTES_PER_KB = 1024
_DIAGNOSTIC_LINES = 20


def format_size_kb(size_bytes: int) -> str:
    """Format a byte count as a human-readable KB string (e.g. '123.4 KB')."""
    return f"{size_bytes / _BYTES_PER_KB:.1f} KB"


def file_size(path: Path) -> int | None:
    """Size of *path* in bytes, or None if it cannot be read."""
    try:
        return path.stat().st_size
    except OSError:
        return None


def print_result(result: SigningResult, indent: str = "  ") -> None:
    """Print one signing result, then the results of its nested archives.

    Failures go to stderr with the tail of the signer's diagnostic output.
    """
    if isinstance(result, Skipped):
        print(f"{indent}SKIPPED {result.path.name} ({result.reason})")
        return

    if isinstance(result, Failure):
        suffix = " (retries exhausted)" if result.retries_exhausted else ""
        print(f"{indent}FAILED  {result.path}{suffix}", file=sys.stderr)
        print(f"{indent}  {result.message}", file=sys.stderr)
        diagnostic = result.diagnostic.strip()
        if diagnostic:
            for line in diagnostic.splitlines()[-_DIAGNOSTIC_LINES:]:
                print(f"{indent}  | {line}", file=sys.stderr)
    else:
        size = file_size(result.path)
        size_label = f" ({format_size_kb(size)})" if size is not None else ""
        print(f"{indent}OK      {result.path}{size_label}")

    for inner in result.inner_results:
        print_result(inner, indent + "    ")
