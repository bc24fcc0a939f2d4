"""
Entry-level ZIP archive helpers: open, read, and rewrite with replacements.

Rewriting keeps every entry's name, order, timestamp, comment, attributes
and compression method. Entry content is copied unchanged unless a
replacement is given; sizes and CRCs are recomputed on write.
"""

from __future__ import annotations

__all__ = ["copy_entry_info", "open_archive", "read_entry", "rewrite_archive"]

import contextlib
import logging
import os
import struct
import tempfile
import zipfile
import zlib
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import ArchiveFormatError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

_logger = logging.getLogger(__name__)

# ZIP64 extended information extra field; zipfile regenerates it when needed
_ZIP64_EXTRA_ID = 0x0001
_EXTRA_HEADER = struct.Struct("<HH")


@contextlib.contextmanager
def open_archive(path: Path) -> Iterator[zipfile.ZipFile]:
    """Open *path* as a ZIP archive, mapping corruption to ArchiveFormatError."""
    try:
        archive = zipfile.ZipFile(path)
    except zipfile.BadZipFile as e:
        raise ArchiveFormatError(f"Not a valid archive: {path}: {e}") from e
    with archive:
        yield archive


def read_entry(archive: zipfile.ZipFile, name: str) -> bytes:
    """Read one entry, mapping CRC, compression and format errors to ArchiveFormatError.

    A corrupt deflate stream raises zlib.error, a truncated one EOFError, and
    an encrypted entry RuntimeError.
    """
    try:
        return archive.read(name)
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        NotImplementedError,
        zlib.error,
        EOFError,
        RuntimeError,
    ) as e:
        raise ArchiveFormatError(f"Cannot read entry {name!r}: {e}") from e


def _strip_zip64_extra(extra: bytes) -> bytes:
    """Drop ZIP64 records from an extra field, keeping every other record."""
    kept: list[bytes] = []
    offset = 0
    while offset + _EXTRA_HEADER.size <= len(extra):
        header_id, size = _EXTRA_HEADER.unpack_from(extra, offset)
        end = offset + _EXTRA_HEADER.size + size
        if end > len(extra):
            _logger.debug("Truncated extra field record 0x%04x, dropping remainder", header_id)
            break
        if header_id != _ZIP64_EXTRA_ID:
            kept.append(extra[offset:end])
        offset = end
    return b"".join(kept)


def copy_entry_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    """Return a fresh ZipInfo carrying *info*'s metadata, ready for writing."""
    clone = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    clone.compress_type = info.compress_type
    clone.comment = info.comment
    clone.extra = _strip_zip64_extra(info.extra)
    clone.create_system = info.create_system
    clone.external_attr = info.external_attr
    clone.internal_attr = info.internal_attr
    return clone


def rewrite_archive(
    source: Path,
    replacements: Mapping[str, Path],
    workdir: Path,
) -> Path:
    """
    Write a copy of *source* with some entries' content replaced.

    The copy is written to a fresh temporary file inside *workdir*; the
    source archive is never modified.

    Args:
        source: Archive to copy.
        replacements: Entry name -> file holding the new content.
        workdir: Directory for the rewritten archive.

    Returns:
        Path of the rewritten archive.

    Raises:
        ArchiveFormatError: If *source* cannot be read, or a replacement
            names an entry that does not exist.
    """
    fd, tmp_path = tempfile.mkstemp(dir=workdir, prefix="rewrite-", suffix=".jar")
    os.close(fd)
    target = Path(tmp_path)

    replaced: set[str] = set()
    with open_archive(source) as zin, zipfile.ZipFile(target, "w") as zout:
        zout.comment = zin.comment
        for info in zin.infolist():
            replacement = replacements.get(info.filename)
            if replacement is not None:
                data = replacement.read_bytes()
                replaced.add(info.filename)
                _logger.debug("Replacing %s (%d -> %d bytes)", info.filename, info.file_size, len(data))
            else:
                data = read_entry(zin, info.filename)
            zout.writestr(copy_entry_info(info), data)

    missing = set(replacements) - replaced
    if missing:
        target.unlink(missing_ok=True)
        raise ArchiveFormatError(f"Entries not found in {source.name}: {', '.join(sorted(missing))}")
    return target
