"""
JAR manifest and signature file parsing.

Both ``META-INF/MANIFEST.MF`` and ``META-INF/*.SF`` use the same format:
``Name: value`` header lines, 72-byte lines continued by a leading space,
and sections separated by blank lines. The first section holds the main
attributes; every following section starts with ``Name:`` and describes
one archive entry.

The raw bytes of each section are kept because signature files digest
manifest sections byte for byte.
"""

from __future__ import annotations

__all__ = [
    "Manifest",
    "ManifestSection",
    "hash_name",
    "parse_manifest",
    "verify_digests",
]

import base64
import binascii
import hashlib
import logging
import re
from dataclasses import dataclass, field

from ..errors import ArchiveFormatError

_logger = logging.getLogger(__name__)

# One physical line, with its terminator when it has one
_LINE_RE = re.compile(rb"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+\Z")

# Digest names used in JAR manifests -> hashlib names
_HASH_NAMES: dict[str, str] = {
    "MD5": "md5",
    "SHA": "sha1",
    "SHA1": "sha1",
    "SHA-1": "sha1",
    "SHA-224": "sha224",
    "SHA-256": "sha256",
    "SHA-384": "sha384",
    "SHA-512": "sha512",
}


def hash_name(algorithm: str) -> str | None:
    """Map a manifest digest name (e.g. ``SHA-256``) to a hashlib name."""
    return _HASH_NAMES.get(algorithm.upper())


@dataclass(frozen=True)
class ManifestSection:
    """One manifest section: its attributes and its exact bytes.

    Attribute lookup is case-insensitive, as in the JAR format.
    """

    raw: bytes
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str | None:
        return self.get("Name")

    def get(self, key: str, default: str | None = None) -> str | None:
        wanted = key.lower()
        for k, v in self.attributes.items():
            if k.lower() == wanted:
                return v
        return default


@dataclass(frozen=True)
class Manifest:
    """A parsed manifest or signature file."""

    raw: bytes
    main: ManifestSection
    sections: dict[str, ManifestSection] = field(default_factory=dict)

    def section(self, name: str) -> ManifestSection | None:
        return self.sections.get(name)


def _split_sections(data: bytes) -> list[tuple[bytes, list[bytes]]]:
    """Split *data* into (raw section bytes, logical header lines) pairs."""
    sections: list[tuple[bytes, list[bytes]]] = []
    lines: list[bytes] = []
    start = 0
    for match in _LINE_RE.finditer(data):
        line = match.group().rstrip(b"\r\n")
        if not line:
            if lines:
                sections.append((data[start : match.end()], lines))
                lines = []
            start = match.end()
            continue
        if line.startswith(b" "):
            if not lines:
                raise ArchiveFormatError("Manifest continuation line without a header")
            lines[-1] += line[1:]
        else:
            lines.append(line)
    if lines:
        sections.append((data[start:], lines))
    return sections


def _parse_attributes(lines: list[bytes]) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(b": ")
        if not sep or not key:
            raise ArchiveFormatError(f"Invalid manifest header: {line[:72]!r}")
        try:
            attributes[key.decode("ascii")] = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ArchiveFormatError(f"Invalid manifest encoding: {e}") from e
    return attributes


def parse_manifest(data: bytes) -> Manifest:
    """
    Parse a manifest or signature file.

    Args:
        data: Raw file content.

    Returns:
        Manifest with main attributes and per-entry sections.

    Raises:
        ArchiveFormatError: On malformed header lines.
    """
    chunks = _split_sections(data)
    if not chunks:
        return Manifest(raw=data, main=ManifestSection(raw=b""))

    main_raw, main_lines = chunks[0]
    main = ManifestSection(raw=main_raw, attributes=_parse_attributes(main_lines))

    sections: dict[str, ManifestSection] = {}
    for raw, lines in chunks[1:]:
        section = ManifestSection(raw=raw, attributes=_parse_attributes(lines))
        name = section.name
        if name is None:
            _logger.debug("Ignoring manifest section without Name: %r", raw[:72])
            continue
        sections[name] = section
    return Manifest(raw=data, main=main, sections=sections)


def verify_digests(section: ManifestSection, suffix: str, data: bytes) -> bool:
    """
    Check the ``<ALG><suffix>`` digest attributes of *section* against *data*.

    Unknown algorithms are ignored. At least one known digest must be
    present and every known digest must match.

    Args:
        section: Section holding the digest attributes.
        suffix: Attribute suffix, e.g. ``-Digest`` or ``-Digest-Manifest``.
        data: Bytes the digests are expected to cover.
    """
    checked = 0
    for key, value in section.attributes.items():
        if not key.lower().endswith(suffix.lower()):
            continue
        algo = hash_name(key[: -len(suffix)])
        if algo is None:
            continue
        try:
            expected = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            return False
        if hashlib.new(algo, data).digest() != expected:
            return False
        checked += 1
    return checked > 0
