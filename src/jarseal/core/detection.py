"""
Already-signed detection for JAR archives.

:func:`is_signed` is a cheap heuristic, not a signature audit: it looks
only at the first entry the archive presents and reports whether that
entry carries a code signer. An archive whose first entry is unsigned but
whose later entries are signed is reported as NOT signed.

An entry carries a code signer when the manifest digest of the entry
matches its content, a signature file covers the entry's manifest section,
and the matching signature block holds at least one signer. Signature
blocks are parsed with asn1crypto; their cryptographic signatures are not
verified.
"""

from __future__ import annotations

__all__ = [
    "CodeSigner",
    "first_entry",
    "get_code_signers",
    "is_signature_related",
    "is_signed",
]

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..constants import MANIFEST_NAME, META_INF, SIGNATURE_BLOCK_SUFFIXES, SIGNATURE_FILE_SUFFIX
from ..errors import ArchiveFormatError
from .archive import open_archive, read_entry
from .manifest import Manifest, parse_manifest, verify_digests

if TYPE_CHECKING:
    import zipfile
    from pathlib import Path

_logger = logging.getLogger(__name__)

# Files that hold signature metadata rather than signed content
_SIGNATURE_RELATED_RE = re.compile(r"^META-INF/(?:[^/]+\.(?:SF|RSA|DSA|EC)|SIG-[^/]+)$", re.I)


@dataclass(frozen=True, slots=True)
class CodeSigner:
    """Identity of one signer of an archive entry.

    Attributes:
        signature_file: The ``META-INF/*.SF`` file this signer signed.
        issuer: Human-readable issuer of the signer certificate.
        serial_number: Serial number of the signer certificate.
        subject: Subject of the signer certificate, when the block embeds it.
    """

    signature_file: str
    issuer: str
    serial_number: int | None
    subject: str | None = None

    @property
    def display_name(self) -> str:
        return self.subject or self.issuer or self.signature_file


def is_signature_related(name: str) -> bool:
    """Whether *name* is the manifest, the META-INF directory or a signature file."""
    upper = name.upper()
    if upper in (META_INF, MANIFEST_NAME):
        return True
    return _SIGNATURE_RELATED_RE.match(name) is not None


def first_entry(archive: zipfile.ZipFile) -> zipfile.ZipInfo | None:
    """
    Return the first entry as a JAR input stream would present it.

    The manifest, the ``META-INF/`` directory entry and signature files are
    consumed as signature metadata and never returned.
    """
    for info in archive.infolist():
        if not is_signature_related(info.filename):
            return info
    return None


def _load_manifest(archive: zipfile.ZipFile) -> Manifest | None:
    try:
        info = archive.getinfo(MANIFEST_NAME)
    except KeyError:
        return None
    return parse_manifest(read_entry(archive, info.filename))


def _signature_files(archive: zipfile.ZipFile) -> list[str]:
    return [
        name
        for name in archive.namelist()
        if name.upper().startswith(META_INF)
        and name.upper().endswith(SIGNATURE_FILE_SUFFIX)
        and "/" not in name[len(META_INF) :]
    ]


def _find_block(archive: zipfile.ZipFile, sf_name: str) -> str | None:
    base = sf_name[: -len(SIGNATURE_FILE_SUFFIX)]
    names = set(archive.namelist())
    for suffix in SIGNATURE_BLOCK_SUFFIXES:
        for candidate in (base + suffix, base + suffix.lower()):
            if candidate in names:
                return candidate
    return None


def _signers_from_block(block: bytes, sf_name: str) -> list[CodeSigner]:
    """Extract signer identities from a PKCS#7/CMS signature block.

    Returns an empty list when the block cannot be parsed.
    """
    try:
        from asn1crypto import cms, core, x509

        content_info = cms.ContentInfo.load(block)
        if content_info["content_type"].native != "signed_data":
            return []
        signed_data = content_info["content"]

        certificates: dict[tuple[bytes, int], x509.Certificate] = {}
        embedded = signed_data["certificates"]
        for choice in () if isinstance(embedded, core.Void) else embedded:
            cert = choice.chosen
            if isinstance(cert, x509.Certificate):
                certificates[(cert.issuer.dump(), cert.serial_number)] = cert

        signers: list[CodeSigner] = []
        for signer_info in signed_data["signer_infos"]:
            sid = signer_info["sid"]
            if sid.name != "issuer_and_serial_number":
                signers.append(CodeSigner(signature_file=sf_name, issuer="", serial_number=None))
                continue
            issuer = sid.chosen["issuer"]
            serial = sid.chosen["serial_number"].native
            cert = certificates.get((issuer.dump(), serial))
            signers.append(
                CodeSigner(
                    signature_file=sf_name,
                    issuer=issuer.human_friendly,
                    serial_number=serial,
                    subject=cert.subject.human_friendly if cert is not None else None,
                )
            )
        return signers  # noqa: TRY300 -- parse errors below map to "no signer"
    except (ValueError, TypeError, KeyError, AttributeError, IndexError):
        _logger.debug("Could not parse signature block for %s", sf_name, exc_info=True)
        return []


def _covers(sf: Manifest, manifest: Manifest, entry_name: str) -> bool:
    """Whether signature file *sf* covers the manifest section of *entry_name*."""
    if verify_digests(sf.main, "-Digest-Manifest", manifest.raw):
        return True
    sf_section = sf.section(entry_name)
    mf_section = manifest.section(entry_name)
    if sf_section is None or mf_section is None:
        return False
    return verify_digests(sf_section, "-Digest", mf_section.raw)


def get_code_signers(archive: zipfile.ZipFile, entry_name: str) -> tuple[CodeSigner, ...]:
    """
    Return the code signers of one archive entry.

    Args:
        archive: An open archive.
        entry_name: Name of the entry to inspect.

    Returns:
        The signers, empty when the entry is unsigned, is a directory, or
        its digests do not match.

    Raises:
        ArchiveFormatError: If the manifest or a signature file is malformed.
    """
    info = archive.getinfo(entry_name)
    if info.is_dir():
        return ()

    manifest = _load_manifest(archive)
    if manifest is None:
        return ()
    section = manifest.section(entry_name)
    if section is None or not verify_digests(section, "-Digest", read_entry(archive, entry_name)):
        return ()

    signers: list[CodeSigner] = []
    for sf_name in _signature_files(archive):
        block_name = _find_block(archive, sf_name)
        if block_name is None:
            continue
        sf = parse_manifest(read_entry(archive, sf_name))
        if not _covers(sf, manifest, entry_name):
            continue
        signers.extend(_signers_from_block(read_entry(archive, block_name), sf_name))
    return tuple(signers)


def is_signed(path: Path, *, logger: logging.Logger | None = None) -> bool:
    """
    Report whether the archive at *path* is already signed.

    Only the first entry is inspected (see module docstring). An archive
    with no entries is not signed.

    Raises:
        ArchiveFormatError: If the archive is unreadable or corrupt.
    """
    log = logger or _logger
    with open_archive(path) as archive:
        entry = first_entry(archive)
        if entry is None:
            log.debug("%s has no entries: not signed", path.name)
            return False
        signers = get_code_signers(archive, entry.filename)

    if signers:
        log.debug(
            "%s is signed (first entry %s signed by %s)",
            path.name,
            entry.filename,
            ", ".join(s.display_name for s in signers),
        )
        return True
    log.debug("%s is not signed (first entry %s has no signer)", path.name, entry.filename)
    return False
