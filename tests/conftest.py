"""Shared test fixtures for jarseal test suite."""

from __future__ import annotations

import base64
import hashlib
import io
import struct
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest

from jarseal.config.signing import make_signing_config
from jarseal.core.detection import is_signature_related

# ── JAR builders ──────────────────────────────────────────────────────


def _digest(data: bytes) -> str:
    return base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")


def signature_block(common_name: str = "Test Signer", serial: int = 1) -> bytes:
    """A PKCS#7 SignedData blob with one signer and no certificates."""
    from asn1crypto import algos, cms, x509

    signer_info = cms.SignerInfo(
        {
            "version": "v1",
            "sid": cms.SignerIdentifier(
                {
                    "issuer_and_serial_number": cms.IssuerAndSerialNumber(
                        {
                            "issuer": x509.Name.build({"common_name": common_name}),
                            "serial_number": serial,
                        }
                    )
                }
            ),
            "digest_algorithm": algos.DigestAlgorithm({"algorithm": "sha256"}),
            "signature_algorithm": algos.SignedDigestAlgorithm({"algorithm": "rsassa_pkcs1v15"}),
            "signature": b"\x01" * 32,
        }
    )
    signed_data = cms.SignedData(
        {
            "version": "v1",
            "digest_algorithms": [algos.DigestAlgorithm({"algorithm": "sha256"})],
            "encap_content_info": {"content_type": "data"},
            "signer_infos": [signer_info],
        }
    )
    return cms.ContentInfo({"content_type": "signed_data", "content": signed_data}).dump()


def build_jar_bytes(
    entries: list[tuple[str, bytes]],
    signed: set[str] | frozenset[str] = frozenset(),
    *,
    signer: str = "SIGNER",
    whole_manifest: bool = False,
) -> bytes:
    """
    Build a JAR in memory.

    Entries listed in *signed* get a manifest section, a signature file
    section and a signature block; the signature metadata comes first, as
    jarsigner writes it. With *whole_manifest* the signature file covers
    the manifest through ``SHA-256-Digest-Manifest`` only.
    """
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        if signed:
            main = b"Manifest-Version: 1.0\r\nCreated-By: jarseal tests\r\n\r\n"
            sections = {
                name: f"Name: {name}\r\nSHA-256-Digest: {_digest(data)}\r\n\r\n".encode()
                for name, data in entries
                if name in signed
            }
            manifest = main + b"".join(sections.values())

            sf = b"Signature-Version: 1.0\r\n"
            if whole_manifest:
                sf += f"SHA-256-Digest-Manifest: {_digest(manifest)}\r\n".encode()
            sf += b"\r\n"
            if not whole_manifest:
                for name, section in sections.items():
                    sf += f"Name: {name}\r\nSHA-256-Digest: {_digest(section)}\r\n\r\n".encode()

            zf.writestr("META-INF/MANIFEST.MF", manifest)
            zf.writestr(f"META-INF/{signer}.SF", sf)
            zf.writestr(f"META-INF/{signer}.RSA", signature_block())
        for name, data in entries:
            zf.writestr(name, data)
    return buf.getvalue()


def sign_jar_bytes(data: bytes) -> bytes:
    """What a signing service does: sign every entry of the archive."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        entries = [
            (info.filename, zf.read(info.filename))
            for info in zf.infolist()
            if not info.is_dir() and not is_signature_related(info.filename)
        ]
    return build_jar_bytes(entries, {name for name, _ in entries})


class FakePrimitive:
    """In-memory signing primitive recording every call.

    Attributes:
        calls: (data, digest_algorithm) per call.
        errors: Raised in order by the first calls.
        fail_if: Optional ``data -> Exception | None`` consulted on every call.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[bytes, str | None]] = []
        self.errors: list[Exception] = []
        self.fail_if = None

    def sign(self, data: bytes, digest_algorithm: str | None = None) -> bytes:
        self.calls.append((data, digest_algorithm))
        if self.errors:
            raise self.errors.pop(0)
        if self.fail_if is not None:
            exc = self.fail_if(data)
            if exc is not None:
                raise exc
        return sign_jar_bytes(data)

    @property
    def call_count(self) -> int:
        return len(self.calls)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def config_dir(tmp_path, monkeypatch):
    """Redirect the config file to a temp directory and clear jarseal env vars."""
    for name in (
        "JARSEAL_URL",
        "JARSEAL_TIMEOUT",
        "JARSEAL_RETRY_LIMIT",
        "JARSEAL_RETRY_WAIT",
        "JARSEAL_CONTINUE_ON_FAIL",
    ):
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    config_file = home / "config.json"
    with (
        patch("jarseal.config._storage.CONFIG_DIR", home),
        patch("jarseal.config._storage.CONFIG_FILE", config_file),
    ):
        yield home, config_file


@pytest.fixture
def make_jar(tmp_path):
    """Write a JAR under tmp_path: ``make_jar("a.jar", entries, signed=...)``."""

    def _make(name: str, entries: list[tuple[str, bytes]], signed=frozenset(), **kwargs) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_jar_bytes(entries, signed, **kwargs))
        return path

    return _make


@pytest.fixture
def jar_bytes():
    return build_jar_bytes


@pytest.fixture
def signed_jar_bytes():
    return sign_jar_bytes


@pytest.fixture
def fake_primitive():
    return FakePrimitive()


@pytest.fixture
def fast_config():
    """Build a config that never sleeps between retries."""

    def _make(**kwargs):
        kwargs.setdefault("retry_wait", 0)
        return make_signing_config(**kwargs)

    return _make


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested waits."""
    waits: list[float] = []
    return waits.append, waits


@pytest.fixture
def corrupt_entry():
    """Flip every compressed byte of one entry so reading it fails to inflate."""

    def _corrupt(path: Path, name: str) -> None:
        data = bytearray(path.read_bytes())
        with zipfile.ZipFile(path) as zf:
            info = zf.getinfo(name)
        name_len, extra_len = struct.unpack_from("<HH", data, info.header_offset + 26)
        start = info.header_offset + 30 + name_len + extra_len
        for i in range(start, start + info.compress_size):
            data[i] ^= 0xFF
        path.write_bytes(bytes(data))

    return _corrupt
