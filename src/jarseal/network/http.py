"""
HTTP transport for the signing web service.

The service receives the archive as a ``multipart/form-data`` upload and
answers with the signed archive as the response body.

- Standard HTTP(S) via ``urllib.request``
- Optional HTTP/HTTPS proxy
- Refuses HTTPS to HTTP redirect downgrades
- Bounded response reads
"""

from __future__ import annotations

__all__ = ["HttpSigningPrimitive", "build_multipart_body"]

import logging
import urllib.error
import urllib.request
import uuid
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlparse

from ..constants import (
    BYTES_PER_MB,
    DEFAULT_PART_NAME,
    DEFAULT_TIMEOUT_HTTP,
    MAX_RESPONSE_SIZE,
    RECV_BUFFER_SIZE,
)
from ..errors import ConfigurationError, SigningError, TransientSigningError
from ._proxy import split_proxy

if TYPE_CHECKING:
    import http.client

_logger = logging.getLogger(__name__)

# Status codes worth another attempt: timeout, rate limiting, server side trouble
_RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504})

# Upper bound on the diagnostic kept from an error response
_DIAGNOSTIC_LIMIT = 4096


class _Readable(Protocol):
    def read(self, amt: int = ...) -> bytes: ...


def _read_with_limit(response: _Readable, url: str) -> bytes:
    """Read an HTTP response body with size limit to prevent memory exhaustion."""
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = response.read(RECV_BUFFER_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > MAX_RESPONSE_SIZE:
            raise SigningError(
                f"Response from {url} exceeds {MAX_RESPONSE_SIZE // BYTES_PER_MB} MB limit"
            )
        chunks.append(chunk)
    return b"".join(chunks)


class _SafeRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Redirect handler that refuses HTTPS to HTTP downgrades."""

    def redirect_request(  # type: ignore[override]  # urllib stubs use incompatible signature
        self,
        req: urllib.request.Request,
        fp: http.client.HTTPResponse,
        code: int,
        msg: str,
        headers: http.client.HTTPMessage,
        newurl: str,
    ) -> urllib.request.Request | None:
        parsed_orig = urlparse(req.full_url)
        parsed_new = urlparse(newurl)
        if parsed_orig.scheme == "https" and parsed_new.scheme == "http":
            raise SigningError(f"Refused redirect from HTTPS to HTTP: {newurl}")
        return super().redirect_request(req, fp, code, msg, headers, newurl)


def build_multipart_body(
    part_name: str,
    filename: str,
    data: bytes,
    fields: dict[str, str] | None = None,
    boundary: str | None = None,
) -> tuple[bytes, str]:
    """
    Encode a ``multipart/form-data`` body with one file part.

    Args:
        part_name: Form name of the file part.
        filename: File name announced for the file part.
        data: File content.
        fields: Additional plain text form fields.
        boundary: Fixed boundary (random when omitted).

    Returns:
        (body, content_type) ready to POST.
    """
    boundary = boundary or uuid.uuid4().hex
    lines: list[bytes] = []
    for name, value in (fields or {}).items():
        lines.append(f"--{boundary}".encode())
        lines.append(f'Content-Disposition: form-data; name="{name}"'.encode())
        lines.append(b"")
        lines.append(value.encode("utf-8"))
    lines.append(f"--{boundary}".encode())
    lines.append(
        f'Content-Disposition: form-data; name="{part_name}"; filename="{filename}"'.encode()
    )
    lines.append(b"Content-Type: application/java-archive")
    lines.append(b"")
    lines.append(data)
    lines.append(f"--{boundary}--".encode())
    lines.append(b"")
    return b"\r\n".join(lines), f"multipart/form-data; boundary={boundary}"


class HttpSigningPrimitive:
    """Signs archives by uploading them to the signing web service.

    Args:
        url: Service endpoint (http or https).
        timeout: Request timeout in seconds (strictly positive).
        part_name: Form name of the uploaded file part.
        http_proxy: Optional ``host:port`` proxy for http URLs.
        https_proxy: Optional ``host:port`` proxy for https URLs.

    Raises:
        ConfigurationError: On an invalid URL, timeout or proxy setting.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: int = DEFAULT_TIMEOUT_HTTP,
        part_name: str = DEFAULT_PART_NAME,
        http_proxy: str | None = None,
        https_proxy: str | None = None,
    ) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise ConfigurationError(f"Invalid URL scheme {parsed.scheme!r}. Use http:// or https://.")
        if not parsed.hostname:
            raise ConfigurationError(f"Invalid URL: no hostname found in {url!r}")
        if timeout <= 0:
            raise ConfigurationError("The timeout must be strictly positive")

        self.url = url
        self.timeout = timeout
        self.part_name = part_name

        proxies: dict[str, str] = {}
        if http_proxy:
            host, port = split_proxy(http_proxy, "HTTP")
            proxies["http"] = f"http://{host}:{port}"
        if https_proxy:
            host, port = split_proxy(https_proxy, "HTTPS")
            proxies["https"] = f"http://{host}:{port}"
        self.proxies = proxies

        handlers: list[urllib.request.BaseHandler] = [_SafeRedirectHandler()]
        if proxies:
            handlers.append(urllib.request.ProxyHandler(proxies))
        self._opener = urllib.request.build_opener(*handlers)

    def __repr__(self) -> str:
        return f"HttpSigningPrimitive(url={self.url!r}, timeout={self.timeout})"

    def _open(self, request: urllib.request.Request) -> http.client.HTTPResponse:
        """Thin wrapper around the opener to simplify testing."""
        return self._opener.open(request, timeout=self.timeout)

    def sign(self, data: bytes, digest_algorithm: str | None = None) -> bytes:
        fields = {"digestalg": digest_algorithm} if digest_algorithm else None
        body, content_type = build_multipart_body(self.part_name, "archive.jar", data, fields)

        _logger.debug("POST %s (timeout=%ds, %d bytes)", self.url, self.timeout, len(body))
        request = urllib.request.Request(self.url, data=body, method="POST")  # noqa: S310 -- scheme validated in __init__
        request.add_header("Content-Type", content_type)

        try:
            with self._open(request) as response:
                signed = _read_with_limit(response, self.url)
        except urllib.error.HTTPError as exc:
            output = _error_body(exc)
            raise SigningError(
                f"Signing service returned HTTP {exc.code} {exc.reason}: {self.url}",
                output=output,
                retryable=exc.code in _RETRYABLE_STATUS,
            ) from exc
        except urllib.error.URLError as exc:
            raise TransientSigningError(f"HTTP POST failed: {self.url}: {exc.reason}") from exc
        except TimeoutError as exc:
            raise TransientSigningError(
                f"Connection timed out after {self.timeout}s: {self.url}"
            ) from exc
        except OSError as exc:
            raise TransientSigningError(f"HTTP POST failed: {self.url}: {exc}") from exc

        _logger.debug("POST %s -> %d bytes", self.url, len(signed))
        if not signed:
            raise TransientSigningError(f"Signing service returned an empty body: {self.url}")
        return signed


def _error_body(exc: urllib.error.HTTPError) -> str:
    """Best-effort decode of an error response body for diagnostics."""
    try:
        raw = exc.read(_DIAGNOSTIC_LIMIT)
    except OSError:
        return ""
    return raw.decode("utf-8", errors="replace") if raw else ""
