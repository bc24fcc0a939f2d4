"""
Local ``jarsigner`` signing primitive.

Runs the JDK ``jarsigner`` tool against a temporary copy of the archive.
The tool signs the file in place; exit code 0 means success, anything else
is a failure whose captured output is kept as the diagnostic.
"""

from __future__ import annotations

__all__ = ["CommandSigningPrimitive", "make_command_primitive"]

import logging
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ..constants import DEFAULT_JARSIGNER, DEFAULT_TIMEOUT_COMMAND
from ..errors import ConfigurationError, SigningError, TransientSigningError
from ._proxy import split_proxy

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandSigningPrimitive:
    """Signs archives with a local ``jarsigner`` executable.

    Build instances with :func:`make_command_primitive`, which validates
    the settings.

    Attributes:
        keystore: Path to the keystore file.
        keystore_password_file: Path to the file storing the keystore password.
        alias: Alias of the signing key in the keystore.
        tsa: Timestamping authority URL.
        jarsigner: The jarsigner executable.
        timeout: Seconds before the process is killed.
        http_proxy_host / http_proxy_port: Proxy passed to the JVM for http.
        https_proxy_host / https_proxy_port: Proxy passed to the JVM for https.
    """

    keystore: Path
    keystore_password_file: Path
    alias: str
    tsa: str
    jarsigner: str = DEFAULT_JARSIGNER
    timeout: int = DEFAULT_TIMEOUT_COMMAND
    http_proxy_host: str = ""
    http_proxy_port: int = 0
    https_proxy_host: str = ""
    https_proxy_port: int = 0

    def build_command(self, jar: Path, digest_algorithm: str | None = None) -> list[str]:
        """Assemble the jarsigner command line for *jar*."""
        command = [self.jarsigner]
        if self.http_proxy_host:
            command += [
                f"-J-Dhttp.proxyHost={self.http_proxy_host}",
                f"-J-Dhttp.proxyPort={self.http_proxy_port}",
            ]
        if self.https_proxy_host:
            command += [
                f"-J-Dhttps.proxyHost={self.https_proxy_host}",
                f"-J-Dhttps.proxyPort={self.https_proxy_port}",
            ]
        if digest_algorithm:
            command += ["-digestalg", digest_algorithm]
        command += [
            "-tsa",
            self.tsa,
            "-verbose",
            "-keystore",
            str(self.keystore),
            "-storepass:file",
            str(self.keystore_password_file),
            str(jar),
            self.alias,
        ]
        return command

    def sign(self, data: bytes, digest_algorithm: str | None = None) -> bytes:
        with tempfile.TemporaryDirectory(prefix="jarseal-cmd-") as tmp:
            jar = Path(tmp) / "archive.jar"
            jar.write_bytes(data)
            command = self.build_command(jar, digest_algorithm)
            _logger.debug("Running %s (timeout=%ds)", self.jarsigner, self.timeout)

            try:
                completed = subprocess.run(  # noqa: S603 -- argv list, no shell
                    command,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    timeout=self.timeout,
                    check=False,
                )
            except FileNotFoundError as exc:
                raise SigningError(f"The '{self.jarsigner}' command was not found") from exc
            except subprocess.TimeoutExpired as exc:
                output = _decode(exc.output)
                raise TransientSigningError(
                    f"The '{self.jarsigner}' command timed out after {self.timeout}s",
                    output=output,
                ) from exc

            output = _decode(completed.stdout)
            if completed.returncode != 0:
                raise TransientSigningError(
                    f"The '{self.jarsigner}' command exited with value '{completed.returncode}'",
                    output=output,
                )
            _logger.debug("%s output:\n%s", self.jarsigner, output)
            return jar.read_bytes()


def _decode(raw: bytes | str | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8", errors="replace")


def make_command_primitive(
    *,
    keystore: str | Path,
    keystore_password_file: str | Path,
    alias: str,
    tsa: str,
    jarsigner: str = DEFAULT_JARSIGNER,
    timeout: int = DEFAULT_TIMEOUT_COMMAND,
    http_proxy: str | None = None,
    https_proxy: str | None = None,
) -> CommandSigningPrimitive:
    """
    Validate settings and build a :class:`CommandSigningPrimitive`.

    Proxies are given as ``host:port``.

    Raises:
        ConfigurationError: On a non-positive timeout, a proxy host without
            a positive port, or missing keystore settings.
    """
    if timeout <= 0:
        raise ConfigurationError("The timeout must be strictly positive")
    if not alias:
        raise ConfigurationError("The keystore alias must be specified")
    if not tsa:
        raise ConfigurationError("The timestamping authority URL must be specified")

    http_host, http_port = split_proxy(http_proxy, "HTTP")
    https_host, https_port = split_proxy(https_proxy, "HTTPS")

    return CommandSigningPrimitive(
        keystore=Path(keystore),
        keystore_password_file=Path(keystore_password_file),
        alias=alias,
        tsa=tsa,
        jarsigner=jarsigner,
        timeout=timeout,
        http_proxy_host=http_host,
        http_proxy_port=http_port,
        https_proxy_host=https_host,
        https_proxy_port=https_port,
    )
