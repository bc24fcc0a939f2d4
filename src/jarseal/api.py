"""High-level convenience API for signing JAR files.

Provides :func:`sign_jars`, which resolves the signing service and the
signing configuration from arguments, environment and saved config, and
:func:`make_primitive` to build the signing primitive on its own.

For lower-level control, build a :class:`~jarseal.core.orchestrator.SigningOrchestrator`
or an :class:`~jarseal.core.pipeline.ArchivePipeline` directly with any
:class:`~jarseal.network.protocol.SigningPrimitive`.
"""

from __future__ import annotations

__all__ = ["make_primitive", "sign_jars"]

import logging
import time
from typing import TYPE_CHECKING

from .config import get_server_config, get_signing_config
from .core.orchestrator import SigningOrchestrator
from .errors import ConfigurationError
from .network.command import make_command_primitive
from .network.http import HttpSigningPrimitive

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

    from .core.models import Artifact, BatchResult
    from .network.protocol import SigningPrimitive

_logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def make_primitive(
    *,
    url: str | None = None,
    timeout: int | None = None,
    http_proxy: str | None = None,
    https_proxy: str | None = None,
    keystore: str | Path | None = None,
    keystore_password_file: str | Path | None = None,
    alias: str | None = None,
    tsa: str | None = None,
    jarsigner: str | None = None,
) -> SigningPrimitive:
    """Build the signing primitive.

    With a *keystore* the local ``jarsigner`` command signs; otherwise the
    archive is uploaded to the signing service, resolved as:
    ``url`` argument > ``JARSEAL_URL`` > saved config > built-in default.

    Raises:
        ConfigurationError: On an invalid URL, timeout or proxy, or an
            incomplete keystore setup.
    """
    if keystore is not None:
        if keystore_password_file is None or not alias or not tsa:
            raise ConfigurationError(
                "Signing with a keystore requires a password file, an alias and a TSA URL"
            )
        kwargs: dict[str, object] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        if jarsigner:
            kwargs["jarsigner"] = jarsigner
        return make_command_primitive(
            keystore=keystore,
            keystore_password_file=keystore_password_file,
            alias=alias,
            tsa=tsa,
            http_proxy=http_proxy,
            https_proxy=https_proxy,
            **kwargs,  # type: ignore[arg-type]  # optional overrides
        )

    resolved_url, resolved_timeout = get_server_config(url, timeout)
    _logger.debug("Using signing service %s (timeout=%ds)", resolved_url, resolved_timeout)
    return HttpSigningPrimitive(
        resolved_url,
        timeout=resolved_timeout,
        http_proxy=http_proxy,
        https_proxy=https_proxy,
    )


def sign_jars(
    paths: Iterable[Artifact | str | Path],
    *,
    primitive: SigningPrimitive | None = None,
    url: str | None = None,
    timeout: int | None = None,
    retry_limit: int | None = None,
    retry_wait: float | None = None,
    continue_on_fail: bool | None = None,
    max_depth: int | None = None,
    digest_algorithm: str | None = None,
    resigning: str | None = None,
    inner_workers: int | None = None,
    skip: bool = False,
    logger: logging.Logger | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BatchResult:
    """Sign JAR files in place.

    Settings left as ``None`` are resolved from the environment, the saved
    config and the defaults. Files that are not ``.jar`` archives are
    skipped.

    Args:
        paths: Files to sign, in order.
        primitive: Signing primitive; built with :func:`make_primitive`
            from *url* and *timeout* when omitted.
        url: Signing service URL.
        timeout: Request timeout in seconds.
        retry_limit: Retries after a failed attempt.
        retry_wait: Seconds between attempts.
        continue_on_fail: Keep going after a failed archive.
        max_depth: 0 to leave nested archives alone, 1 to sign them.
        digest_algorithm: Digest algorithm, e.g. ``"SHA-256"``.
        resigning: ``"resign"``, ``"reject"`` or ``"ignore"``.
        inner_workers: Nested archives signed concurrently.
        skip: Do nothing and report success.
        logger: Receives progress records.
        sleep: Wait function used between retries.

    Returns:
        Per-file results and the batch verdict. Failures are reported in
        the result; call :meth:`BatchResult.raise_for_verdict` to turn
        them into an exception.

    Raises:
        ConfigurationError: If the configuration is invalid. Raised before
            any file is touched.
    """
    config = get_signing_config(
        retry_limit=retry_limit,
        retry_wait=retry_wait,
        continue_on_fail=continue_on_fail,
        max_depth=max_depth,
        digest_algorithm=digest_algorithm,
        resigning=resigning,
        inner_workers=inner_workers,
    )
    if primitive is None:
        primitive = make_primitive(url=url, timeout=timeout)

    orchestrator = SigningOrchestrator(primitive, config, logger=logger, sleep=sleep)
    return orchestrator.run(paths, skip=skip)
