"""Proxy setting validation shared by the signing primitives."""

from __future__ import annotations

from ..errors import ConfigurationError


def split_proxy(proxy: str | None, kind: str) -> tuple[str, int]:
    """
    Split a ``host:port`` proxy setting into its parts.

    Args:
        proxy: The setting, or None/empty for no proxy.
        kind: "HTTP" or "HTTPS", used in error messages.

    Returns:
        (host, port), or ("", 0) when no proxy is set.

    Raises:
        ConfigurationError: If a host is given without a strictly positive port.
    """
    if not proxy:
        return "", 0
    host, sep, port = proxy.rpartition(":")
    if not sep or not host:
        raise ConfigurationError(
            f"The {kind} proxy port must be specified and strictly positive "
            f"when the {kind} proxy host is ({proxy!r})"
        )
    if not port.isdigit() or int(port) <= 0:
        raise ConfigurationError(f"The {kind} proxy port must be strictly positive ({proxy!r})")
    return host, int(port)
