"""
Layered configuration for jarseal.

Every setting is resolved once, first match wins:

    explicit argument > environment variable > ~/.jarseal/config.json > default

The config file also accepts the deprecated keys ``retryLimit``,
``retryTimer`` and ``continueOnFail``. A deprecated number only applies
when it differs from the default while its current counterpart is still
at the default; deprecated and current flags are OR-ed.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "get_server_config",
    "get_signing_config",
    "reset_config",
    "resolve_deprecated",
    "save_settings",
]

import logging
import os
from typing import TYPE_CHECKING, TypeVar

from ..constants import (
    DEFAULT_CONTINUE_ON_FAIL,
    DEFAULT_MAX_DEPTH,
    DEFAULT_RESIGNING,
    DEFAULT_RETRY_LIMIT,
    DEFAULT_RETRY_WAIT,
    DEFAULT_SIGNER_URL,
    DEFAULT_TIMEOUT_HTTP,
    ENV_CONTINUE_ON_FAIL,
    ENV_RETRY_LIMIT,
    ENV_RETRY_WAIT,
    ENV_TIMEOUT,
    ENV_URL,
)
from ..errors import ConfigurationError
from ._storage import CONFIG_DIR, CONFIG_FILE, load_config, load_raw_config, save_config
from .signing import make_signing_config

if TYPE_CHECKING:
    from .signing import SigningConfig

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})

# Keys save_settings() accepts
_SETTING_KEYS = frozenset(
    {
        "url",
        "timeout",
        "retry_limit",
        "retry_wait",
        "continue_on_fail",
        "max_depth",
        "digest_algorithm",
        "resigning",
    }
)


# ── Deprecated keys ──────────────────────────────────────────────────


def resolve_deprecated(current: T, deprecated: T | None, default: T) -> T:
    """
    Pick between a current setting and its deprecated spelling.

    The deprecated value wins only when it was changed from the default
    and the current value was not.
    """
    if deprecated is not None and deprecated != default and current == default:
        return deprecated
    return current


# ── Environment parsing ──────────────────────────────────────────────


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid {name} value {raw!r}: expected an integer") from None
    if value < 0:
        raise ConfigurationError(f"Invalid {name} value {raw!r}: must not be negative")
    return value


def _env_bool(name: str) -> bool | None:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return None
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigurationError(f"Invalid {name} value {raw!r}: expected true or false")


def _first(*values: T | None) -> T | None:
    for value in values:
        if value is not None:
            return value
    return None


# ── Server config ────────────────────────────────────────────────────


def get_server_config(url: str | None = None, timeout: int | None = None) -> tuple[str, int]:
    """
    Resolve the signing service URL and request timeout.

    Priority: arguments > env vars > config file > defaults.

    Raises:
        ConfigurationError: If an environment value is malformed or the
            timeout is not strictly positive.
    """
    config = load_config()
    env_url = os.environ.get(ENV_URL, "").strip() or None

    resolved_url = _first(url, env_url, config.get("url")) or DEFAULT_SIGNER_URL
    resolved_timeout = _first(timeout, _env_int(ENV_TIMEOUT), config.get("timeout"))
    if resolved_timeout is None:
        resolved_timeout = DEFAULT_TIMEOUT_HTTP
    if resolved_timeout <= 0:
        raise ConfigurationError("The timeout must be strictly positive")
    return resolved_url, resolved_timeout


# ── Signing config ───────────────────────────────────────────────────


def get_signing_config(
    *,
    retry_limit: int | None = None,
    retry_wait: float | None = None,
    continue_on_fail: bool | None = None,
    max_depth: int | None = None,
    digest_algorithm: str | None = None,
    resigning: str | None = None,
    inner_workers: int | None = None,
) -> SigningConfig:
    """
    Assemble the effective :class:`SigningConfig`.

    Arguments left as None fall through to the environment, the config
    file and the defaults. ``continue_on_fail`` is enabled when any
    source enables it.

    Raises:
        ConfigurationError: On malformed environment values or an invalid
            resulting configuration.
    """
    config = load_config()

    file_retry_limit = resolve_deprecated(
        config.get("retry_limit", DEFAULT_RETRY_LIMIT), config.get("retryLimit"), DEFAULT_RETRY_LIMIT
    )
    file_retry_wait = resolve_deprecated(
        config.get("retry_wait", DEFAULT_RETRY_WAIT), config.get("retryTimer"), DEFAULT_RETRY_WAIT
    )
    file_continue = config.get("continue_on_fail", DEFAULT_CONTINUE_ON_FAIL) or config.get(
        "continueOnFail", False
    )
    for key in ("retryLimit", "retryTimer", "continueOnFail"):
        if key in config:
            _logger.warning("Config key %r is deprecated, see 'jarseal config --help'", key)

    env_continue = _env_bool(ENV_CONTINUE_ON_FAIL)
    resolved_continue = bool(continue_on_fail) or bool(env_continue) or file_continue

    values: dict[str, object] = {
        "retry_limit": _first(retry_limit, _env_int(ENV_RETRY_LIMIT), file_retry_limit),
        "retry_wait": _first(retry_wait, _env_int(ENV_RETRY_WAIT), file_retry_wait),
        "continue_on_fail": resolved_continue,
        "max_depth": _first(max_depth, config.get("max_depth"), DEFAULT_MAX_DEPTH),
        "digest_algorithm": _first(digest_algorithm, config.get("digest_algorithm")),
        "resigning": _first(resigning, config.get("resigning"), DEFAULT_RESIGNING),
    }
    if inner_workers is not None:
        values["inner_workers"] = inner_workers

    signing_config = make_signing_config(**values)  # type: ignore[arg-type]  # validated there
    _logger.debug("Effective signing config: %s", signing_config)
    return signing_config


# ── Persistence ──────────────────────────────────────────────────────


def save_settings(**settings: object) -> None:
    """
    Merge settings into the config file.

    A value of None removes the key. Deprecated keys are dropped whenever
    their current counterpart is written.

    Raises:
        ConfigurationError: On an unknown setting name.
    """
    unknown = set(settings) - _SETTING_KEYS
    if unknown:
        raise ConfigurationError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

    config = load_raw_config()
    for key, value in settings.items():
        if value is None:
            config.pop(key, None)
        else:
            config[key] = value
    for current, deprecated in (
        ("retry_limit", "retryLimit"),
        ("retry_wait", "retryTimer"),
        ("continue_on_fail", "continueOnFail"),
    ):
        if current in settings:
            config.pop(deprecated, None)
    save_config(config)


def reset_config() -> None:
    """Clear all saved settings."""
    save_config({})
