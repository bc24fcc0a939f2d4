"""
Low-level config file I/O for jarseal.

Handles reading, writing, and validating the on-disk config.json.
Unknown keys are preserved on save so newer config files survive a
round trip through an older jarseal.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "load_config",
    "load_raw_config",
    "save_config",
]

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, TypedDict, cast

_logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".jarseal"
CONFIG_FILE = CONFIG_DIR / "config.json"


class ConfigDict(TypedDict, total=False):
    """Type definition for the config file structure.

    ``retryLimit``, ``retryTimer`` and ``continueOnFail`` are the
    deprecated spellings of ``retry_limit``, ``retry_wait`` and
    ``continue_on_fail``.
    """

    url: str
    timeout: int
    retry_limit: int
    retry_wait: int
    continue_on_fail: bool
    max_depth: int
    digest_algorithm: str
    resigning: str
    retryLimit: int  # noqa: N815 -- deprecated key name
    retryTimer: int  # noqa: N815 -- deprecated key name
    continueOnFail: bool  # noqa: N815 -- deprecated key name


_STR_KEYS = ("url", "digest_algorithm", "resigning")
_INT_KEYS = ("timeout", "retry_limit", "retry_wait", "max_depth", "retryLimit", "retryTimer")
_BOOL_KEYS = ("continue_on_fail", "continueOnFail")


def load_raw_config() -> dict[str, object]:
    """Load raw config dict from disk, preserving all keys."""
    try:
        data: Any = json.loads(CONFIG_FILE.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return cast("dict[str, object]", data)
    except FileNotFoundError:
        pass
    except json.JSONDecodeError as e:
        _logger.warning("Config file corrupted, ignoring: %s", e)
    except OSError as e:
        _logger.warning("Cannot read config file: %s", e)
    return {}


def _validate_config_dict(data: dict[str, object]) -> ConfigDict:
    """Validate and return config dict, picking only known keys with correct types."""
    result: ConfigDict = {}
    for key in _STR_KEYS:
        val = data.get(key)
        if isinstance(val, str):
            result[key] = val  # type: ignore[literal-required]  # dynamic key from known set
    for key in _INT_KEYS:
        val = data.get(key)
        if val is None:
            continue
        # bool is an int subclass; "retry_limit": true is a typo, not 1
        if isinstance(val, int) and not isinstance(val, bool) and val >= 0:
            result[key] = val  # type: ignore[literal-required]  # dynamic key from known set
        else:
            _logger.warning("Config %s=%r is not a non-negative integer, ignoring", key, val)
    for key in _BOOL_KEYS:
        val = data.get(key)
        if val is None:
            continue
        if isinstance(val, bool):
            result[key] = val  # type: ignore[literal-required]  # dynamic key from known set
        else:
            _logger.warning("Config %s=%r is not a boolean, ignoring", key, val)
    return result


def load_config() -> ConfigDict:
    """Load config from disk, returning only known typed keys."""
    return _validate_config_dict(load_raw_config())


def save_config(config: dict[str, object]) -> None:
    """Save config to disk with restricted permissions (0600).

    Uses atomic write (temp file + rename) to prevent corruption
    if the process is interrupted mid-write.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)
    content = json.dumps(config, indent=2, ensure_ascii=False) + "\n"
    fd, tmp_path = tempfile.mkstemp(dir=CONFIG_DIR, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        fd = -1  # closed by the context manager
        if os.name != "nt":
            try:
                tmp.chmod(0o600)
            except OSError:
                _logger.exception("Failed to set restrictive permissions on %s", tmp)
        tmp.replace(CONFIG_FILE)
    except BaseException:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise
