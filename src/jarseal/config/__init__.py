"""
Configuration management.

Unified API for all config-related functionality. Instead of importing
from individual submodules, import from this package directly.
"""

from __future__ import annotations

from .config import (
    CONFIG_FILE,
    get_server_config,
    get_signing_config,
    reset_config,
    resolve_deprecated,
    save_settings,
)
from .signing import SigningConfig, make_signing_config

__all__ = [
    "CONFIG_FILE",
    "SigningConfig",
    "get_server_config",
    "get_signing_config",
    "make_signing_config",
    "reset_config",
    "resolve_deprecated",
    "save_settings",
]
