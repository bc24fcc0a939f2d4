"""Core signing operations: detection, nested archives, retry and batch driving."""

from __future__ import annotations

__all__: list[str] = []
