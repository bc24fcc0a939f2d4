"""Signing primitives: the signing web service and the local jarsigner tool."""

from __future__ import annotations

from .command import CommandSigningPrimitive, make_command_primitive
from .http import HttpSigningPrimitive
from .protocol import SigningPrimitive

__all__ = [
    "CommandSigningPrimitive",
    "HttpSigningPrimitive",
    "SigningPrimitive",
    "make_command_primitive",
]
