"""
Signing primitive abstraction.

Defines the interface that signing backends must implement. The core
signing logic depends on this protocol, not on concrete implementations.
"""

from __future__ import annotations

from typing import Protocol


class SigningPrimitive(Protocol):
    """Protocol for the external operation that signs one archive.

    Implementations may upload the archive to a signing service
    (HTTP multipart) or run a local ``jarsigner`` executable. The
    primitive is opaque, potentially slow, and fallible.
    """

    def sign(self, data: bytes, digest_algorithm: str | None = None) -> bytes:
        """
        Sign an archive.

        Args:
            data: Complete archive content.
            digest_algorithm: Standard digest name (e.g. "SHA-256") used to
                digest the archive entries, or None for the backend default.

        Returns:
            The signed archive content.

        Raises:
            TransientSigningError: On network/process failures and timeouts.
            SigningError: On failures that retrying will not fix.
        """
        ...
