"""Authentication for shapesync clients."""

from __future__ import annotations

from shapesync.auth.verifier import CredentialVerifier

__all__ = ["CredentialVerifier"]
