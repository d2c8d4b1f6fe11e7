"""Symmetric encryption of registry credentials at rest."""

from __future__ import annotations

from .cipher import KEY_LENGTH, PLACEHOLDER_KEY, CredentialVault
from .errors import CredentialDecryptError, VaultConfigError

__all__ = [
    "KEY_LENGTH",
    "PLACEHOLDER_KEY",
    "CredentialDecryptError",
    "CredentialVault",
    "VaultConfigError",
]
