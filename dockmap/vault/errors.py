"""Credential vault errors."""

from __future__ import annotations

from dockmap.errors import AuthError


class VaultConfigError(RuntimeError):
    """Raised at start-up when the encryption key is unusable."""

    @classmethod
    def missing_key(cls) -> VaultConfigError:
        """Return an error when no key is configured."""
        return cls("DOCKMAP_ENCRYPTION_KEY is required for the credential vault")

    @classmethod
    def wrong_length(cls, length: int) -> VaultConfigError:
        """Return an error when the key is not exactly 32 bytes."""
        return cls(f"DOCKMAP_ENCRYPTION_KEY must be exactly 32 bytes, got {length}")

    @classmethod
    def placeholder_in_production(cls) -> VaultConfigError:
        """Return an error when the shipped placeholder key reaches production."""
        return cls("DOCKMAP_ENCRYPTION_KEY must be changed in production")


class CredentialDecryptError(AuthError):
    """Raised when a stored credential cannot be decrypted."""

    def __init__(self) -> None:
        """Use a fixed message; the ciphertext is never echoed."""
        super().__init__("stored registry credential could not be decrypted")
