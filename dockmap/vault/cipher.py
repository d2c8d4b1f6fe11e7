"""AES-256-GCM credential vault.

Registry tokens are stored as a base64 ciphertext plus a base64 nonce. The
vault is constructed once per process and injected wherever tokens are
sealed or opened.

Usage
-----
>>> vault = CredentialVault(b"0" * 32)
>>> ciphertext, iv = vault.encrypt("dckr_pat_example")
>>> vault.decrypt(ciphertext, iv)
'dckr_pat_example'

"""

from __future__ import annotations

import base64
import binascii
import os
import typing as typ

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import CredentialDecryptError, VaultConfigError

if typ.TYPE_CHECKING:
    from dockmap.config import AppConfig

KEY_LENGTH = 32
NONCE_LENGTH = 12
PLACEHOLDER_KEY = "a-32-byte-encryption-key-here!!!"


class CredentialVault:
    """Seal and open registry credentials with a process-wide key."""

    def __init__(self, key: bytes) -> None:
        """Bind the vault to a 32-byte key.

        Raises
        ------
        VaultConfigError
            If ``key`` is not exactly 32 bytes.

        """
        if len(key) != KEY_LENGTH:
            raise VaultConfigError.wrong_length(len(key))
        self._aead = AESGCM(key)

    @classmethod
    def from_config(cls, config: AppConfig) -> CredentialVault:
        """Build the vault from application config, failing fast on bad keys.

        The key is rejected when missing, when it is not 32 bytes once UTF-8
        encoded, or when it is the shipped placeholder in production.
        """
        raw = config.encryption_key
        if not raw:
            raise VaultConfigError.missing_key()
        if config.is_production and raw == PLACEHOLDER_KEY:
            raise VaultConfigError.placeholder_in_production()
        return cls(raw.encode("utf-8"))

    def encrypt(self, secret: str) -> tuple[str, str]:
        """Encrypt ``secret`` and return ``(ciphertext, iv)`` as base64 text."""
        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._aead.encrypt(nonce, secret.encode("utf-8"), None)
        return (
            base64.b64encode(sealed).decode("ascii"),
            base64.b64encode(nonce).decode("ascii"),
        )

    def decrypt(self, ciphertext: str, iv: str) -> str:
        """Recover the secret sealed by :meth:`encrypt`.

        Raises
        ------
        CredentialDecryptError
            If the inputs are not valid base64, the nonce has the wrong size,
            or authentication of the ciphertext fails.

        """
        try:
            sealed = base64.b64decode(ciphertext, validate=True)
            nonce = base64.b64decode(iv, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CredentialDecryptError from exc
        if len(nonce) != NONCE_LENGTH:
            raise CredentialDecryptError
        try:
            plain = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise CredentialDecryptError from exc
        return plain.decode("utf-8")
