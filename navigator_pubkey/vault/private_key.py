"""
PrivateKeyVault — protects a principal's private key under its credential.

The vault is stateless: it turns a plaintext PEM private key into
ciphertext and back. Whether a principal is protected is tracked on the
record and guarded by the coordinator.
"""
import logging
from typing import Optional

from cryptography.hazmat.primitives import serialization

from ..config import CIPHER_HARDENED, CIPHER_LEGACY, VaultSettings
from ..exceptions import DecryptionFailed
from .crypto import (
    encrypt_with_credential,
    decrypt_with_credential,
    legacy_encrypt_with_credential,
    legacy_decrypt_with_credential,
)

logger = logging.getLogger("navigator.pubkey")


class PrivateKeyVault:
    """Credential-derived cipher for private keys at rest.

    Two formats are supported:

    - ``aes-cbc-hmac`` (default): random salt and IV, PBKDF2 key
      derivation and an HMAC tag, so a wrong credential is always detected.
    - ``aes-cbc-zero-iv``: the legacy record format. Identical keys
      and credentials yield identical ciphertext and there is no tag.
    """

    def __init__(self, cipher: str = CIPHER_HARDENED, iterations: int = 200_000):
        if cipher not in (CIPHER_HARDENED, CIPHER_LEGACY):
            raise ValueError(f"Unsupported private key cipher: {cipher}")
        self._cipher = cipher
        self._iterations = iterations

    @classmethod
    def from_settings(cls, settings: Optional[VaultSettings] = None) -> "PrivateKeyVault":
        settings = settings or VaultSettings()
        return cls(cipher=settings.cipher, iterations=settings.kdf_iterations)

    @property
    def cipher(self) -> str:
        return self._cipher

    def _validate_credential(self, credential: str) -> None:
        if not isinstance(credential, str) or not credential:
            raise ValueError("Credential cannot be empty")

    def protect(self, plaintext_key: bytes, credential: str) -> bytes:
        """Encrypt a PEM private key under ``credential``."""
        self._validate_credential(credential)
        if self._cipher == CIPHER_LEGACY:
            return legacy_encrypt_with_credential(plaintext_key, credential)
        return encrypt_with_credential(plaintext_key, credential, self._iterations)

    def unprotect(self, ciphertext: bytes, credential: str) -> bytes:
        """Recover the PEM private key protected under ``credential``.

        Raises:
            DecryptionFailed: If the credential is wrong or the ciphertext
                is corrupt.
        """
        self._validate_credential(credential)
        if self._cipher == CIPHER_LEGACY:
            plaintext = legacy_decrypt_with_credential(ciphertext, credential)
            # no tag in this format: a garbled key only shows up on parsing
            try:
                serialization.load_pem_private_key(plaintext, password=None)
            except (ValueError, TypeError) as err:
                logger.debug("Legacy private key failed to parse after decryption")
                raise DecryptionFailed("Recovered private key is not valid") from err
            return plaintext
        return decrypt_with_credential(ciphertext, credential, self._iterations)
