"""Pubkey Vault — private keys at rest and in session.

Security Note (Threat Model):
    A principal's private key is decrypted in process memory for the
    lifetime of the authenticated session. A memory dump of the application
    process could expose the session id and the cached ciphertext, from
    which the private key can be recovered. This is an accepted limitation.
"""

from .private_key import PrivateKeyVault
from .session_cache import SessionKeyCache

__all__ = [
    "PrivateKeyVault",
    "SessionKeyCache",
]
