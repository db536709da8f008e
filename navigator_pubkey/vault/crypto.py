"""
Vault Crypto Core — keypairs, envelopes, credential and session ciphers.

Primitives used by the key lifecycle:
- Asymmetric: RSA keypairs (PEM), RSA-OAEP/SHA-256 for wrapping group keys
- Symmetric: AES-CBC with PKCS7 padding
- Credential layer: PBKDF2(credential, salt) → AES-256-CBC + HMAC-SHA256
  → [version|salt|iv|ciphertext|tag]
- Legacy credential layer: AES-128-CBC, fixed IV of sixteen ASCII "0",
  raw credential as key
- Session layer: HKDF(session_id, "pubkey-session") → AES-GCM → [nonce|payload]

Security Note:
    Never log plaintext, ciphertext, credentials or derived keys.
    The legacy credential layer is deterministic and unauthenticated; it
    is kept only to read and write legacy records.
"""
import os
import hmac
import base64
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, padding, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import DecryptionFailed

logger = logging.getLogger("navigator.pubkey")

BLOCK_SIZE = 16  # AES block
SALT_SIZE = 16
TAG_SIZE = 32  # HMAC-SHA256
NONCE_SIZE = 12  # 96-bit GCM nonce
KEY_LENGTH = 32  # AES-256
FORMAT_VERSION = 1

# openssl_encrypt(..., "0000000000000000"): ASCII zeros, not NUL bytes
_LEGACY_IV = b"0" * BLOCK_SIZE


# ---------------------------------------------------------------------------
# Asymmetric primitives
# ---------------------------------------------------------------------------

def generate_asymmetric_keypair(
    key_size: int = 2048,
    public_exponent: int = 65537,
) -> tuple[bytes, bytes]:
    """Generate an RSA keypair.

    Returns:
        Tuple of (public_key, private_key) PEM bytes; the private key is
        unencrypted PKCS#8.
    """
    private_key = rsa.generate_private_key(
        public_exponent=public_exponent,
        key_size=key_size,
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return public_pem, private_pem


def _oaep() -> asym_padding.OAEP:
    return asym_padding.OAEP(
        mgf=asym_padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def asymmetric_encrypt(plaintext: bytes, public_key: bytes) -> bytes:
    """Encrypt a short secret (a group key) under a PEM public key."""
    key = serialization.load_pem_public_key(public_key)
    if not isinstance(key, rsa.RSAPublicKey):
        raise ValueError("Public key is not an RSA key")
    return key.encrypt(plaintext, _oaep())


def asymmetric_decrypt(ciphertext: bytes, private_key: bytes) -> bytes:
    """Decrypt a wrapped secret with a PEM private key.

    Raises:
        DecryptionFailed: If the private key cannot be parsed or the
            ciphertext was not produced for it.
    """
    try:
        key = serialization.load_pem_private_key(private_key, password=None)
        return key.decrypt(ciphertext, _oaep())
    except (ValueError, TypeError) as err:
        raise DecryptionFailed("Unable to unwrap asymmetric ciphertext") from err


# ---------------------------------------------------------------------------
# Symmetric primitives
# ---------------------------------------------------------------------------

def symmetric_encrypt(plaintext: bytes, key: bytes, iv: bytes) -> bytes:
    """AES-CBC with PKCS7 padding; key size selects AES-128/192/256."""
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def symmetric_decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    """Inverse of :func:`symmetric_encrypt`.

    Raises:
        DecryptionFailed: If the ciphertext is not block aligned or the
            padding is invalid.
    """
    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        raise DecryptionFailed(
            f"ciphertext length {len(ciphertext)} is not a multiple of {BLOCK_SIZE}"
        )
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as err:
        raise DecryptionFailed("Invalid padding") from err


def generate_symmetric_key(key_size: int = 128) -> bytes:
    """Random AES key of ``key_size`` bits."""
    return os.urandom(key_size // 8)


# ---------------------------------------------------------------------------
# Credential layer (private keys at rest)
# ---------------------------------------------------------------------------

def derive_credential_keys(
    credential: str,
    salt: bytes,
    iterations: int,
) -> tuple[bytes, bytes]:
    """Derive (encryption_key, mac_key) from a credential with PBKDF2-SHA256."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH * 2,
        salt=salt,
        iterations=iterations,
    )
    material = kdf.derive(credential.encode("utf-8"))
    return material[:KEY_LENGTH], material[KEY_LENGTH:]


def encrypt_with_credential(
    plaintext: bytes,
    credential: str,
    iterations: int,
) -> bytes:
    """Encrypt with a credential-derived key.

    Format: [version 1B][salt 16B][iv 16B][AES-256-CBC payload][HMAC-SHA256 32B]
    """
    salt = os.urandom(SALT_SIZE)
    iv = os.urandom(BLOCK_SIZE)
    enc_key, mac_key = derive_credential_keys(credential, salt, iterations)
    body = bytes([FORMAT_VERSION]) + salt + iv + symmetric_encrypt(plaintext, enc_key, iv)
    tag = hmac.new(mac_key, body, "sha256").digest()
    return body + tag


def decrypt_with_credential(
    ciphertext: bytes,
    credential: str,
    iterations: int,
) -> bytes:
    """Decrypt a payload produced by :func:`encrypt_with_credential`.

    Raises:
        DecryptionFailed: On malformed input or when the tag does not match
            (the usual cause is a wrong credential).
    """
    _min = 1 + SALT_SIZE + BLOCK_SIZE + BLOCK_SIZE + TAG_SIZE
    if len(ciphertext) < _min:
        raise DecryptionFailed(
            f"ciphertext too short: {len(ciphertext)} bytes (minimum {_min})"
        )
    if ciphertext[0] != FORMAT_VERSION:
        raise DecryptionFailed(f"Unknown ciphertext version {ciphertext[0]}")
    body, tag = ciphertext[:-TAG_SIZE], ciphertext[-TAG_SIZE:]
    salt = body[1:1 + SALT_SIZE]
    iv = body[1 + SALT_SIZE:1 + SALT_SIZE + BLOCK_SIZE]
    enc_key, mac_key = derive_credential_keys(credential, salt, iterations)
    expected = hmac.new(mac_key, body, "sha256").digest()
    if not hmac.compare_digest(tag, expected):
        raise DecryptionFailed("Integrity check failed")
    return symmetric_decrypt(body[1 + SALT_SIZE + BLOCK_SIZE:], enc_key, iv)


def _legacy_key(credential: str) -> bytes:
    # openssl_encrypt zero-pads or truncates the passphrase to the key size
    raw = credential.encode("utf-8")[:BLOCK_SIZE]
    return raw.ljust(BLOCK_SIZE, b"\0")


def legacy_encrypt_with_credential(plaintext: bytes, credential: str) -> bytes:
    """AES-128-CBC with the fixed legacy IV, base64 encoded."""
    ct = symmetric_encrypt(plaintext, _legacy_key(credential), _LEGACY_IV)
    return base64.b64encode(ct)


def legacy_decrypt_with_credential(ciphertext: bytes, credential: str) -> bytes:
    """Inverse of :func:`legacy_encrypt_with_credential`.

    A wrong credential is only noticed through a padding error, so it can
    occasionally return garbage; callers validate the result.
    """
    try:
        raw = base64.b64decode(ciphertext, validate=True)
    except ValueError as err:
        raise DecryptionFailed("Legacy ciphertext is not valid base64") from err
    return symmetric_decrypt(raw, _legacy_key(credential), _LEGACY_IV)


# ---------------------------------------------------------------------------
# Session layer (ephemeral, session memory)
# ---------------------------------------------------------------------------

def derive_session_key(session_id: str, context: str = "pubkey-session") -> bytes:
    """Derive a 32-byte key from a session id with HKDF-SHA256."""
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # deterministic per session
        info=context.encode("utf-8"),
    )
    return hkdf.derive(session_id.encode("utf-8"))


def encrypt_for_session(plaintext: bytes, session_id: str) -> bytes:
    """Encrypt for session-scoped storage.

    Format: [nonce 12B][encrypted_payload + GCM_tag 16B]
    """
    cipher = AESGCM(derive_session_key(session_id))
    nonce = os.urandom(NONCE_SIZE)
    return nonce + cipher.encrypt(nonce, plaintext, None)


def decrypt_for_session(ciphertext_mem: bytes, session_id: str) -> bytes:
    """Decrypt session-scoped ciphertext.

    Raises:
        DecryptionFailed: If the payload is truncated or bound to another
            session.
    """
    _min = NONCE_SIZE + 16  # nonce + GCM tag
    if len(ciphertext_mem) < _min:
        raise DecryptionFailed(
            f"ciphertext_mem too short: {len(ciphertext_mem)} bytes "
            f"(minimum {_min})"
        )
    cipher = AESGCM(derive_session_key(session_id))
    try:
        return cipher.decrypt(
            ciphertext_mem[:NONCE_SIZE], ciphertext_mem[NONCE_SIZE:], None
        )
    except InvalidTag as err:
        raise DecryptionFailed("Session ciphertext failed authentication") from err
