"""
Asymmetric keys generators.

A generator produces a fresh (public_key, private_key) pair of PEM bytes
usable for encryption and decryption.
"""
import logging
from typing import Any, Protocol, runtime_checkable

from ..exceptions import KeyGenerationFailed
from ..vault.crypto import generate_asymmetric_keypair
from .registry import PluginRegistry

logger = logging.getLogger("navigator.pubkey")

keys_generators = PluginRegistry("asymmetric_keys_generator")

RSA_KEY_SIZES = (1024, 2048, 3072, 4096)


@runtime_checkable
class AsymmetricKeysGenerator(Protocol):
    def generate(self) -> tuple[bytes, bytes]:
        ...


@keys_generators.register("rsa_keys", "RSA keypairs, configurable key size.")
class RSAKeys:
    """RSA keypairs, configurable key size."""

    def __init__(self, configuration: dict[str, Any]):
        self.configuration = configuration

    @property
    def key_size(self) -> int:
        return int(self.configuration.get("key_size", 2048))

    def generate(self) -> tuple[bytes, bytes]:
        """Generate an RSA keypair.

        Raises:
            KeyGenerationFailed: On an invalid key size or a backend failure.
        """
        try:
            key_size = self.key_size
        except (TypeError, ValueError) as err:
            raise KeyGenerationFailed(
                f"Invalid key_size: {self.configuration.get('key_size')!r}"
            ) from err
        if key_size not in RSA_KEY_SIZES:
            raise KeyGenerationFailed(f"Unsupported RSA key size: {key_size}")
        logger.debug("Generating RSA keypair: key_size=%d", key_size)
        try:
            return generate_asymmetric_keypair(key_size=key_size)
        except Exception as err:
            raise KeyGenerationFailed(f"RSA key generation failed: {err}") from err
