"""
Navigator Pubkey Configuration — validated settings and config stores.

Settings live in a config store under three namespaces:
    pubkey_encrypt.initialization_settings  module gate and selected plugins
    pubkey_encrypt.vault_settings           cipher and key parameters
    pubkey_encrypt.admin_settings           groups enabled for encryption

Every model can also be built from ``PUBKEY_*`` environment variables.

Security Note:
    Never log key material or credentials. Only log ids and settings names.
"""
import os
import logging
from pathlib import Path
from typing import Any, ClassVar, Optional, Protocol, Union, runtime_checkable

import orjson
from pydantic import BaseModel, Field, field_validator

from .conf import (
    INITIALIZATION_SETTINGS,
    VAULT_SETTINGS,
    ADMIN_SETTINGS,
    ESCROW_PRINCIPAL_ID,
)

logger = logging.getLogger("navigator.pubkey")

CIPHER_HARDENED = "aes-cbc-hmac"
CIPHER_LEGACY = "aes-cbc-zero-iv"

_TRUE_VALUES = ("true", "1", "yes", "on")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


# ---------------------------------------------------------------------------
# Config stores
# ---------------------------------------------------------------------------

@runtime_checkable
class ConfigStore(Protocol):
    """Namespaced module-wide configuration."""

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        ...

    def set(self, namespace: str, key: str, value: Any) -> None:
        ...


class MemoryConfigStore:
    """Config store kept in a dictionary of namespaces."""

    def __init__(self, initial: Optional[dict[str, dict[str, Any]]] = None):
        self._config: dict[str, dict[str, Any]] = {
            ns: dict(values) for ns, values in (initial or {}).items()
        }

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        return self._config.get(namespace, {}).get(key, default)

    def set(self, namespace: str, key: str, value: Any) -> None:
        self._config.setdefault(namespace, {})[key] = value

    def namespaces(self) -> dict[str, dict[str, Any]]:
        return self._config


class JsonConfigStore(MemoryConfigStore):
    """Config store persisted to a JSON file, rewritten on every ``set``."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        initial = None
        if self._path.exists():
            initial = orjson.loads(self._path.read_bytes())
            logger.debug("Loaded config namespaces from %s", self._path)
        super().__init__(initial)

    @property
    def path(self) -> Path:
        return self._path

    def set(self, namespace: str, key: str, value: Any) -> None:
        super().set(namespace, key, value)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(
            orjson.dumps(self._config, option=orjson.OPT_INDENT_2)
        )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class NamespacedSettings(BaseModel):
    """Settings model read from and written to one config namespace."""

    namespace: ClassVar[str] = ''

    @classmethod
    def from_store(cls, store: ConfigStore) -> "NamespacedSettings":
        values = {}
        for name in cls.model_fields:
            value = store.get(cls.namespace, name)
            if value is not None:
                values[name] = value
        return cls(**values)

    def save(self, store: ConfigStore) -> None:
        for name, value in self.model_dump(mode="json").items():
            store.set(self.namespace, name, value)


class InitializationSettings(NamespacedSettings):
    """Module gate and selected plugins."""

    namespace: ClassVar[str] = INITIALIZATION_SETTINGS

    module_initialized: bool = False
    asymmetric_keys_generator: str = Field(default="rsa_keys", min_length=1)
    login_credentials_provider: str = Field(default="user_passwords", min_length=1)
    asymmetric_keys_generator_configuration: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "InitializationSettings":
        """Create InitializationSettings from ``PUBKEY_*`` variables."""
        raw_config = os.environ.get("PUBKEY_KEYS_GENERATOR_CONFIG")
        return cls(
            module_initialized=_env_bool("PUBKEY_MODULE_INITIALIZED"),
            asymmetric_keys_generator=os.environ.get(
                "PUBKEY_KEYS_GENERATOR", "rsa_keys"
            ),
            login_credentials_provider=os.environ.get(
                "PUBKEY_CREDENTIALS_PROVIDER", "user_passwords"
            ),
            asymmetric_keys_generator_configuration=(
                orjson.loads(raw_config) if raw_config else {}
            ),
        )


class VaultSettings(NamespacedSettings):
    """Cipher and key parameters."""

    namespace: ClassVar[str] = VAULT_SETTINGS

    cipher: str = Field(default=CIPHER_HARDENED)
    kdf_iterations: int = Field(default=200_000, ge=1000)
    role_key_size: int = Field(default=128)
    escrow_principal_id: str = Field(default=ESCROW_PRINCIPAL_ID, min_length=1)
    encryption_method: str = Field(default="aes_cbc", min_length=1)

    @field_validator("cipher")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate the private key cipher is supported."""
        if v not in (CIPHER_HARDENED, CIPHER_LEGACY):
            raise ValueError(f"Unsupported private key cipher: {v}")
        return v

    @field_validator("role_key_size")
    @classmethod
    def validate_role_key_size(cls, v: int) -> int:
        """Group keys are AES keys."""
        if v not in (128, 192, 256):
            raise ValueError(f"Unsupported role key size: {v}")
        return v

    @classmethod
    def from_env(cls) -> "VaultSettings":
        """Create VaultSettings from ``PUBKEY_*`` variables."""
        return cls(
            cipher=os.environ.get("PUBKEY_VAULT_CIPHER", CIPHER_HARDENED),
            kdf_iterations=int(os.environ.get("PUBKEY_KDF_ITERATIONS", "200000")),
            role_key_size=int(os.environ.get("PUBKEY_ROLE_KEY_SIZE", "128")),
            escrow_principal_id=os.environ.get(
                "PUBKEY_ESCROW_PRINCIPAL_ID", ESCROW_PRINCIPAL_ID
            ),
            encryption_method=os.environ.get("PUBKEY_ENCRYPTION_METHOD", "aes_cbc"),
        )


class AdminSettings(NamespacedSettings):
    """Groups enabled for encryption by an administrator."""

    namespace: ClassVar[str] = ADMIN_SETTINGS

    enabled_roles: list[str] = Field(default_factory=list)

    @classmethod
    def from_env(cls) -> "AdminSettings":
        raw = os.environ.get("PUBKEY_ENABLED_ROLES", "")
        return cls(enabled_roles=[r.strip() for r in raw.split(",") if r.strip()])


def load_config_from_env(store: Optional[ConfigStore] = None) -> ConfigStore:
    """Seed a config store with every settings model read from the environment.

    Returns:
        The given store, or a new MemoryConfigStore.
    """
    store = store if store is not None else MemoryConfigStore()
    for model in (InitializationSettings, VaultSettings, AdminSettings):
        model.from_env().save(store)
    logger.debug("Config seeded from environment")
    return store
