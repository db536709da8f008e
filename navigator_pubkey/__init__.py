"""Navigator Pubkey — role-scoped encryption keys shared through public key envelopes.

Each principal owns an RSA keypair whose private key is protected at rest
by its login credential. Each group owns a symmetric key that is stored only
as per-member shares, wrapped under the members' public keys.
"""

from .version import __version__
from .coordinator import KeyLifecycleCoordinator
from .envelope import RoleKeyEnvelope
from .batch import BatchReport
from .config import (
    InitializationSettings,
    VaultSettings,
    AdminSettings,
    MemoryConfigStore,
    JsonConfigStore,
    load_config_from_env,
)
from .models import Principal, Group, GroupKey, EncryptionProfile
from .session import KeySession
from .storage import MemoryEntityStore
from .vault import PrivateKeyVault, SessionKeyCache

__all__ = [
    "__version__",
    "KeyLifecycleCoordinator",
    "RoleKeyEnvelope",
    "BatchReport",
    "InitializationSettings",
    "VaultSettings",
    "AdminSettings",
    "MemoryConfigStore",
    "JsonConfigStore",
    "load_config_from_env",
    "Principal",
    "Group",
    "GroupKey",
    "EncryptionProfile",
    "KeySession",
    "MemoryEntityStore",
    "PrivateKeyVault",
    "SessionKeyCache",
]
