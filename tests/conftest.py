"""
Shared fixtures: memory stores, an initialized config and key material.

Tests use 1024-bit RSA keys and a low PBKDF2 iteration count so that
generating and protecting keys stays fast.
"""
import pytest

from navigator_pubkey.conf import ADMINISTER_PERMISSION, ESCROW_PRINCIPAL_ID
from navigator_pubkey.config import (
    InitializationSettings,
    MemoryConfigStore,
    VaultSettings,
)
from navigator_pubkey.coordinator import KeyLifecycleCoordinator
from navigator_pubkey.models import Group, Principal
from navigator_pubkey.session import KeySession
from navigator_pubkey.storage import MemoryEntityStore
from navigator_pubkey.vault import PrivateKeyVault, SessionKeyCache
from navigator_pubkey.vault.crypto import generate_asymmetric_keypair

TEST_KEY_SIZE = 1024
TEST_ITERATIONS = 1000


@pytest.fixture(scope="session")
def keypairs():
    """A small pool of RSA keypairs shared by the whole test session."""
    return [generate_asymmetric_keypair(key_size=TEST_KEY_SIZE) for _ in range(4)]


@pytest.fixture
def config():
    """Config store with the module initialized."""
    store = MemoryConfigStore()
    InitializationSettings(
        module_initialized=True,
        asymmetric_keys_generator_configuration={"key_size": TEST_KEY_SIZE},
    ).save(store)
    VaultSettings(kdf_iterations=TEST_ITERATIONS).save(store)
    return store


@pytest.fixture
def uninitialized_config():
    store = MemoryConfigStore()
    InitializationSettings(
        module_initialized=False,
        asymmetric_keys_generator_configuration={"key_size": TEST_KEY_SIZE},
    ).save(store)
    VaultSettings(kdf_iterations=TEST_ITERATIONS).save(store)
    return store


@pytest.fixture
def store():
    return MemoryEntityStore()


@pytest.fixture
def coordinator(store, config):
    return KeyLifecycleCoordinator(store, config)


@pytest.fixture
def vault():
    return PrivateKeyVault(iterations=TEST_ITERATIONS)


@pytest.fixture
def session():
    return KeySession(identity="42")


@pytest.fixture
def make_principal(store, coordinator):
    """Save and provision a principal."""
    async def factory(principal_id: str, **kwargs) -> Principal:
        principal = Principal(id=principal_id, name=f"user{principal_id}", **kwargs)
        await store.save(principal)
        await coordinator.provision(principal)
        return principal
    return factory


@pytest.fixture
async def escrow(make_principal):
    """The superuser, provisioned and holding the admin permission."""
    return await make_principal(
        ESCROW_PRINCIPAL_ID, permissions={ADMINISTER_PERMISSION}
    )


@pytest.fixture
async def escrow_session(coordinator, escrow):
    """A session in which the escrow principal has logged in."""
    session = KeySession(identity=escrow.id)
    await coordinator.on_login(escrow, "root-secret", session)
    return session


@pytest.fixture
def make_group(store):
    async def factory(group_id: str, members=(), label: str = "") -> Group:
        group = Group(id=group_id, label=label or group_id.title(), members=set(members))
        await store.save(group)
        return group
    return factory


@pytest.fixture
def login(coordinator):
    """Log a principal in with a fresh session; returns its key cache."""
    async def factory(principal: Principal, credential: str) -> SessionKeyCache:
        return await coordinator.on_login(
            principal, credential, KeySession(identity=principal.id)
        )
    return factory
