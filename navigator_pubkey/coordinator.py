"""
KeyLifecycleCoordinator — keeps keys consistent with user and role events.

Per principal:
    Uninitialized → Provisioned (unprotected) → Protected ⇄ cached in session

Per group:
    NoKey → Keyed (share keys replaced on update) → NoKey on deletion

Every public operation first reads the module gate from the config store.
While the module is not initialized operations skip all side effects and
return None, or raise ModuleNotInitialized on a strict coordinator.

Records are written only once every cryptographic step has succeeded, so a
failed operation leaves stored principals and group keys as they were.

Security Note:
    Never log credentials, private keys, group keys or shares.
"""
import asyncio
import logging
import weakref
from typing import Any, Mapping, Optional

from .batch import BatchReport, run_batch
from .conf import (
    ADMINISTER_PERMISSION,
    ENCRYPTION_PROFILE,
    GROUP,
    GROUP_KEY,
    PRINCIPAL,
    RESERVED_GROUPS,
    encryption_profile_id,
    group_key_id,
)
from .config import (
    AdminSettings,
    ConfigStore,
    InitializationSettings,
    VaultSettings,
)
from .envelope import RoleKeyEnvelope
from .exceptions import (
    CredentialMismatch,
    DecryptionFailed,
    GroupKeyNotFound,
    KeyGenerationFailed,
    ModuleNotInitialized,
    PermissionDenied,
    PluginNotFound,
    PrincipalNotFound,
    PrincipalNotProvisioned,
)
from .models import EncryptionProfile, Group, GroupKey, Principal
from .plugins import credentials_providers, keys_generators
from .plugins.registry import PluginRegistry
from .session import SessionStore
from .storage import EntityStore
from .vault import PrivateKeyVault, SessionKeyCache

logger = logging.getLogger("navigator.pubkey")


class KeyLifecycleCoordinator:
    """Orchestrates keypairs, the private key vault and group key envelopes.

    Args:
        store: entity store holding principals, groups, group keys and
            encryption profiles.
        config: config store holding the module settings.
        keys_registry: registry resolving the configured keys generator.
        credentials_registry: registry resolving the configured
            login credentials provider.
        strict: raise ModuleNotInitialized instead of skipping silently.
    """

    def __init__(
        self,
        store: EntityStore,
        config: ConfigStore,
        keys_registry: Optional[PluginRegistry] = None,
        credentials_registry: Optional[PluginRegistry] = None,
        strict: bool = False,
    ):
        self._store = store
        self._config = config
        self._keys_registry = keys_registry or keys_generators
        self._credentials_registry = credentials_registry or credentials_providers
        self._strict = strict
        # a lock lives only while some operation holds or awaits it
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------
    # Settings and helpers
    # ------------------------------------------------------------------

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def config(self) -> ConfigStore:
        return self._config

    @property
    def initialized(self) -> bool:
        return InitializationSettings.from_store(self._config).module_initialized

    def _gate(self, operation: str) -> Optional[InitializationSettings]:
        """Read the initialization settings; None when the module is off."""
        settings = InitializationSettings.from_store(self._config)
        if settings.module_initialized:
            return settings
        if self._strict:
            raise ModuleNotInitialized(
                f"Cannot {operation}: module has not been initialized"
            )
        logger.debug("Skipping %s: module not initialized", operation)
        return None

    def _vault_settings(self) -> VaultSettings:
        return VaultSettings.from_store(self._config)

    def _lock(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock

    def _vault(self, settings: VaultSettings) -> PrivateKeyVault:
        return PrivateKeyVault.from_settings(settings)

    def _envelope(self, settings: VaultSettings) -> RoleKeyEnvelope:
        return RoleKeyEnvelope(
            key_size=settings.role_key_size,
            escrow_principal_id=settings.escrow_principal_id,
        )

    async def _members(self, group: Group) -> list[Principal]:
        members = []
        for principal_id in sorted(group.members):
            principal = await self._store.load(PRINCIPAL, principal_id)
            if principal is None:
                logger.warning(
                    "Group %s lists unknown member %s", group.id, principal_id
                )
                continue
            members.append(principal)
        return members

    async def _escrow(self, settings: VaultSettings) -> Optional[Principal]:
        return await self._store.load(PRINCIPAL, settings.escrow_principal_id)

    async def _current(self, principal: Principal) -> Principal:
        """Stored record of ``principal``; the caller's copy may be stale.

        A principal that was never saved is taken as given.
        """
        stored = await self._store.load(PRINCIPAL, principal.id)
        return stored if stored is not None else principal

    @staticmethod
    def _refresh(principal: Principal, record: Principal) -> None:
        if record is not principal:
            principal.public_key = record.public_key
            principal.private_key = record.private_key
            principal.protected = record.protected

    def _recover(
        self,
        principal: Principal,
        credential: str,
        vault: PrivateKeyVault,
    ) -> bytes:
        if not principal.provisioned:
            raise PrincipalNotProvisioned(
                f"Principal {principal.id} has no keypair"
            )
        if not principal.protected:
            return principal.private_key
        try:
            return vault.unprotect(principal.private_key, credential)
        except DecryptionFailed as err:
            raise CredentialMismatch(principal.id) from err

    # ------------------------------------------------------------------
    # Principal lifecycle
    # ------------------------------------------------------------------

    async def _provision(
        self,
        principal: Principal,
        settings: InitializationSettings,
    ) -> Optional[Principal]:
        record = await self._current(principal)
        if record.provisioned:
            logger.debug("Principal %s already provisioned", principal.id)
            self._refresh(principal, record)
            return None
        try:
            generator = self._keys_registry.create_instance(
                settings.asymmetric_keys_generator,
                settings.asymmetric_keys_generator_configuration,
            )
        except PluginNotFound as err:
            raise KeyGenerationFailed(str(err)) from err
        public_key, private_key = generator.generate()
        record.public_key = public_key
        record.private_key = private_key
        record.protected = False
        await self._store.save(record)
        self._refresh(principal, record)
        logger.info("Principal provisioned: principal=%s", principal.id)
        return record

    async def provision(self, principal: Principal) -> Optional[Principal]:
        """Generate and store a keypair for a new principal.

        A principal that already has keys is left untouched.

        Raises:
            KeyGenerationFailed: If the configured generator fails; the
                principal is not saved.
        """
        settings = self._gate("provision principal")
        if settings is None:
            return None
        async with self._lock(f"{PRINCIPAL}:{principal.id}"):
            return await self._provision(principal, settings)

    async def _protect(
        self,
        principal: Principal,
        credential: str,
        vault: PrivateKeyVault,
    ) -> Principal:
        if principal.protected:
            return principal
        if not principal.provisioned:
            raise PrincipalNotProvisioned(
                f"Principal {principal.id} has no keypair"
            )
        ciphertext = vault.protect(principal.private_key, credential)
        principal.private_key = ciphertext
        principal.protected = True
        await self._store.save(principal)
        logger.info("Private key protected: principal=%s", principal.id)
        return principal

    async def protect(self, principal: Principal, credential: str) -> Optional[Principal]:
        """Protect an unprotected private key with ``credential``.

        Does nothing when the stored key is already protected.
        """
        if self._gate("protect private key") is None:
            return None
        vault = self._vault(self._vault_settings())
        async with self._lock(f"{PRINCIPAL}:{principal.id}"):
            record = await self._protect(
                await self._current(principal), credential, vault
            )
        self._refresh(principal, record)
        return record

    async def recover_plaintext(
        self,
        principal: Principal,
        credential: str,
    ) -> Optional[bytes]:
        """Return the principal's private key in its original form.

        Raises:
            CredentialMismatch: If ``credential`` does not unlock the key.
            PrincipalNotProvisioned: If the principal has no keypair.
        """
        if self._gate("recover private key") is None:
            return None
        return self._recover(principal, credential, self._vault(self._vault_settings()))

    async def on_credentials_changed(
        self,
        principal_id: str,
        old_credential: str,
        new_credential: str,
    ) -> Optional[Principal]:
        """Re-protect the private key under a new credential.

        The stored record changes in a single save after both the decrypt
        and the encrypt step succeeded.

        Raises:
            PrincipalNotFound: If no principal is stored under the id.
            CredentialMismatch: If ``old_credential`` is wrong; the stored
                key is left unchanged.
        """
        if self._gate("change credentials") is None:
            return None
        vault = self._vault(self._vault_settings())
        async with self._lock(f"{PRINCIPAL}:{principal_id}"):
            principal = await self._store.load(PRINCIPAL, principal_id)
            if principal is None:
                raise PrincipalNotFound(f"Principal {principal_id} not found")
            if not principal.provisioned:
                logger.debug(
                    "Credential change ignored for unprovisioned principal %s",
                    principal_id,
                )
                return None
            plaintext = self._recover(principal, old_credential, vault)
            principal.private_key = vault.protect(plaintext, new_credential)
            principal.protected = True
            await self._store.save(principal)
        logger.info("Private key re-protected: principal=%s", principal_id)
        return principal

    async def on_login(
        self,
        principal: Principal,
        credential: str,
        session: SessionStore,
    ) -> Optional[SessionKeyCache]:
        """Unlock the private key into the session after a successful login.

        On the first login the key is protected with ``credential`` first.
        Whether this is the first login is decided on the stored record,
        not on the ``principal`` passed in.

        Returns:
            The session key cache, populated for ``principal``.

        Raises:
            CredentialMismatch: If ``credential`` does not unlock the key;
                nothing is cached.
        """
        if self._gate("unlock private key on login") is None:
            return None
        vault = self._vault(self._vault_settings())
        async with self._lock(f"{PRINCIPAL}:{principal.id}"):
            record = await self._current(principal)
            if not record.provisioned:
                logger.warning(
                    "Login of principal %s without keypair; nothing to unlock",
                    principal.id,
                )
                return None
            if not record.protected:
                await self._protect(record, credential, vault)
            private_key = self._recover(record, credential, vault)
        self._refresh(principal, record)
        cache = SessionKeyCache(session)
        cache.store(principal.id, private_key)
        logger.info("Private key unlocked for session: principal=%s", principal.id)
        return cache

    def _credentials_provider(self, settings: InitializationSettings) -> Any:
        return self._credentials_registry.create_instance(
            settings.login_credentials_provider
        )

    def fetch_login_credentials(self, form: Mapping[str, Any]) -> Optional[str]:
        """Extract the login credential from a submitted login form."""
        settings = self._gate("fetch login credentials")
        if settings is None:
            return None
        return self._credentials_provider(settings).fetch_login_credentials(form)

    def fetch_changed_login_credentials(
        self,
        form: Mapping[str, Any],
    ) -> Optional[tuple[str, str]]:
        """Extract (current, new) credentials from an account edit form."""
        settings = self._gate("fetch changed login credentials")
        if settings is None:
            return None
        return self._credentials_provider(settings).fetch_changed_login_credentials(form)

    # ------------------------------------------------------------------
    # Group keys
    # ------------------------------------------------------------------

    async def _generate_group_key(
        self,
        group: Group,
        settings: VaultSettings,
    ) -> Optional[GroupKey]:
        if group.id in RESERVED_GROUPS:
            return None
        async with self._lock(f"{GROUP_KEY}:{group.id}"):
            existing = await self._store.load(GROUP_KEY, group_key_id(group.id))
            if existing is not None:
                logger.debug("Group %s already has a key", group.id)
                return None
            members = await self._members(group)
            escrow = await self._escrow(settings)
            group_key, _ = self._envelope(settings).generate(group, members, escrow)
            profile = EncryptionProfile.for_group(group, settings.encryption_method)
            await self._store.save(group_key)
            await self._store.save(profile)
        logger.info("Group key created: group=%s", group.id)
        return group_key

    async def generate_group_key(self, group: Group) -> Optional[GroupKey]:
        """Create the key and encryption profile of a new group.

        The anonymous and authenticated groups never get a key.

        Raises:
            EscrowUnavailable: If the escrow principal has no public key.
        """
        if self._gate("generate group key") is None:
            return None
        return await self._generate_group_key(group, self._vault_settings())

    def _check_permission(self, actor: Principal) -> None:
        if not actor.has_permission(ADMINISTER_PERMISSION):
            raise PermissionDenied(
                f"Principal {actor.id} lacks '{ADMINISTER_PERMISSION}'"
            )

    async def _update_group_key(
        self,
        group: Group,
        actor: Principal,
        cache: SessionKeyCache,
        settings: VaultSettings,
    ) -> Optional[GroupKey]:
        if group.id in RESERVED_GROUPS:
            return None
        envelope = self._envelope(settings)
        async with self._lock(f"{GROUP_KEY}:{group.id}"):
            group_key = await self._store.load(GROUP_KEY, group_key_id(group.id))
            if group_key is None:
                raise GroupKeyNotFound(f"Group {group.id} has no key")
            key = envelope.unwrap(group_key, actor.id, cache)
            members = await self._members(group)
            escrow = await self._escrow(settings)
            updated = envelope.rewrap(group_key, key, members, escrow)
            await self._store.save(updated)
        return updated

    async def update_group_key(
        self,
        group: Group,
        actor: Principal,
        session: SessionStore,
    ) -> Optional[GroupKey]:
        """Rebuild the share keys of a group from its current members.

        The key value is unwrapped with the actor's session key, so the
        actor must hold a share (the escrow principal always does).

        Raises:
            PermissionDenied: If the actor cannot administer permissions.
            GroupKeyNotFound: If the group has no key.
            NoShareForPrincipal: If the actor holds no share.
            NoSessionKey: If the actor's key is not unlocked in ``session``.
        """
        if self._gate("update group key") is None:
            return None
        self._check_permission(actor)
        return await self._update_group_key(
            group, actor, SessionKeyCache(session), self._vault_settings()
        )

    async def update_all_group_keys(
        self,
        actor: Principal,
        session: SessionStore,
    ) -> Optional[BatchReport]:
        """Update every group key; failures are collected, not raised.

        Raises:
            PermissionDenied: If the actor cannot administer permissions.
        """
        if self._gate("update all group keys") is None:
            return None
        self._check_permission(actor)
        settings = self._vault_settings()
        cache = SessionKeyCache(session)
        groups = await self._store.load_all(
            GROUP, lambda group: group.id not in RESERVED_GROUPS
        )

        async def step(group: Group) -> Optional[GroupKey]:
            return await self._update_group_key(group, actor, cache, settings)

        return await run_batch("update all group keys", groups, step)

    async def delete_group_key(self, group: Group) -> Optional[Group]:
        """Remove the key and encryption profile of a deleted group."""
        if self._gate("delete group key") is None:
            return None
        async with self._lock(f"{GROUP_KEY}:{group.id}"):
            await self._store.delete(GROUP_KEY, group_key_id(group.id))
            await self._store.delete(ENCRYPTION_PROFILE, encryption_profile_id(group.id))
        logger.info("Group key deleted: group=%s", group.id)
        return group

    def _enable(self, group: Group) -> AdminSettings:
        admin = AdminSettings.from_store(self._config)
        if group.id not in admin.enabled_roles:
            admin.enabled_roles.append(group.id)
            admin.save(self._config)
        return admin

    async def enable_group(self, group: Group) -> Optional[AdminSettings]:
        """Mark a group as enabled for encryption; group keys are unaffected."""
        if self._gate("enable group") is None:
            return None
        return self._enable(group)

    # ------------------------------------------------------------------
    # Module initialization
    # ------------------------------------------------------------------

    async def initialize_module(
        self,
        keys_generator: Optional[str] = None,
        credentials_provider: Optional[str] = None,
        generator_configuration: Optional[dict[str, Any]] = None,
    ) -> BatchReport:
        """Select plugins, key every existing principal and group, open the gate.

        Principals without keys are provisioned, then every non-reserved
        group without a key gets one and is enabled. Failures are collected
        in the report. The gate opens once the jobs have run.

        Raises:
            PluginNotFound: If a selected plugin id is not registered.
        """
        current = InitializationSettings.from_store(self._config)
        settings = InitializationSettings(
            module_initialized=False,
            asymmetric_keys_generator=(
                keys_generator or current.asymmetric_keys_generator
            ),
            login_credentials_provider=(
                credentials_provider or current.login_credentials_provider
            ),
            asymmetric_keys_generator_configuration=(
                generator_configuration
                if generator_configuration is not None
                else current.asymmetric_keys_generator_configuration
            ),
        )
        for registry, plugin_id in (
            (self._keys_registry, settings.asymmetric_keys_generator),
            (self._credentials_registry, settings.login_credentials_provider),
        ):
            if plugin_id not in registry:
                raise PluginNotFound(
                    f"No {registry.kind} plugin registered as '{plugin_id}'"
                )
        settings.save(self._config)
        vault_settings = self._vault_settings()

        async def provision_step(principal: Principal) -> Optional[Principal]:
            async with self._lock(f"{PRINCIPAL}:{principal.id}"):
                return await self._provision(principal, settings)

        async def group_step(group: Group) -> Optional[GroupKey]:
            group_key = await self._generate_group_key(group, vault_settings)
            self._enable(group)
            return group_key

        principals = await self._store.load_all(PRINCIPAL)
        report = await run_batch("initialize principal keys", principals, provision_step)
        groups = await self._store.load_all(
            GROUP, lambda group: group.id not in RESERVED_GROUPS
        )
        report.merge(await run_batch("initialize group keys", groups, group_step))
        report.operation = "initialize module"

        settings.module_initialized = True
        settings.save(self._config)
        logger.info("Module initialized: %s", report.as_dict())
        return report
