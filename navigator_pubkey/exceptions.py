"""
Navigator Pubkey exceptions.

Messages carry record ids only, never key material or credentials.
"""


class PubkeyError(Exception):
    """Base exception for the key lifecycle subsystem."""


class KeyGenerationFailed(PubkeyError):
    """A keypair or group key could not be generated."""


class EscrowUnavailable(KeyGenerationFailed):
    """The escrow principal is missing or has no public key."""


class DecryptionFailed(PubkeyError):
    """A ciphertext could not be decrypted or failed its integrity check."""


class CredentialMismatch(PubkeyError):
    """The credential presented does not unlock the stored private key."""

    def __init__(self, principal_id: str):
        self.principal_id = principal_id
        super().__init__(
            f"Credential does not unlock the private key of principal {principal_id}"
        )


class NoShareForPrincipal(PubkeyError):
    """The group key holds no wrapped share for the principal."""

    def __init__(self, group_key_id: str, principal_id: str):
        self.group_key_id = group_key_id
        self.principal_id = principal_id
        super().__init__(
            f"Group key {group_key_id} has no share for principal {principal_id}"
        )


class NoSessionKey(PubkeyError):
    """The session holds no private key for the principal."""

    def __init__(self, principal_id: str):
        self.principal_id = principal_id
        super().__init__(
            f"No private key cached in this session for principal {principal_id}"
        )


class PermissionDenied(PubkeyError):
    """The acting principal lacks the permission required for the operation."""


class ModuleNotInitialized(PubkeyError):
    """Raised instead of a silent skip when the coordinator runs in strict mode."""


class EntityNotFound(PubkeyError):
    """A record the operation depends on is missing from the entity store."""


class PrincipalNotFound(EntityNotFound):
    """No principal is stored under the id."""


class GroupKeyNotFound(EntityNotFound):
    """No group key is stored for the group."""


class PrincipalNotProvisioned(PubkeyError):
    """The principal has no keypair yet."""


class PluginNotFound(PubkeyError):
    """No plugin is registered under the requested id."""
