"""
Records exchanged with the entity store.

Key material is kept as bytes: PEM for public and unprotected private keys,
vault ciphertext for protected private keys, RSA-OAEP ciphertext for shares.
"""
from typing import Optional, ClassVar

from pydantic import BaseModel, Field

from .conf import (
    PRINCIPAL,
    GROUP,
    GROUP_KEY,
    ENCRYPTION_PROFILE,
    group_key_id,
    encryption_profile_id,
)


class Entity(BaseModel):
    """Base record; ``entity_type`` routes it inside the entity store."""

    entity_type: ClassVar[str] = ''

    id: str


class Principal(Entity):
    """A user account holding an asymmetric keypair.

    ``protected`` tells how to read ``private_key``: plaintext PEM when
    False, vault ciphertext when True.
    """

    entity_type: ClassVar[str] = PRINCIPAL

    name: str = ''
    roles: set[str] = Field(default_factory=set)
    permissions: set[str] = Field(default_factory=set)
    public_key: Optional[bytes] = None
    private_key: Optional[bytes] = None
    protected: bool = False

    @property
    def provisioned(self) -> bool:
        return self.public_key is not None and self.private_key is not None

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


class Group(Entity):
    """A role whose members share one symmetric key."""

    entity_type: ClassVar[str] = GROUP

    label: str = ''
    members: set[str] = Field(default_factory=set)


class GroupKey(Entity):
    """Wrapped shares of a group's symmetric key.

    ``share_keys`` is a snapshot of the membership at generation or
    update time; it is not kept in sync with later membership changes.
    """

    entity_type: ClassVar[str] = GROUP_KEY

    label: str = ''
    description: str = ''
    role: str
    key_size: int = 128
    share_keys: dict[str, bytes] = Field(default_factory=dict)

    @classmethod
    def for_group(cls, group: Group, key_size: int) -> "GroupKey":
        label = group.label or group.id
        return cls(
            id=group_key_id(group.id),
            label=f"{label} Role key",
            description=f"{label} Role key used by Navigator Pubkey",
            role=group.id,
            key_size=key_size,
        )


class EncryptionProfile(Entity):
    """Binds a group key to an encryption method for outside consumers."""

    entity_type: ClassVar[str] = ENCRYPTION_PROFILE

    label: str = ''
    encryption_key: str
    encryption_method: str

    @classmethod
    def for_group(cls, group: Group, method: str) -> "EncryptionProfile":
        return cls(
            id=encryption_profile_id(group.id),
            label=f"{group.label or group.id} Encryption Profile",
            encryption_key=group_key_id(group.id),
            encryption_method=method,
        )
