"""
Readiness classification for external consumers.

A principal is ready once its private key is protected, i.e. after its
one-time login. A group's encryption profile is ready to use when the group
is enabled and every member is ready. Rendering is left to the caller.
"""
from dataclasses import dataclass
from typing import Optional

from .conf import (
    ENCRYPTION_PROFILE,
    GROUP,
    GROUP_KEY,
    PRINCIPAL,
    encryption_profile_id,
    group_key_id,
)
from .config import AdminSettings, ConfigStore
from .models import Group, Principal
from .storage import EntityStore


@dataclass
class GroupStatus:
    group_id: str
    label: str
    encryption_profile: str
    enabled: bool
    pending: int
    ready: bool
    message: str


def principal_ready(principal: Principal) -> bool:
    return principal.protected


async def group_has_key(store: EntityStore, group: Group) -> bool:
    return await store.load(GROUP_KEY, group_key_id(group.id)) is not None


def _message(enabled: bool, pending: int) -> str:
    if not enabled:
        return "The corresponding role is disabled from Pubkey Encrypt settings."
    if pending > 1:
        return (
            f"{pending} users from the corresponding role have yet to perform "
            "the one-time login."
        )
    if pending == 1:
        return "1 user from the corresponding role has yet to perform the one-time login."
    return "None."


async def group_status(
    store: EntityStore,
    group: Group,
    enabled_roles: list[str],
) -> Optional[GroupStatus]:
    """Status of one group, or None if it has no encryption profile."""
    profile = await store.load(ENCRYPTION_PROFILE, encryption_profile_id(group.id))
    if profile is None:
        return None
    enabled = group.id in enabled_roles
    pending = 0
    if enabled:
        for principal_id in group.members:
            principal = await store.load(PRINCIPAL, principal_id)
            if principal is not None and not principal_ready(principal):
                pending += 1
    return GroupStatus(
        group_id=group.id,
        label=group.label or group.id,
        encryption_profile=profile.label,
        enabled=enabled,
        pending=pending,
        ready=enabled and pending == 0,
        message=_message(enabled, pending),
    )


async def overview(store: EntityStore, config: ConfigStore) -> list[GroupStatus]:
    """Status of every group owning an encryption profile."""
    enabled_roles = AdminSettings.from_store(config).enabled_roles
    rows = []
    for group in await store.load_all(GROUP):
        row = await group_status(store, group, enabled_roles)
        if row is not None:
            rows.append(row)
    return rows
