"""
Navigator Pubkey constants.

Values that identify records and namespaces shared with the external
entity, config and session stores. The escrow principal can be overridden
through ``PUBKEY_ESCROW_PRINCIPAL_ID``.
"""
import os

# Session keys used by the per-session storage.
SESSION_ID = 'session_id'
SESSION_KEY = 'user_id'

# Namespace for everything this module keeps in sessions and config.
PUBKEY_NAMESPACE = 'pubkey_encrypt'
SESSION_PRIVATE_KEY = 'private_key'

INITIALIZATION_SETTINGS = f'{PUBKEY_NAMESPACE}.initialization_settings'
VAULT_SETTINGS = f'{PUBKEY_NAMESPACE}.vault_settings'
ADMIN_SETTINGS = f'{PUBKEY_NAMESPACE}.admin_settings'

# Entity types known to the entity store.
PRINCIPAL = 'principal'
GROUP = 'group'
GROUP_KEY = 'group_key'
ENCRYPTION_PROFILE = 'encryption_profile'
ENTITY_TYPES = frozenset({PRINCIPAL, GROUP, GROUP_KEY, ENCRYPTION_PROFILE})

# System groups that never own a group key.
ANONYMOUS_GROUP = 'anonymous'
AUTHENTICATED_GROUP = 'authenticated'
RESERVED_GROUPS = frozenset({ANONYMOUS_GROUP, AUTHENTICATED_GROUP})

# Superuser account that receives a share of every group key.
ESCROW_PRINCIPAL_ID = os.environ.get('PUBKEY_ESCROW_PRINCIPAL_ID', '1')

# Permission required to regenerate group key shares.
ADMINISTER_PERMISSION = 'administer permissions'

GROUP_KEY_SUFFIX = '_role_key'
ENCRYPTION_PROFILE_SUFFIX = '_role_key_encryption_profile'


def group_key_id(group_id: str) -> str:
    return f'{group_id}{GROUP_KEY_SUFFIX}'


def encryption_profile_id(group_id: str) -> str:
    return f'{group_id}{ENCRYPTION_PROFILE_SUFFIX}'
