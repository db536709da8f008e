"""
RoleKeyEnvelope — group keys distributed as per-member share keys.

A group key is a random AES key that is never stored. What is stored is
one share per member: the key encrypted under that member's public key.
Any member holding its private key in session can unwrap its share.

Security Note:
    Never log key values or shares. Only log group and principal ids.
"""
import logging
from typing import Iterable, Optional

from .conf import ESCROW_PRINCIPAL_ID
from .exceptions import EscrowUnavailable, NoShareForPrincipal
from .models import Group, GroupKey, Principal
from .vault.crypto import (
    asymmetric_encrypt,
    asymmetric_decrypt,
    generate_symmetric_key,
)
from .vault.session_cache import SessionKeyCache

logger = logging.getLogger("navigator.pubkey")


class RoleKeyEnvelope:
    """Generates, rewraps and unwraps group key shares.

    Args:
        key_size: group key size in bits.
        escrow_principal_id: id of the principal that always receives a share.
    """

    def __init__(
        self,
        key_size: int = 128,
        escrow_principal_id: str = ESCROW_PRINCIPAL_ID,
    ):
        self.key_size = key_size
        self.escrow_principal_id = escrow_principal_id

    def _recipients(
        self,
        members: Iterable[Principal],
        escrow: Optional[Principal],
    ) -> dict[str, Principal]:
        if escrow is None or escrow.id != self.escrow_principal_id:
            raise EscrowUnavailable(
                f"Escrow principal {self.escrow_principal_id} is not available"
            )
        if escrow.public_key is None:
            raise EscrowUnavailable(
                f"Escrow principal {escrow.id} has no public key"
            )
        recipients: dict[str, Principal] = {}
        for member in members:
            if member.public_key is None:
                logger.warning(
                    "Skipping member %s without public key", member.id
                )
                continue
            recipients[member.id] = member
        recipients[escrow.id] = escrow
        return recipients

    def _wrap(self, key: bytes, recipients: dict[str, Principal]) -> dict[str, bytes]:
        return {
            principal_id: asymmetric_encrypt(key, principal.public_key)
            for principal_id, principal in recipients.items()
        }

    def generate(
        self,
        group: Group,
        members: Iterable[Principal],
        escrow: Optional[Principal],
    ) -> tuple[GroupKey, bytes]:
        """Create a fresh group key and wrap it for members and escrow.

        Returns:
            Tuple of (group_key record, key value). The key value is handed
            back for immediate use only; it must not be persisted.

        Raises:
            EscrowUnavailable: If the escrow principal cannot receive a share.
        """
        recipients = self._recipients(members, escrow)
        key = generate_symmetric_key(self.key_size)
        group_key = GroupKey.for_group(group, self.key_size)
        group_key.share_keys = self._wrap(key, recipients)
        logger.info(
            "Group key generated: group=%s shares=%d", group.id, len(group_key.share_keys)
        )
        return group_key, key

    def rewrap(
        self,
        group_key: GroupKey,
        key: bytes,
        members: Iterable[Principal],
        escrow: Optional[Principal],
    ) -> GroupKey:
        """Replace the share mapping with one built from ``members``.

        The key value is unchanged; principals missing from ``members``
        lose their share.
        """
        recipients = self._recipients(members, escrow)
        updated = group_key.model_copy(deep=True)
        updated.share_keys = self._wrap(key, recipients)
        logger.info(
            "Group key rewrapped: key=%s shares=%d", group_key.id, len(updated.share_keys)
        )
        return updated

    def unwrap(
        self,
        group_key: GroupKey,
        principal_id: str,
        cache: SessionKeyCache,
    ) -> bytes:
        """Recover the group key with the principal's session private key.

        Raises:
            NoShareForPrincipal: If the mapping holds no share for the principal.
            NoSessionKey: If the session caches no key for the principal.
            DecryptionFailed: If the share does not open with that key.
        """
        share = group_key.share_keys.get(principal_id)
        if share is None:
            raise NoShareForPrincipal(group_key.id, principal_id)
        private_key = cache.get(principal_id)
        return asymmetric_decrypt(share, private_key)
