"""
SessionKeyCache — a principal's unwrapped private key for one session.

The key is kept encrypted under a key derived from the session id and
stored as an in-memory object of the session, so session backends never
persist it. A cache only answers for the principal that populated it.
"""
import logging
from dataclasses import dataclass, field

from ..conf import PUBKEY_NAMESPACE, SESSION_PRIVATE_KEY
from ..exceptions import NoSessionKey
from ..session import SessionStore
from .crypto import encrypt_for_session, decrypt_for_session

logger = logging.getLogger("navigator.pubkey")


@dataclass
class CachedPrivateKey:
    principal_id: str
    ciphertext_mem: bytes = field(repr=False)


class SessionKeyCache:
    """Private key cache bound to a single session store."""

    def __init__(self, session: SessionStore):
        self._session = session

    @property
    def session(self) -> SessionStore:
        return self._session

    def _entry(self):
        entry = self._session.get(PUBKEY_NAMESPACE, SESSION_PRIVATE_KEY)
        return entry if isinstance(entry, CachedPrivateKey) else None

    def store(self, principal_id: str, private_key: bytes) -> None:
        """Cache ``private_key`` for the session lifetime, replacing any entry."""
        ciphertext_mem = encrypt_for_session(private_key, self._session.session_id)
        self._session.set(
            PUBKEY_NAMESPACE,
            SESSION_PRIVATE_KEY,
            CachedPrivateKey(principal_id=principal_id, ciphertext_mem=ciphertext_mem),
        )
        logger.debug("Session key cached: principal=%s", principal_id)

    def has_key(self, principal_id: str) -> bool:
        entry = self._entry()
        return entry is not None and entry.principal_id == principal_id

    def get(self, principal_id: str) -> bytes:
        """Return the cached private key of ``principal_id``.

        Raises:
            NoSessionKey: If nothing is cached or the cached key belongs
                to another principal.
        """
        entry = self._entry()
        if entry is None or entry.principal_id != principal_id:
            raise NoSessionKey(principal_id)
        return decrypt_for_session(entry.ciphertext_mem, self._session.session_id)

    def clear(self) -> None:
        self._session.delete(PUBKEY_NAMESPACE, SESSION_PRIVATE_KEY)
