"""
Per-session storage for an authenticated user.

The session store keeps namespaced values for exactly one session. Plain
serializable values go to ``_data`` (what a session backend would persist);
any other object goes to ``_objects`` and only lives in process memory.
The private key cache relies on that split to stay out of durable storage.
"""
import uuid
from typing import Any, Optional, Protocol, runtime_checkable
from datetime import datetime, timezone

from .conf import SESSION_ID, SESSION_KEY


@runtime_checkable
class SessionStore(Protocol):
    """Namespaced get/set scoped to a single authenticated session."""

    @property
    def session_id(self) -> str:
        ...

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        ...

    def set(self, namespace: str, key: str, value: Any) -> None:
        ...

    def delete(self, namespace: str, key: str) -> None:
        ...


class KeySession:
    """Session storage bound to one user.

    Args:
        data: previously persisted session data; may carry the
            ``session_id`` and ``user_id`` of the session.
        id: session id, generated when missing.
        identity: id of the principal owning the session.
    """

    def __init__(
        self,
        data: Optional[dict[str, Any]] = None,
        id: Optional[str] = None,
        identity: Optional[str] = None,
    ) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._objects: dict[str, dict[str, Any]] = {}
        self._changed = False
        data = dict(data) if data else {}
        self._id_ = data.pop(SESSION_ID, None) or id or uuid.uuid4().hex
        self._identity = data.pop(SESSION_KEY, None) or identity
        self._new = not data
        self.__created__ = datetime.now(timezone.utc)
        self._created = int(self.__created__.timestamp())
        for namespace, values in data.items():
            if isinstance(values, dict):
                self._data[namespace] = dict(values)

    def __repr__(self) -> str:
        return (
            f'<KeySession [id:{self._id_}, identity:{self._identity}] '
            f'data={list(self._data.keys())}, objects={list(self._objects.keys())}>'
        )

    # --- Serialization helpers ---

    def _is_serializable(self, value: Any) -> bool:
        """True for values a session backend can persist as-is."""
        if value is None or isinstance(value, (bool, int, float, str, bytes)):
            return True
        if isinstance(value, dict):
            return all(self._is_serializable(v) for v in value.values())
        if isinstance(value, (list, tuple, set, frozenset)):
            return all(self._is_serializable(v) for v in value)
        if isinstance(value, datetime):
            return True
        return False

    # --- Properties ---

    @property
    def new(self) -> bool:
        return self._new

    @property
    def session_id(self) -> str:
        return self._id_

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def created(self) -> int:
        return self._created

    @property
    def logon_time(self) -> datetime:
        return self.__created__

    @property
    def is_changed(self) -> bool:
        return self._changed

    @property
    def empty(self) -> bool:
        return not self._data and not self._objects

    # --- Store API ---

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        if key in self._objects.get(namespace, {}):
            return self._objects[namespace][key]
        return self._data.get(namespace, {}).get(key, default)

    def set(self, namespace: str, key: str, value: Any) -> None:
        if self._is_serializable(value):
            self._objects.get(namespace, {}).pop(key, None)
            self._data.setdefault(namespace, {})[key] = value
            self._changed = True
        else:
            # in-memory only, never part of session_data()
            self._data.get(namespace, {}).pop(key, None)
            self._objects.setdefault(namespace, {})[key] = value

    def delete(self, namespace: str, key: str) -> None:
        if self._objects.get(namespace, {}).pop(key, None) is not None:
            return
        if self._data.get(namespace, {}).pop(key, None) is not None:
            self._changed = True

    def session_data(self) -> dict:
        """Return only the persistable values."""
        data: dict[str, Any] = {SESSION_ID: self._id_}
        if self._identity is not None:
            data[SESSION_KEY] = self._identity
        data.update({ns: dict(values) for ns, values in self._data.items()})
        return data

    def session_objects(self) -> dict:
        """Return in-memory objects (not persisted)."""
        return self._objects

    def invalidate(self) -> None:
        """Clear all session data and in-memory objects."""
        self._changed = True
        self._data = {}
        self._objects = {}
