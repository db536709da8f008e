"""
Entity Store — contract consumed by the coordinator plus an in-memory store.

The production store (database, ORM) lives outside this package; anything
implementing :class:`EntityStore` can be handed to the coordinator.
"""
import logging
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from .conf import ENTITY_TYPES
from .models import Entity

logger = logging.getLogger("navigator.pubkey")

EntityFilter = Callable[[Entity], bool]


@runtime_checkable
class EntityStore(Protocol):
    """Async load/save/delete of records by type and id."""

    async def load(self, entity_type: str, entity_id: str) -> Optional[Entity]:
        ...

    async def load_all(
        self,
        entity_type: str,
        filter: Optional[EntityFilter] = None,
    ) -> list[Entity]:
        ...

    async def save(self, entity: Entity) -> None:
        ...

    async def delete(self, entity_type: str, entity_id: str) -> None:
        ...


class MemoryEntityStore:
    """Entity store backed by dictionaries.

    Records are deep-copied on the way in and out, so a caller mutating a
    loaded record never changes what is stored until it calls ``save``.
    """

    def __init__(self, *entities: Entity):
        self._records: dict[str, dict[str, Entity]] = {
            name: {} for name in ENTITY_TYPES
        }
        for entity in entities:
            self._put(entity)

    def _bucket(self, entity_type: str) -> dict[str, Entity]:
        try:
            return self._records[entity_type]
        except KeyError:
            raise ValueError(f"Unknown entity type: {entity_type}") from None

    def _put(self, entity: Entity) -> None:
        self._bucket(entity.entity_type)[entity.id] = entity.model_copy(deep=True)

    async def load(self, entity_type: str, entity_id: str) -> Optional[Entity]:
        entity = self._bucket(entity_type).get(entity_id)
        return entity.model_copy(deep=True) if entity is not None else None

    async def load_all(
        self,
        entity_type: str,
        filter: Optional[EntityFilter] = None,
    ) -> list[Entity]:
        result = []
        for entity in self._bucket(entity_type).values():
            if filter is None or filter(entity):
                result.append(entity.model_copy(deep=True))
        return result

    async def save(self, entity: Entity) -> None:
        self._put(entity)
        logger.debug("Store save: %s=%s", entity.entity_type, entity.id)

    async def delete(self, entity_type: str, entity_id: str) -> None:
        self._bucket(entity_type).pop(entity_id, None)
        logger.debug("Store delete: %s=%s", entity_type, entity_id)

    def count(self, entity_type: str) -> int:
        return len(self._bucket(entity_type))

    def __repr__(self) -> str:
        sizes: dict[str, Any] = {k: len(v) for k, v in self._records.items()}
        return f"<MemoryEntityStore {sizes}>"
