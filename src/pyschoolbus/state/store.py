"""In-memory entity store.

This is the only mutable shared state in the library.  Every write is a
single synchronous assignment of a new immutable tuple, so a reader
never observes a half-applied change and an untouched collection keeps
its identity (derived views memoize on that).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from pyschoolbus.models import SchoolBusBaseModel, SchoolBusRecord
from pyschoolbus.state.entities import (
    ChangeKind,
    EntityStatus,
    EntityType,
    ResourceType,
    StoreChange,
    StoreKey,
    coerce_key,
)

_logger = logging.getLogger(__name__)

StoreListener = Callable[[StoreChange], None]

_UNSET: Any = object()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EntityStore:
    """One collection and one :class:`EntityStatus` per :class:`EntityType`.

    Each :class:`ResourceType` holds one document (or ``None`` before the
    first fetch) and has its own status as well.

    Referential integrity between collections is not enforced; deleting a
    school leaves its routes in place.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._collections: dict[EntityType, tuple[SchoolBusRecord, ...]] = {e: () for e in EntityType}
        self._resources: dict[ResourceType, SchoolBusBaseModel | None] = {r: None for r in ResourceType}
        self._statuses: dict[StoreKey, EntityStatus] = {k: EntityStatus() for k in (*EntityType, *ResourceType)}
        self._listeners: list[StoreListener] = []
        self._version = 0

    @property
    def version(self) -> int:
        """Monotonic write counter."""
        return self._version

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self, entity: EntityType | str) -> tuple[Any, ...]:
        return self._collections[EntityType.coerce(entity)]

    def get_by_id(self, entity: EntityType | str, record_id: str) -> Any | None:
        for record in self._collections[EntityType.coerce(entity)]:
            if record.id == record_id:
                return record
        return None

    def status(self, key: StoreKey | str) -> EntityStatus:
        return self._statuses[coerce_key(key)]

    def get_resource(self, resource: ResourceType | str) -> Any | None:
        return self._resources[ResourceType(resource)]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def replace_all(self, entity: EntityType | str, records: Iterable[SchoolBusRecord]) -> tuple[Any, ...]:
        """Swap in a freshly fetched collection.

        Duplicate ids collapse to one record: the last one wins and keeps
        the position of the first.
        """
        kind = EntityType.coerce(entity)
        by_id: dict[str, SchoolBusRecord] = {}
        for record in records:
            self._check_type(kind, record)
            by_id[record.id] = record
        collection = tuple(by_id.values())
        self._collections[kind] = collection
        self._notify(kind, ChangeKind.REPLACED, None)
        return collection

    def upsert(self, entity: EntityType | str, record: SchoolBusRecord) -> Any:
        """Replace the record with the same id in place, or append it."""
        kind = EntityType.coerce(entity)
        self._check_type(kind, record)
        current = self._collections[kind]
        for index, existing in enumerate(current):
            if existing.id == record.id:
                self._collections[kind] = (*current[:index], record, *current[index + 1 :])
                break
        else:
            self._collections[kind] = (*current, record)
        self._notify(kind, ChangeKind.UPSERTED, record.id)
        return record

    def remove(self, entity: EntityType | str, record_id: str) -> bool:
        kind = EntityType.coerce(entity)
        current = self._collections[kind]
        remaining = tuple(r for r in current if r.id != record_id)
        if len(remaining) == len(current):
            return False
        self._collections[kind] = remaining
        self._notify(kind, ChangeKind.REMOVED, record_id)
        return True

    def set_resource(self, resource: ResourceType | str, document: SchoolBusBaseModel) -> Any:
        """Replace a resource document."""
        kind = ResourceType(resource)
        expected = kind.model_type
        if not isinstance(document, expected):
            raise TypeError(f"{kind} holds {expected.__name__}, got {type(document).__name__}")
        self._resources[kind] = document
        self._notify(kind, ChangeKind.REPLACED, None)
        return document

    def set_status(
        self,
        key: StoreKey | str,
        *,
        loading: bool = _UNSET,
        error: str | None = _UNSET,
        last_fetch: datetime | None = _UNSET,
    ) -> EntityStatus:
        """Update the given status fields; omitted fields are kept."""
        kind = coerce_key(key)
        update: dict[str, Any] = {}
        if loading is not _UNSET:
            update["loading"] = loading
        if error is not _UNSET:
            update["error"] = error
        if last_fetch is not _UNSET:
            update["last_fetch"] = last_fetch
        status = self._statuses[kind].model_copy(update=update)
        self._statuses[kind] = status
        self._notify(kind, ChangeKind.STATUS, None)
        return status

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Call *listener* after every write.  Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, entity: StoreKey, kind: ChangeKind, record_id: str | None) -> None:
        self._version += 1
        if not self._listeners:
            return
        change = StoreChange(entity=entity, kind=kind, record_id=record_id, version=self._version)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.warning("Store listener failed for %s/%s", entity, kind, exc_info=True)

    @staticmethod
    def _check_type(entity: EntityType, record: SchoolBusRecord) -> None:
        expected = entity.record_type
        if not isinstance(record, expected):
            raise TypeError(f"{entity} holds {expected.__name__}, got {type(record).__name__}")
