"""Entity and resource types, their status and store change notifications."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from pyschoolbus.models import (
    Assignment,
    DashboardMetrics,
    Driver,
    Notification,
    PlatformSettings,
    Route,
    School,
    SchoolBusBaseModel,
    SchoolBusRecord,
    Shift,
    Student,
    Trip,
)


class EntityType(StrEnum):
    """The eight synchronized collections.

    Values double as the plural wire key and flat path segment.
    """

    SCHOOLS = "schools"
    DRIVERS = "drivers"
    STUDENTS = "students"
    ROUTES = "routes"
    TRIPS = "trips"
    ASSIGNMENTS = "assignments"
    SHIFTS = "shifts"
    NOTIFICATIONS = "notifications"

    @property
    def singular(self) -> str:
        """Wire key of a single record (``"school"``, ``"student"`` ...)."""
        return self.value[:-1]

    @property
    def record_type(self) -> type[SchoolBusRecord]:
        return _RECORD_TYPES[self]

    @classmethod
    def coerce(cls, value: EntityType | str) -> EntityType:
        """Accept ``EntityType``, ``"students"``, ``"Student"`` or ``"student"``."""
        if isinstance(value, EntityType):
            return value
        key = value.strip().lower()
        if not key.endswith("s"):
            key = f"{key}s"
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"unknown entity type: {value!r}") from None


_RECORD_TYPES: dict[EntityType, type[SchoolBusRecord]] = {
    EntityType.SCHOOLS: School,
    EntityType.DRIVERS: Driver,
    EntityType.STUDENTS: Student,
    EntityType.ROUTES: Route,
    EntityType.TRIPS: Trip,
    EntityType.ASSIGNMENTS: Assignment,
    EntityType.SHIFTS: Shift,
    EntityType.NOTIFICATIONS: Notification,
}


class ResourceType(StrEnum):
    """Single documents cached next to the collections."""

    DASHBOARD = "dashboard"
    SETTINGS = "settings"

    @property
    def wire_key(self) -> str:
        """Key the document may be wrapped under in a response."""
        return _RESOURCE_WIRE_KEYS[self]

    @property
    def model_type(self) -> type[SchoolBusBaseModel]:
        return _RESOURCE_TYPES[self]


_RESOURCE_WIRE_KEYS: dict[ResourceType, str] = {
    ResourceType.DASHBOARD: "metrics",
    ResourceType.SETTINGS: "settings",
}

_RESOURCE_TYPES: dict[ResourceType, type[SchoolBusBaseModel]] = {
    ResourceType.DASHBOARD: DashboardMetrics,
    ResourceType.SETTINGS: PlatformSettings,
}

StoreKey = EntityType | ResourceType


def coerce_key(value: StoreKey | str) -> StoreKey:
    """Resolve a collection or resource name."""
    if isinstance(value, (EntityType, ResourceType)):
        return value
    try:
        return ResourceType(value.strip().lower())
    except ValueError:
        return EntityType.coerce(value)


class ChangeKind(StrEnum):
    REPLACED = "replaced"
    UPSERTED = "upserted"
    REMOVED = "removed"
    STATUS = "status"


class EntityStatus(BaseModel):
    """Loading/error state of one collection or resource."""

    model_config = ConfigDict(frozen=True)

    loading: bool = False
    error: str | None = None
    last_fetch: datetime | None = None

    @field_validator("last_fetch")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class StoreChange(BaseModel):
    """Notification sent to store subscribers after every write."""

    model_config = ConfigDict(frozen=True)

    entity: EntityType | ResourceType
    kind: ChangeKind
    record_id: str | None = None
    version: int = 0
