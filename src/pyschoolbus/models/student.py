"""Student model.

``assigned_routes`` is the only place student/route membership lives;
route rosters are always derived by scanning students.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from pyschoolbus.models._base import SchoolBusBaseModel, SchoolBusDraft, SchoolBusEnum, SchoolBusRecord

__all__ = ["Location", "Student", "StudentDraft", "StudentStatus"]


class StudentStatus(SchoolBusEnum):
    UNKNOWN = "UNKNOWN"
    WAITING = "WAITING"
    ON_BOARD = "ON_BOARD"
    DROPPED_OFF = "DROPPED_OFF"
    ABSENT = "ABSENT"
    DISABLED = "DISABLED"


class Location(SchoolBusBaseModel):
    """An address, geocoded when the backend has coordinates."""

    lat: float | None = None
    lng: float | None = None
    address: str = ""


def _dedupe_routes(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    seen: dict[str, None] = {}
    for item in value:
        route_id = str(item).strip()
        if route_id:
            seen.setdefault(route_id, None)
    return tuple(seen)


class Student(SchoolBusRecord):
    """A student rider.

    ``school`` and ``grade`` are display names as the console stores them.
    """

    name: str = ""
    school: str = ""
    grade: str = ""
    guardian: str = ""
    guardian_phone: str = ""
    status: StudentStatus = StudentStatus.UNKNOWN
    pickup_location: Location | None = None
    dropoff_location: Location | None = None
    assigned_routes: tuple[str, ...] = ()

    @field_validator("assigned_routes", mode="before")
    @classmethod
    def _unique_routes(cls, value: Any) -> tuple[str, ...]:
        # Ordered set: first occurrence wins.
        return _dedupe_routes(value)

    @property
    def is_disabled(self) -> bool:
        return self.status is StudentStatus.DISABLED

    def with_route_toggled(self, route_id: str) -> Student:
        """Copy with *route_id* added to or removed from ``assigned_routes``."""
        if route_id in self.assigned_routes:
            routes = tuple(r for r in self.assigned_routes if r != route_id)
        else:
            routes = (*self.assigned_routes, route_id)
        return self.model_copy(update={"assigned_routes": routes})


class StudentDraft(SchoolBusDraft):
    name: str = Field(min_length=1)
    school: str = ""
    grade: str = ""
    guardian: str = ""
    guardian_phone: str = ""
    status: StudentStatus = StudentStatus.WAITING
    pickup_location: Location | None = None
    dropoff_location: Location | None = None
    assigned_routes: tuple[str, ...] = ()

    @field_validator("assigned_routes", mode="before")
    @classmethod
    def _unique_routes(cls, value: Any) -> tuple[str, ...]:
        return _dedupe_routes(value)
