"""Scheduling records: route assignments and driver shifts.

Both carry display names (``school``, ``driver``, ``assigned_route``)
rather than ids, matching what the scheduling screens store.
"""

from __future__ import annotations

from pydantic import Field

from pyschoolbus.models._base import SchoolBusDraft, SchoolBusEnum, SchoolBusRecord
from pyschoolbus.models.route import RouteType

__all__ = [
    "Assignment",
    "AssignmentDraft",
    "AssignmentStatus",
    "Shift",
    "ShiftDraft",
    "ShiftStatus",
]


class AssignmentStatus(SchoolBusEnum):
    UNKNOWN = "UNKNOWN"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ShiftStatus(SchoolBusEnum):
    UNKNOWN = "UNKNOWN"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    COMPLETED = "COMPLETED"


class Assignment(SchoolBusRecord):
    """A driver assigned to a route on a date."""

    route_id: str = ""
    route_name: str = ""
    school: str = ""
    driver: str = ""
    date: str = ""
    route_time: str = ""
    # The scheduling screens send "DROP_OFF"; the enum folds it to DROPOFF.
    route_type: RouteType = RouteType.UNKNOWN
    status: AssignmentStatus = AssignmentStatus.UNKNOWN
    recurring: bool = False
    conflicts: tuple[str, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class AssignmentDraft(SchoolBusDraft):
    route_id: str = Field(min_length=1)
    route_name: str = ""
    school: str = ""
    driver: str = ""
    date: str = ""
    route_time: str = ""
    route_type: RouteType = RouteType.PICKUP
    status: AssignmentStatus = AssignmentStatus.SCHEDULED
    recurring: bool = False


class Shift(SchoolBusRecord):
    """A recurring driver shift."""

    shift_name: str = ""
    shift_code: str = ""
    school: str = ""
    drivers: tuple[str, ...] = ()
    days: tuple[str, ...] = ()
    scheduled_time: str = ""
    actual_time: str | None = None
    assigned_route: str = ""
    status: ShiftStatus = ShiftStatus.UNKNOWN
    notes: str | None = None

    def to_draft(self, *, shift_name: str | None = None) -> ShiftDraft:
        """Writable copy of this shift, optionally renamed."""
        return ShiftDraft(
            shift_name=shift_name if shift_name is not None else self.shift_name,
            shift_code=self.shift_code,
            school=self.school,
            drivers=self.drivers,
            days=self.days,
            scheduled_time=self.scheduled_time,
            assigned_route=self.assigned_route,
            status=self.status if self.status is not ShiftStatus.UNKNOWN else ShiftStatus.ACTIVE,
            notes=self.notes,
        )


class ShiftDraft(SchoolBusDraft):
    shift_name: str = Field(min_length=1)
    shift_code: str = ""
    school: str = ""
    drivers: tuple[str, ...] = ()
    days: tuple[str, ...] = ()
    scheduled_time: str = ""
    assigned_route: str = ""
    status: ShiftStatus = ShiftStatus.ACTIVE
    notes: str | None = None
