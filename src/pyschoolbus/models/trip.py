"""Trip model (one run of a route on a given day)."""

from __future__ import annotations

from pyschoolbus.models._base import SchoolBusBaseModel, SchoolBusEnum, SchoolBusRecord

__all__ = ["IncidentFlag", "Trip", "TripEvent", "TripEventType", "TripStatus"]


class TripStatus(SchoolBusEnum):
    UNKNOWN = "UNKNOWN"
    STARTED = "STARTED"
    ENDED = "ENDED"
    SCHEDULED = "SCHEDULED"


class TripEventType(SchoolBusEnum):
    UNKNOWN = "UNKNOWN"
    START = "START"
    BOARDING = "BOARDING"
    DROP = "DROP"
    ALERT = "ALERT"
    END = "END"


class TripEvent(SchoolBusBaseModel):
    """Timeline entry reported by the driver app."""

    time: str = ""
    description: str = ""
    type: TripEventType = TripEventType.UNKNOWN
    student_name: str | None = None


class Trip(SchoolBusRecord):
    """A trip belongs to exactly one route."""

    route_id: str = ""
    driver_name: str = ""
    date: str = ""
    start_time: str = ""
    end_time: str | None = None
    status: TripStatus = TripStatus.UNKNOWN
    rider_count: int = 0
    events: tuple[TripEvent, ...] = ()

    @property
    def alerts(self) -> tuple[TripEvent, ...]:
        return tuple(e for e in self.events if e.type is TripEventType.ALERT)


class IncidentFlag(SchoolBusBaseModel):
    """Acknowledgement of a flagged trip incident."""

    success: bool = True
    flag_id: str = ""
