"""Transport route model and the derived stop record."""

from __future__ import annotations

from pydantic import Field

from pyschoolbus.models._base import SchoolBusBaseModel, SchoolBusDraft, SchoolBusEnum, SchoolBusRecord

__all__ = ["Route", "RouteDraft", "RouteHealth", "RouteStatus", "RouteStop", "RouteType"]


class RouteType(SchoolBusEnum):
    """Direction of a route; also selects which student location a stop uses."""

    UNKNOWN = "UNKNOWN"
    PICKUP = "PICKUP"
    DROPOFF = "DROPOFF"


class RouteStatus(SchoolBusEnum):
    UNKNOWN = "UNKNOWN"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class RouteHealth(SchoolBusEnum):
    """Live health indicator (green / yellow / red in the console)."""

    UNKNOWN = "UNKNOWN"
    NORMAL = "NORMAL"
    DELAYED = "DELAYED"
    ALERT = "ALERT"


class Route(SchoolBusRecord):
    """A bus route, owned by exactly one school."""

    name: str = ""
    school_id: str = ""
    type: RouteType = RouteType.UNKNOWN
    status: RouteStatus = RouteStatus.UNKNOWN
    health: RouteHealth = RouteHealth.UNKNOWN
    vehicle_plate: str = ""
    driver_id: str = ""


class RouteDraft(SchoolBusDraft):
    name: str = Field(min_length=1)
    school_id: str = Field(min_length=1)
    type: RouteType = RouteType.PICKUP
    status: RouteStatus = RouteStatus.ACTIVE
    health: RouteHealth = RouteHealth.NORMAL
    vehicle_plate: str = ""
    driver_id: str = ""


class RouteStop(SchoolBusBaseModel):
    """One stop of a derived route stop sequence."""

    student_id: str
    name: str
    address: str
    lat: float
    lng: float
    time: str
    """Synthetic arrival time, e.g. ``"07:05 AM"``."""
