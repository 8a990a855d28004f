"""Dashboard, settings and reporting models.

Dashboard metrics and platform settings are single documents cached in
the store next to the entity collections.  Trip statistics, trip
playback, route exports and assignment conflicts are read on demand and
never stored.
"""

from __future__ import annotations

import csv
import io
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyschoolbus.models._base import SchoolBusBaseModel
from pyschoolbus.models.route import Route

__all__ = [
    "ROUTE_EXPORT_COLUMNS",
    "AssignmentConflict",
    "DashboardMetrics",
    "PlatformSettings",
    "RouteExport",
    "TripPlayback",
    "TripStats",
]


class DashboardMetrics(SchoolBusBaseModel):
    """Headline numbers of the operations dashboard."""

    month_trips: int = 0
    month_km: float = 0.0
    active_trips: int = 0
    contracts: int = 0
    schools: int = 0
    students: int = 0
    on_time_rate: float = 0.0
    """Percentage, ``0``-``100``."""


class PlatformSettings(SchoolBusBaseModel):
    """White-label settings of the console."""

    platform_name: str = ""
    colors: dict[str, str] = Field(default_factory=dict)
    login_hero_image: str = ""
    hero_mode: str = "url"
    uploaded_hero_image: str | None = None
    logo_mode: str = "url"
    logo_urls: dict[str, str] = Field(default_factory=dict)
    testimonials: tuple[dict[str, Any], ...] = ()
    permission_groups: tuple[Any, ...] = ()


class TripStats(SchoolBusBaseModel):
    total_trips: int = 0
    total_km: float = 0.0
    on_time_rate: float = 0.0
    avg_duration: float = 0.0
    """Minutes."""
    period: str = "monthly"


class TripPlayback(SchoolBusBaseModel):
    """Recorded waypoints of a finished trip."""

    waypoints: tuple[dict[str, Any], ...] = ()
    duration: float = 0.0
    """Seconds."""


class AssignmentConflict(SchoolBusBaseModel):
    """A scheduling clash reported by the backend."""

    assignment_id: str = ""
    route_id: str = ""
    driver_id: str = ""
    type: str = ""
    message: str = ""


ROUTE_EXPORT_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "schoolId",
    "type",
    "status",
    "health",
    "vehiclePlate",
    "driverId",
)


class RouteExport(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: str = "csv"
    routes: tuple[Route, ...] = ()

    def to_csv(self) -> str:
        """Render the exported routes as CSV with a header row."""
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=ROUTE_EXPORT_COLUMNS, extrasaction="ignore", lineterminator="\n")
        writer.writeheader()
        for route in self.routes:
            writer.writerow(route.model_dump(by_alias=True, mode="json"))
        return buffer.getvalue()
