"""Per-entity and per-document accessors composed by
:class:`~pyschoolbus.client.SchoolBusClient`.

Each accessor is a thin facade: reads come from the store or the derived
view engine, loads go through the fetch orchestrator and writes through
the mutation gateway.  Exports, statistics and conflicts are read through
the lookup gateway and never cached.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from pyschoolbus.models import (
    Assignment,
    AssignmentConflict,
    BulkImportResult,
    BulkStudentRow,
    DashboardMetrics,
    IncidentFlag,
    Notification,
    OtpCode,
    PlatformSettings,
    QrCode,
    Route,
    RouteExport,
    RouteStop,
    RouteType,
    School,
    SchoolBusDraft,
    Shift,
    Student,
    Trip,
    TripPlayback,
    TripStats,
)
from pyschoolbus.state.entities import EntityType, ResourceType

if TYPE_CHECKING:
    from pyschoolbus.client import SchoolBusClient


class EntityAccessor:
    """Common read/load/write surface of one collection."""

    entity: ClassVar[EntityType]

    def __init__(self, client: SchoolBusClient) -> None:
        self._client = client

    @property
    def items(self) -> tuple[Any, ...]:
        return self._client.store.get_all(self.entity)

    @property
    def is_loading(self) -> bool:
        return self._client.store.status(self.entity).loading

    @property
    def error(self) -> str | None:
        return self._client.store.status(self.entity).error

    def get(self, record_id: str) -> Any | None:
        return self._client.store.get_by_id(self.entity, record_id)

    async def load(self) -> tuple[Any, ...]:
        """Fetch unless a fresh copy is cached or a fetch is in flight."""
        await self._client.fetch(self.entity)
        return self.items

    async def refresh(self) -> tuple[Any, ...]:
        await self._client.fetch(self.entity, force=True)
        return self.items

    async def create(self, draft: SchoolBusDraft | Mapping[str, Any]) -> Any:
        return await self._client.mutations.create(self.entity, draft)

    async def update(self, record_id: str, patch: Mapping[str, Any]) -> Any:
        return await self._client.mutations.update(self.entity, record_id, patch)

    async def delete(self, record_id: str) -> None:
        await self._client.mutations.remove(self.entity, record_id)


class SchoolAccessor(EntityAccessor):
    entity = EntityType.SCHOOLS

    @property
    def selected(self) -> School | None:
        """The school matching ``client.selected_school_id``, if loaded."""
        return self._client.views.selected_school(self._client.selected_school_id)


class DriverAccessor(EntityAccessor):
    entity = EntityType.DRIVERS

    async def generate_otp(self, driver_id: str) -> OtpCode:
        return await self._client.mutations.generate_driver_otp(driver_id)

    async def get_qr_code(self, driver_id: str) -> QrCode:
        return await self._client.mutations.get_driver_qr_code(driver_id)


class StudentAccessor(EntityAccessor):
    entity = EntityType.STUDENTS

    def for_route(self, route_id: str) -> tuple[Student, ...]:
        return self._client.views.route_students(route_id)

    async def toggle_disable(self, student_id: str) -> Student:
        return await self._client.mutations.toggle_student_disable(student_id)

    async def transfer(self, student_id: str, *, school: str | None = None, grade: str | None = None) -> Student:
        return await self._client.mutations.transfer_student(student_id, school=school, grade=grade)

    async def bulk_upload(
        self,
        rows: Iterable[Mapping[str, Any] | BulkStudentRow],
        *,
        school: str,
    ) -> BulkImportResult:
        return await self._client.mutations.bulk_upload_students(rows, school=school)

    def toggle_assignment(self, student_id: str, route_id: str) -> Student:
        return self._client.mutations.toggle_student_assignment(student_id, route_id)


class RouteAccessor(EntityAccessor):
    """Routes, scoped to ``client.selected_school_id`` by default."""

    entity = EntityType.ROUTES

    @property
    def items(self) -> tuple[Route, ...]:
        return self._client.views.filtered_routes(self._client.selected_school_id)

    @property
    def all_items(self) -> tuple[Route, ...]:
        return self._client.store.get_all(self.entity)

    def stops(self, route_id: str, direction: RouteType | str | None = None) -> tuple[RouteStop, ...]:
        """Stop sequence of a route.

        *direction* defaults to the route's own type, PICKUP when unknown.
        """
        if direction is None:
            route: Route | None = self.get(route_id)
            if route is not None and route.type is not RouteType.UNKNOWN:
                direction = route.type
            else:
                direction = RouteType.PICKUP
        return self._client.views.route_stops(route_id, direction)

    def students(self, route_id: str) -> tuple[Student, ...]:
        return self._client.views.route_students(route_id)

    async def export(self, format: str = "csv") -> RouteExport:
        """Export every route; ignores the school selection."""
        return await self._client.lookups.export_routes(format)


class TripAccessor(EntityAccessor):
    """Trips, scoped to ``client.selected_school_id`` through their route."""

    entity = EntityType.TRIPS

    @property
    def items(self) -> tuple[Trip, ...]:
        return self._client.views.filtered_trips(self._client.selected_school_id)

    @property
    def all_items(self) -> tuple[Trip, ...]:
        return self._client.store.get_all(self.entity)

    async def flag_incident(self, trip_id: str, reason: str) -> IncidentFlag:
        return await self._client.mutations.flag_trip_incident(trip_id, reason)

    async def stats(self, period: str = "monthly") -> TripStats:
        return await self._client.lookups.trip_stats(period)

    async def playback(self, trip_id: str) -> TripPlayback:
        return await self._client.lookups.trip_playback(trip_id)


class AssignmentAccessor(EntityAccessor):
    entity = EntityType.ASSIGNMENTS

    @property
    def with_conflicts(self) -> tuple[Assignment, ...]:
        return tuple(a for a in self.items if a.has_conflicts)

    async def conflicts(self) -> tuple[AssignmentConflict, ...]:
        """Scheduling clashes as the backend reports them right now."""
        return await self._client.lookups.assignment_conflicts()


class ShiftAccessor(EntityAccessor):
    entity = EntityType.SHIFTS

    async def duplicate(self, shift_id: str) -> Shift:
        return await self._client.mutations.duplicate_shift(shift_id)


class NotificationAccessor(EntityAccessor):
    entity = EntityType.NOTIFICATIONS

    @property
    def unread_count(self) -> int:
        return self._client.views.unread_notification_count()

    async def mark_read(self, notification_id: str) -> Notification:
        return await self._client.mutations.mark_notification_read(notification_id)

    async def mark_all_read(self) -> tuple[Notification, ...]:
        return await self._client.mutations.mark_all_notifications_read()


class ResourceAccessor:
    """Read/load surface of one cached document."""

    resource: ClassVar[ResourceType]

    def __init__(self, client: SchoolBusClient) -> None:
        self._client = client

    @property
    def value(self) -> Any | None:
        return self._client.store.get_resource(self.resource)

    @property
    def is_loading(self) -> bool:
        return self._client.store.status(self.resource).loading

    @property
    def error(self) -> str | None:
        return self._client.store.status(self.resource).error

    async def load(self) -> Any | None:
        await self._client.fetch_resource(self.resource)
        return self.value

    async def refresh(self) -> Any | None:
        await self._client.fetch_resource(self.resource, force=True)
        return self.value


class DashboardAccessor(ResourceAccessor):
    resource = ResourceType.DASHBOARD

    @property
    def value(self) -> DashboardMetrics | None:
        return self._client.store.get_resource(self.resource)


class SettingsAccessor(ResourceAccessor):
    resource = ResourceType.SETTINGS

    @property
    def value(self) -> PlatformSettings | None:
        return self._client.store.get_resource(self.resource)

    async def update(self, patch: Mapping[str, Any]) -> PlatformSettings:
        return await self._client.mutations.update_settings(patch)
