"""Derived views over the entity store.

The module-level functions are pure: same inputs, same output, no store
access.  :class:`DerivedViewEngine` binds them to an
:class:`~pyschoolbus.state.store.EntityStore` and memoizes each view on
the identity of its input collections, so repeated reads with unchanged
inputs return the identical object.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable, Hashable, Sequence
from datetime import time
from typing import Any

from pyschoolbus._constants import DEFAULT_STOP_ADDRESS, DEFAULT_STOP_LAT, DEFAULT_STOP_LNG, stop_time
from pyschoolbus.models import Notification, Route, RouteStop, RouteType, School, Student, Trip
from pyschoolbus.state.entities import EntityType
from pyschoolbus.state.store import EntityStore


def filter_routes(routes: tuple[Route, ...], school_id: str | None) -> tuple[Route, ...]:
    """Routes of *school_id*; the collection itself when no school is selected."""
    if not school_id:
        return routes
    return tuple(r for r in routes if r.school_id == school_id)


def filter_trips(trips: tuple[Trip, ...], routes: Sequence[Route], school_id: str | None) -> tuple[Trip, ...]:
    """Trips whose route belongs to *school_id*.

    A trip pointing at an unknown route is dropped once a school is selected.
    """
    if not school_id:
        return trips
    route_ids = {r.id for r in routes if r.school_id == school_id}
    return tuple(t for t in trips if t.route_id in route_ids)


def route_students(students: Sequence[Student], route_id: str) -> tuple[Student, ...]:
    """Students assigned to *route_id*, in collection order."""
    return tuple(s for s in students if route_id in s.assigned_routes)


def stop_direction(direction: RouteType | str) -> RouteType:
    """Normalize a stop direction; only PICKUP and DROPOFF are valid."""
    kind = RouteType(direction)
    if kind is RouteType.UNKNOWN:
        raise ValueError(f"direction must be PICKUP or DROPOFF, got {direction!r}")
    return kind


def derive_stops(
    students: Sequence[Student],
    route_id: str,
    direction: RouteType | str,
    *,
    base_time: time,
    step_minutes: int,
) -> tuple[RouteStop, ...]:
    """Ordered, timed stop sequence of a route.

    One stop per assigned student.  PICKUP uses the pickup location,
    DROPOFF the dropoff location.  A missing location, address or
    coordinate falls back to the default stop.
    """
    use_pickup = stop_direction(direction) is RouteType.PICKUP
    stops: list[RouteStop] = []
    for index, student in enumerate(route_students(students, route_id)):
        location = student.pickup_location if use_pickup else student.dropoff_location
        if location is None:
            address, lat, lng = DEFAULT_STOP_ADDRESS, DEFAULT_STOP_LAT, DEFAULT_STOP_LNG
        else:
            address = location.address or DEFAULT_STOP_ADDRESS
            lat = DEFAULT_STOP_LAT if location.lat is None else location.lat
            lng = DEFAULT_STOP_LNG if location.lng is None else location.lng
        stops.append(
            RouteStop(
                student_id=student.id,
                name=student.name,
                address=address,
                lat=lat,
                lng=lng,
                time=stop_time(base_time, index, step_minutes),
            )
        )
    return tuple(stops)


MEMO_LIMIT = 256


class _Memo:
    __slots__ = ("inputs", "value")

    def __init__(self, inputs: tuple[Any, ...], value: Any) -> None:
        self.inputs = inputs
        self.value = value


class DerivedViewEngine:
    """Store-bound, memoized derived views.

    At most *memo_limit* views are kept; the least recently read one is
    dropped first.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        stop_base_time: time,
        stop_interval_minutes: int,
        memo_limit: int = MEMO_LIMIT,
    ) -> None:
        if memo_limit < 1:
            raise ValueError("memo_limit must be >= 1")
        self._store = store
        self._stop_base_time = stop_base_time
        self._stop_interval_minutes = stop_interval_minutes
        self._memo_limit = memo_limit
        self._memo: OrderedDict[Hashable, _Memo] = OrderedDict()

    def _cached(self, key: Hashable, inputs: tuple[Any, ...], compute: Callable[[], Any]) -> Any:
        memo = self._memo.get(key)
        if memo is not None and len(memo.inputs) == len(inputs):
            if all(a is b for a, b in zip(memo.inputs, inputs, strict=True)):
                self._memo.move_to_end(key)
                return memo.value
        value = compute()
        self._memo[key] = _Memo(inputs, value)
        self._memo.move_to_end(key)
        while len(self._memo) > self._memo_limit:
            self._memo.popitem(last=False)
        return value

    def filtered_routes(self, school_id: str | None) -> tuple[Route, ...]:
        routes = self._store.get_all(EntityType.ROUTES)
        return self._cached(
            ("routes", school_id or None),
            (routes,),
            lambda: filter_routes(routes, school_id),
        )

    def filtered_trips(self, school_id: str | None) -> tuple[Trip, ...]:
        trips = self._store.get_all(EntityType.TRIPS)
        routes = self._store.get_all(EntityType.ROUTES)
        return self._cached(
            ("trips", school_id or None),
            (trips, routes),
            lambda: filter_trips(trips, routes, school_id),
        )

    def route_students(self, route_id: str) -> tuple[Student, ...]:
        students = self._store.get_all(EntityType.STUDENTS)
        return self._cached(("route_students", route_id), (students,), lambda: route_students(students, route_id))

    def route_stops(self, route_id: str, direction: RouteType | str = RouteType.PICKUP) -> tuple[RouteStop, ...]:
        students = self._store.get_all(EntityType.STUDENTS)
        normalized = stop_direction(direction)
        return self._cached(
            ("stops", route_id, normalized),
            (students,),
            lambda: derive_stops(
                students,
                route_id,
                normalized,
                base_time=self._stop_base_time,
                step_minutes=self._stop_interval_minutes,
            ),
        )

    def selected_school(self, school_id: str | None) -> School | None:
        if not school_id:
            return None
        return self._store.get_by_id(EntityType.SCHOOLS, school_id)

    def unread_notification_count(self) -> int:
        notifications: tuple[Notification, ...] = self._store.get_all(EntityType.NOTIFICATIONS)
        return self._cached(("unread",), (notifications,), lambda: sum(1 for n in notifications if not n.read))
