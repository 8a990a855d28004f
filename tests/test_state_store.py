from __future__ import annotations

import logging
from datetime import UTC, datetime

import pytest

from pyschoolbus.models import DashboardMetrics, PlatformSettings, Route, School, Student
from pyschoolbus.state.entities import ChangeKind, EntityType, ResourceType, StoreChange
from pyschoolbus.state.store import EntityStore


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _route(route_id: str, school_id: str = "S1", name: str = "") -> Route:
    return Route(id=route_id, school_id=school_id, name=name or route_id)


def test_upsert_replaces_in_place_and_appends() -> None:
    store = EntityStore(clock=_dt)
    store.replace_all(EntityType.ROUTES, [_route("R1"), _route("R2"), _route("R3")])

    store.upsert(EntityType.ROUTES, _route("R2", name="renamed"))
    store.upsert(EntityType.ROUTES, _route("R4"))

    routes = store.get_all(EntityType.ROUTES)
    assert [r.id for r in routes] == ["R1", "R2", "R3", "R4"]
    assert routes[1].name == "renamed"


def test_replace_all_collapses_duplicate_ids() -> None:
    store = EntityStore(clock=_dt)
    collection = store.replace_all("routes", [_route("R1", name="a"), _route("R2"), _route("R1", name="b")])

    assert [r.id for r in collection] == ["R1", "R2"]
    assert collection[0].name == "b"


def test_unchanged_collection_keeps_identity() -> None:
    store = EntityStore(clock=_dt)
    store.replace_all(EntityType.ROUTES, [_route("R1")])
    routes = store.get_all(EntityType.ROUTES)

    store.upsert(EntityType.SCHOOLS, School(id="S1", name="International Academy"))

    assert store.get_all(EntityType.ROUTES) is routes


def test_remove_reports_whether_record_existed() -> None:
    store = EntityStore(clock=_dt)
    store.replace_all(EntityType.ROUTES, [_route("R1")])

    assert store.remove(EntityType.ROUTES, "R1") is True
    assert store.remove(EntityType.ROUTES, "R1") is False
    assert store.get_all(EntityType.ROUTES) == ()


def test_removing_school_does_not_cascade() -> None:
    store = EntityStore(clock=_dt)
    store.replace_all(EntityType.SCHOOLS, [School(id="S1")])
    store.replace_all(EntityType.ROUTES, [_route("R1", "S1")])

    store.remove(EntityType.SCHOOLS, "S1")

    assert store.get_by_id(EntityType.ROUTES, "R1") is not None


def test_set_status_keeps_omitted_fields() -> None:
    store = EntityStore(clock=_dt)
    store.set_status(EntityType.TRIPS, loading=True)
    store.set_status(EntityType.TRIPS, error="HTTP 500")

    status = store.status(EntityType.TRIPS)
    assert status.loading is True
    assert status.error == "HTTP 500"

    store.set_status(EntityType.TRIPS, loading=False, error=None, last_fetch=_dt())
    status = store.status(EntityType.TRIPS)
    assert status.loading is False
    assert status.error is None
    assert status.last_fetch == _dt()
    # Other entities are independent.
    assert store.status(EntityType.ROUTES).last_fetch is None


def test_upsert_rejects_wrong_record_type() -> None:
    store = EntityStore(clock=_dt)
    with pytest.raises(TypeError):
        store.upsert(EntityType.STUDENTS, _route("R1"))


def test_entity_names_are_coerced() -> None:
    store = EntityStore(clock=_dt)
    store.upsert("Student", Student(id="STU1"))
    assert store.get_by_id("students", "STU1") is not None
    with pytest.raises(ValueError):
        store.get_all("buses")


def test_subscribers_are_notified_and_failures_logged(caplog: pytest.LogCaptureFixture) -> None:
    store = EntityStore(clock=_dt)
    seen: list[StoreChange] = []

    def broken(_change: StoreChange) -> None:
        raise RuntimeError("boom")

    store.subscribe(broken)
    unsubscribe = store.subscribe(seen.append)

    with caplog.at_level(logging.WARNING, logger="pyschoolbus.state.store"):
        store.upsert(EntityType.STUDENTS, Student(id="STU1"))

    assert seen[-1].entity is EntityType.STUDENTS
    assert seen[-1].kind is ChangeKind.UPSERTED
    assert seen[-1].record_id == "STU1"
    assert seen[-1].version == store.version
    assert "listener failed" in caplog.text

    unsubscribe()
    store.remove(EntityType.STUDENTS, "STU1")
    assert len(seen) == 1


def test_resources_are_stored_with_their_own_status() -> None:
    store = EntityStore(clock=_dt)
    seen: list[StoreChange] = []
    store.subscribe(seen.append)
    assert store.get_resource(ResourceType.DASHBOARD) is None

    metrics = DashboardMetrics(active_trips=3)
    assert store.set_resource("dashboard", metrics) is metrics
    store.set_status(ResourceType.DASHBOARD, error="HTTP 503")

    assert store.get_resource(ResourceType.DASHBOARD) is metrics
    assert store.status("dashboard").error == "HTTP 503"
    assert store.status(ResourceType.SETTINGS).error is None
    assert seen[-1].entity is ResourceType.DASHBOARD
    assert seen[-1].kind is ChangeKind.REPLACED


def test_set_resource_rejects_wrong_document_type() -> None:
    store = EntityStore(clock=_dt)
    with pytest.raises(TypeError):
        store.set_resource(ResourceType.SETTINGS, DashboardMetrics())
    store.set_resource(ResourceType.SETTINGS, PlatformSettings(platform_name="Fleet"))
    assert store.get_resource(ResourceType.SETTINGS).platform_name == "Fleet"
