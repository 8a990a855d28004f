from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from pyschoolbus.exceptions import SchoolBusTransportError
from pyschoolbus.ingestion.orchestrator import BOOTSTRAP_PHASES, FetchOrchestrator
from pyschoolbus.models import (
    DashboardMetrics,
    Notification,
    PlatformSettings,
    Route,
    School,
    SchoolBusBaseModel,
    SchoolBusRecord,
    Student,
    Trip,
)
from pyschoolbus.state.entities import EntityType, ResourceType
from pyschoolbus.state.store import EntityStore


@dataclass
class FakeClock:
    now: datetime = field(default_factory=lambda: datetime(2026, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeFetcher:
    records: dict[EntityType, list[SchoolBusRecord]] = field(default_factory=dict)
    calls: dict[EntityType, int] = field(default_factory=dict)
    failing: set[EntityType] = field(default_factory=set)
    gate: asyncio.Event | None = None
    log: list[str] = field(default_factory=list)

    async def __call__(self, entity: EntityType) -> list[SchoolBusRecord]:
        self.calls[entity] = self.calls.get(entity, 0) + 1
        self.log.append(f"start:{entity.value}")
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        self.log.append(f"end:{entity.value}")
        if entity in self.failing:
            raise SchoolBusTransportError("HTTP 500", status_code=500, endpoint=f"/{entity.value}")
        return list(self.records.get(entity, []))


def _records() -> dict[EntityType, list[SchoolBusRecord]]:
    return {
        EntityType.SCHOOLS: [School(id="S1")],
        EntityType.STUDENTS: [Student(id="STU1")],
        EntityType.NOTIFICATIONS: [Notification(id="N1")],
        EntityType.ROUTES: [Route(id="R1", school_id="S1")],
        EntityType.TRIPS: [Trip(id="T1", route_id="R1")],
    }


def _orchestrator(fetcher: FakeFetcher, clock: FakeClock | None = None) -> tuple[FetchOrchestrator, EntityStore]:
    store = EntityStore(clock=clock or FakeClock())
    return FetchOrchestrator(store, fetcher, cache_ttl=300.0, live_cache_ttl=60.0), store


@pytest.mark.asyncio
async def test_fresh_cache_makes_no_network_call() -> None:
    fetcher = FakeFetcher(records=_records())
    orchestrator, _ = _orchestrator(fetcher)

    first = await orchestrator.fetch(EntityType.ROUTES)
    second = await orchestrator.fetch(EntityType.ROUTES)

    assert fetcher.calls[EntityType.ROUTES] == 1
    assert second is first


@pytest.mark.asyncio
async def test_force_always_calls_network() -> None:
    fetcher = FakeFetcher(records=_records())
    orchestrator, _ = _orchestrator(fetcher)

    await orchestrator.fetch(EntityType.ROUTES)
    await orchestrator.fetch(EntityType.ROUTES, force=True)

    assert fetcher.calls[EntityType.ROUTES] == 2


@pytest.mark.asyncio
async def test_concurrent_fetches_are_coalesced() -> None:
    fetcher = FakeFetcher(records=_records(), gate=asyncio.Event())
    orchestrator, _ = _orchestrator(fetcher)

    first = asyncio.create_task(orchestrator.fetch(EntityType.SCHOOLS))
    second = asyncio.create_task(orchestrator.fetch(EntityType.SCHOOLS))
    await asyncio.sleep(0)
    assert orchestrator.is_in_flight(EntityType.SCHOOLS)
    fetcher.gate.set()

    a, b = await asyncio.gather(first, second)
    assert fetcher.calls[EntityType.SCHOOLS] == 1
    assert a is b
    assert not orchestrator.is_in_flight(EntityType.SCHOOLS)


@pytest.mark.asyncio
async def test_empty_collection_is_not_served_from_cache() -> None:
    fetcher = FakeFetcher()
    orchestrator, _ = _orchestrator(fetcher)

    await orchestrator.fetch(EntityType.SHIFTS)
    await orchestrator.fetch(EntityType.SHIFTS)

    assert fetcher.calls[EntityType.SHIFTS] == 2


@pytest.mark.asyncio
async def test_cache_expires_after_ttl() -> None:
    clock = FakeClock()
    fetcher = FakeFetcher(records=_records())
    orchestrator, _ = _orchestrator(fetcher, clock)

    await orchestrator.fetch(EntityType.TRIPS)
    await orchestrator.fetch(EntityType.SCHOOLS)
    clock.advance(61)
    await orchestrator.fetch(EntityType.TRIPS)
    await orchestrator.fetch(EntityType.SCHOOLS)

    # Trips use the short live TTL; schools the regular one.
    assert fetcher.calls[EntityType.TRIPS] == 2
    assert fetcher.calls[EntityType.SCHOOLS] == 1


@pytest.mark.asyncio
async def test_failure_records_error_and_keeps_stale_data() -> None:
    fetcher = FakeFetcher(records=_records())
    orchestrator, store = _orchestrator(fetcher)
    stale = await orchestrator.fetch(EntityType.ROUTES)

    fetcher.failing.add(EntityType.ROUTES)
    result = await orchestrator.fetch(EntityType.ROUTES, force=True)

    assert result is stale
    status = store.status(EntityType.ROUTES)
    assert status.loading is False
    assert "HTTP 500" in (status.error or "")

    fetcher.failing.clear()
    await orchestrator.fetch(EntityType.ROUTES, force=True)
    assert store.status(EntityType.ROUTES).error is None


@pytest.mark.asyncio
async def test_initialize_runs_phases_in_order() -> None:
    fetcher = FakeFetcher(records=_records())
    orchestrator, _ = _orchestrator(fetcher)

    await orchestrator.initialize()

    log = fetcher.log
    for entity in BOOTSTRAP_PHASES[0]:
        assert log.index(f"end:{entity.value}") < log.index("start:routes")
    assert log.index("end:routes") < log.index("start:trips")
    assert log.index("end:trips") < log.index("start:assignments")
    assert log.index("end:trips") < log.index("start:shifts")
    assert orchestrator.initialized


@pytest.mark.asyncio
async def test_initialize_isolates_failures_per_entity() -> None:
    fetcher = FakeFetcher(records=_records(), failing={EntityType.DRIVERS, EntityType.ROUTES})
    orchestrator, store = _orchestrator(fetcher)

    await orchestrator.initialize()

    assert store.status(EntityType.DRIVERS).error is not None
    assert store.status(EntityType.ROUTES).error is not None
    assert [s.id for s in store.get_all(EntityType.SCHOOLS)] == ["S1"]
    # Later phases still ran.
    assert fetcher.calls[EntityType.TRIPS] == 1
    assert fetcher.calls[EntityType.SHIFTS] == 1
    assert store.status(EntityType.TRIPS).error is None


@pytest.mark.asyncio
async def test_initialize_runs_once() -> None:
    fetcher = FakeFetcher(records=_records())
    orchestrator, _ = _orchestrator(fetcher)

    await asyncio.gather(orchestrator.initialize(), orchestrator.initialize())
    await orchestrator.initialize()

    assert fetcher.calls[EntityType.SCHOOLS] == 1
    assert fetcher.calls[EntityType.SHIFTS] == 1


@pytest.mark.asyncio
async def test_refresh_all_bypasses_cache() -> None:
    fetcher = FakeFetcher(records=_records())
    orchestrator, _ = _orchestrator(fetcher)

    await orchestrator.initialize()
    await orchestrator.refresh_all()

    assert all(count == 2 for count in fetcher.calls.values())
    assert len(fetcher.calls) == len(EntityType)


@dataclass
class FakeResourceFetcher:
    calls: dict[ResourceType, int] = field(default_factory=dict)
    failing: set[ResourceType] = field(default_factory=set)
    gate: asyncio.Event | None = None

    async def __call__(self, resource: ResourceType) -> SchoolBusBaseModel:
        self.calls[resource] = self.calls.get(resource, 0) + 1
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if resource in self.failing:
            raise SchoolBusTransportError("HTTP 503", status_code=503, endpoint=f"/{resource.value}")
        if resource is ResourceType.DASHBOARD:
            return DashboardMetrics(active_trips=self.calls[resource])
        return PlatformSettings(platform_name="Fleet Console")


def _resource_orchestrator(
    resources: FakeResourceFetcher, clock: FakeClock | None = None
) -> tuple[FetchOrchestrator, EntityStore]:
    store = EntityStore(clock=clock or FakeClock())
    orchestrator = FetchOrchestrator(
        store, FakeFetcher(), cache_ttl=300.0, live_cache_ttl=60.0, resource_fetcher=resources
    )
    return orchestrator, store


@pytest.mark.asyncio
async def test_resource_fetch_is_cached_and_stored() -> None:
    resources = FakeResourceFetcher()
    orchestrator, store = _resource_orchestrator(resources)

    first = await orchestrator.fetch_resource(ResourceType.SETTINGS)
    second = await orchestrator.fetch_resource("settings")

    assert resources.calls[ResourceType.SETTINGS] == 1
    assert second is first
    assert store.get_resource(ResourceType.SETTINGS) is first
    assert store.status(ResourceType.SETTINGS).last_fetch is not None


@pytest.mark.asyncio
async def test_concurrent_resource_fetches_are_coalesced() -> None:
    resources = FakeResourceFetcher(gate=asyncio.Event())
    orchestrator, store = _resource_orchestrator(resources)

    first = asyncio.create_task(orchestrator.fetch_resource(ResourceType.DASHBOARD))
    second = asyncio.create_task(orchestrator.fetch_resource(ResourceType.DASHBOARD))
    await asyncio.sleep(0)
    assert orchestrator.is_in_flight(ResourceType.DASHBOARD)
    assert store.status(ResourceType.DASHBOARD).loading
    resources.gate.set()

    a, b = await asyncio.gather(first, second)
    assert resources.calls[ResourceType.DASHBOARD] == 1
    assert a is b


@pytest.mark.asyncio
async def test_dashboard_uses_live_ttl() -> None:
    clock = FakeClock()
    resources = FakeResourceFetcher()
    orchestrator, _ = _resource_orchestrator(resources, clock)

    await orchestrator.fetch_resource(ResourceType.DASHBOARD)
    await orchestrator.fetch_resource(ResourceType.SETTINGS)
    clock.advance(61)
    dashboard = await orchestrator.fetch_resource(ResourceType.DASHBOARD)
    await orchestrator.fetch_resource(ResourceType.SETTINGS)

    assert resources.calls[ResourceType.DASHBOARD] == 2
    assert resources.calls[ResourceType.SETTINGS] == 1
    assert dashboard.active_trips == 2


@pytest.mark.asyncio
async def test_resource_failure_keeps_stale_document() -> None:
    resources = FakeResourceFetcher()
    orchestrator, store = _resource_orchestrator(resources)
    stale = await orchestrator.fetch_resource(ResourceType.DASHBOARD)

    resources.failing.add(ResourceType.DASHBOARD)
    result = await orchestrator.fetch_resource(ResourceType.DASHBOARD, force=True)

    assert result is stale
    status = store.status(ResourceType.DASHBOARD)
    assert status.loading is False
    assert "HTTP 503" in (status.error or "")


@pytest.mark.asyncio
async def test_resource_failure_before_first_success_returns_none() -> None:
    resources = FakeResourceFetcher(failing={ResourceType.SETTINGS})
    orchestrator, store = _resource_orchestrator(resources)

    assert await orchestrator.fetch_resource(ResourceType.SETTINGS) is None
    assert store.status(ResourceType.SETTINGS).error is not None


@pytest.mark.asyncio
async def test_fetch_resource_needs_a_resource_fetcher() -> None:
    orchestrator, _ = _orchestrator(FakeFetcher())
    with pytest.raises(RuntimeError):
        await orchestrator.fetch_resource(ResourceType.DASHBOARD)
