from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pyschoolbus._transport import HttpTransport, TransportResponse
from pyschoolbus.client import SchoolBusClient
from pyschoolbus.config import CallerIdentity, SchoolBusConfig
from pyschoolbus.exceptions import SchoolBusError, SchoolBusNotFoundError, SchoolBusTransportError
from pyschoolbus.models import RouteType, StudentStatus
from pyschoolbus.state.entities import EntityType


@dataclass
class FakeSchoolBusBackend:
    calls: dict[str, int] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    reject_updates: bool = False
    settings: dict[str, Any] = field(default_factory=lambda: {"platformName": "Fleet Console", "heroMode": "url"})
    students: list[dict[str, Any]] = field(
        default_factory=lambda: [
            {
                "id": "STU1",
                "name": "John",
                "school": "International Academy",
                "grade": "5th Grade",
                "status": "WAITING",
                "pickupLocation": {"lat": -1.26, "lng": 36.8, "address": "Westlands"},
                "assignedRoutes": [],
            },
            {"id": "STU2", "name": "Jane", "status": "WAITING", "assignedRoutes": ["R2"]},
            {
                "id": "STU3",
                "name": "Amani",
                "status": "WAITING",
                "pickupLocation": {"address": "Parklands"},
                "assignedRoutes": [],
            },
        ]
    )

    def _record_call(self, key: str) -> None:
        self.calls[key] = self.calls.get(key, 0) + 1

    async def request(
        self,
        method: str,
        endpoint: str,
        payload: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        key = f"{method} {endpoint}"
        self._record_call(key)
        await asyncio.sleep(0)

        if key in self.failing:
            return TransportResponse(status=503, body={"message": "unavailable"})

        if key == "GET /schools":
            return TransportResponse(200, {"schools": [{"id": "S1", "name": "International Academy"}, {"id": "S2"}]})
        if key == "GET /drivers":
            return TransportResponse(200, [{"id": "D1", "name": "James Wilson", "status": "ON_TRIP"}])
        if key == "GET /students":
            return TransportResponse(200, {"students": self.students})
        if key == "GET /notifications":
            return TransportResponse(200, {"data": [{"id": "N1", "type": "DELAY", "read": False}]})
        if key == "GET /routes":
            return TransportResponse(
                200,
                {
                    "routes": [
                        {"id": "R1", "name": "Route A - North", "schoolId": "S1", "type": "PICKUP"},
                        {"id": "R2", "name": "Route C - South", "schoolId": "S2", "type": "DROPOFF"},
                    ]
                },
            )
        if key == "GET /trips":
            return TransportResponse(200, {"trips": [{"id": "T1", "routeId": "R1"}, {"id": "T2", "routeId": "R2"}]})
        if key == "GET /assignments":
            return TransportResponse(200, {"assignments": [{"id": "ASG-1", "routeId": "R1", "routeType": "DROP_OFF"}]})
        if key == "GET /shifts":
            return TransportResponse(200, {"shifts": []})
        if key == "GET /dashboard/metrics":
            metrics = {"monthTrips": 120, "activeTrips": self.calls[key], "onTimeRate": 94.5}
            return TransportResponse(200, {"metrics": metrics})
        if key == "GET /settings":
            return TransportResponse(200, {"settings": self.settings})
        if key == "PUT /settings":
            assert payload is not None
            self.settings = {**self.settings, **payload}
            return TransportResponse(200, {"success": True})
        if key == "GET /routes/export?format=csv":
            return TransportResponse(200, {"format": "csv", "routes": [{"id": "R1", "name": "Route A - North"}]})
        if key == "GET /trips/stats?period=monthly":
            return TransportResponse(200, {"data": {"totalTrips": 2, "onTimeRate": 100}})
        if key == "GET /assignments/conflicts":
            return TransportResponse(200, {"conflicts": [{"assignmentId": "ASG-1", "type": "OVERLAP"}]})
        if key == "PUT /students/STU1":
            if self.reject_updates:
                return TransportResponse(400, {"message": "invalid grade"})
            assert payload is not None
            record = {**self.students[0], **payload}
            self.students[0] = record
            return TransportResponse(200, {"student": record})
        if key == "POST /students/STU1/toggle-disable":
            assert payload is not None
            record = {**self.students[0], "status": payload["status"]}
            self.students[0] = record
            return TransportResponse(200, {"student": record})
        return TransportResponse(404, {"message": f"unknown endpoint {key}"})


@pytest.fixture
def config() -> SchoolBusConfig:
    return SchoolBusConfig(
        base_url="https://console.example.test/api",
        identity=CallerIdentity(operator_id="ops@example.com", role_id="2", session_id="sess-1"),
    )


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakeSchoolBusBackend:
    fake = FakeSchoolBusBackend()

    async def fake_request(
        _self: HttpTransport,
        method: str,
        endpoint: str,
        payload: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        return await fake.request(method, endpoint, payload)

    monkeypatch.setattr("pyschoolbus._transport.HttpTransport.request", fake_request)
    return fake


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_client_happy_path_exercises_full_library(
    config: SchoolBusConfig, backend: FakeSchoolBusBackend
) -> None:
    async with SchoolBusClient(config) as client:
        await client.initialize()

        assert [s.id for s in client.schools.items] == ["S1", "S2"]
        assert client.drivers.items[0].name == "James Wilson"
        assert client.assignments.items[0].route_type is RouteType.DROPOFF
        assert client.notifications.unread_count == 1
        assert all(not client.store.status(e).loading for e in EntityType)

        client.select_school("S1")
        assert client.schools.selected is not None
        assert [r.id for r in client.routes.items] == ["R1"]
        assert [t.id for t in client.trips.items] == ["T1"]
        assert len(client.routes.all_items) == 2

        # S1/S2 scenario, then STU1 joins R1.
        assert client.routes.stops("R1") == ()
        client.students.toggle_assignment("STU1", "R1")
        stops = client.routes.stops("R1")
        assert client.students.get("STU1").assigned_routes == ("R1",)
        assert len(stops) == 1
        assert stops[0].address == "Westlands"
        assert stops[0].time == "07:00 AM"

        # Cached loads make no network call.
        await client.routes.load()
        assert backend.calls["GET /routes"] == 1
        await client.routes.refresh()
        assert backend.calls["GET /routes"] == 2

        updated = await client.students.update("STU1", {"grade": "6th Grade"})
        assert updated.grade == "6th Grade"

        disabled = await client.students.toggle_disable("STU1")
        assert disabled.status is StudentStatus.DISABLED
        restored = await client.students.toggle_disable("STU1")
        assert restored.status is StudentStatus.WAITING


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_rejected_update_leaves_store_unchanged(
    config: SchoolBusConfig, backend: FakeSchoolBusBackend
) -> None:
    backend.reject_updates = True

    async with SchoolBusClient(config) as client:
        await client.students.load()
        with pytest.raises(SchoolBusError):
            await client.students.update("STU1", {"grade": "6th Grade"})
        assert client.students.get("STU1").grade == "5th Grade"


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_failed_collection_does_not_block_bootstrap(
    config: SchoolBusConfig, backend: FakeSchoolBusBackend
) -> None:
    backend.failing.add("GET /schools")

    async with SchoolBusClient(config) as client:
        await client.initialize()

        assert client.schools.items == ()
        assert client.schools.error is not None
        assert "503" in client.schools.error
        assert len(client.routes.items) == 2
        assert len(client.trips.items) == 2
        assert client.trips.error is None


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_address_only_student_gets_default_coordinates(
    config: SchoolBusConfig, backend: FakeSchoolBusBackend
) -> None:
    async with SchoolBusClient(config) as client:
        await client.initialize()

        student = client.students.get("STU3")
        assert student.pickup_location.lat is None
        assert student.pickup_location.address == "Parklands"

        client.students.toggle_assignment("STU3", "R1")
        (stop,) = client.routes.stops("R1")
        assert stop.address == "Parklands"
        assert (stop.lat, stop.lng) == (-1.2864, 36.8172)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_dashboard_settings_and_lookups(config: SchoolBusConfig, backend: FakeSchoolBusBackend) -> None:
    async with SchoolBusClient(config) as client:
        assert client.dashboard.value is None
        metrics = await client.dashboard.load()
        assert metrics.month_trips == 120
        assert await client.dashboard.load() is metrics
        assert backend.calls["GET /dashboard/metrics"] == 1
        refreshed = await client.dashboard.refresh()
        assert refreshed.active_trips == 2
        assert client.dashboard.error is None

        settings = await client.settings.load()
        assert settings.platform_name == "Fleet Console"
        updated = await client.settings.update({"heroMode": "upload"})
        assert updated.hero_mode == "upload"
        assert client.settings.value is updated
        assert backend.calls["GET /settings"] == 2

        export = await client.routes.export()
        assert export.to_csv().splitlines()[1].startswith("R1,Route A - North")
        stats = await client.trips.stats()
        assert stats.total_trips == 2
        assert stats.period == "monthly"
        conflicts = await client.assignments.conflicts()
        assert [c.assignment_id for c in conflicts] == ["ASG-1"]


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_failed_dashboard_records_error(config: SchoolBusConfig, backend: FakeSchoolBusBackend) -> None:
    backend.failing.add("GET /dashboard/metrics")

    async with SchoolBusClient(config) as client:
        assert await client.dashboard.load() is None
        assert "503" in (client.dashboard.error or "")
        assert client.dashboard.is_loading is False


@pytest.mark.asyncio
async def test_mutations_require_context_manager(config: SchoolBusConfig) -> None:
    client = SchoolBusClient(config)
    with pytest.raises(SchoolBusError):
        client.mutations  # noqa: B018
    with pytest.raises(SchoolBusError):
        client.lookups  # noqa: B018


@pytest.mark.asyncio
async def test_http_transport_sends_identity_headers() -> None:
    seen: dict[str, Any] = {}

    async def list_routes(request: web.Request) -> web.Response:
        seen["headers"] = {key.lower(): value for key, value in request.headers.items()}
        return web.json_response({"routes": [{"id": "R1", "schoolId": "S1"}]})

    async def broken(_request: web.Request) -> web.Response:
        return web.Response(text="<html>oops</html>", content_type="text/html")

    app = web.Application()
    app.router.add_get("/api/routes", list_routes)
    app.router.add_get("/api/trips", broken)

    async with TestServer(app) as server:
        config = SchoolBusConfig(
            base_url=str(server.make_url("/api")),
            identity=CallerIdentity(operator_id="ops@example.com", role_id="2", session_id="sess-1"),
            api_token="tok-1",
        )
        async with SchoolBusClient(config) as client:
            routes = await client.fetch(EntityType.ROUTES)
            assert [r.id for r in routes] == ["R1"]

            trips = await client.fetch(EntityType.TRIPS)
            assert trips == ()
            assert client.trips.error is not None

            transport = client._transport  # noqa: SLF001
            assert transport is not None
            with pytest.raises(SchoolBusTransportError):
                await transport.request("GET", "/trips")

    headers = seen["headers"]
    assert headers["x-operator-id"] == "ops@example.com"
    assert headers["x-role-id"] == "2"
    assert headers["x-session-id"] == "sess-1"
    assert headers["authorization"] == "Bearer tok-1"


@pytest.mark.asyncio
async def test_http_transport_maps_plain_text_404_and_redacts_otp(caplog: pytest.LogCaptureFixture) -> None:
    async def not_found(_request: web.Request) -> web.Response:
        return web.Response(status=404, text="Not Found")

    async def driver_otp(_request: web.Request) -> web.Response:
        return web.json_response({"result": {"code": "482913", "expiresIn": 300}})

    app = web.Application()
    app.router.add_put("/api/students/STU9", not_found)
    app.router.add_post("/api/drivers/D1/otp", driver_otp)

    async with TestServer(app) as server:
        config = SchoolBusConfig(base_url=str(server.make_url("/api")))
        async with SchoolBusClient(config) as client:
            with pytest.raises(SchoolBusNotFoundError) as excinfo:
                await client.students.update("STU9", {"grade": "6th Grade"})
            assert "Not Found" in str(excinfo.value)

            with caplog.at_level(logging.DEBUG, logger="pyschoolbus._transport"):
                otp = await client.drivers.generate_otp("D1")

    assert otp.code == "482913"
    assert otp.expires_in == 300
    assert "/drivers/D1/otp" in caplog.text
    assert "482913" not in caplog.text
    assert "<redacted>" in caplog.text
