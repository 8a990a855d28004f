"""High-level async client for a school transport operations backend."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp

from pyschoolbus._api._paths import paths_for
from pyschoolbus._api.records import fetch_collection, fetch_resource
from pyschoolbus._constants import parse_clock
from pyschoolbus._transport import HttpTransport, Transport
from pyschoolbus.accessors import (
    AssignmentAccessor,
    DashboardAccessor,
    DriverAccessor,
    NotificationAccessor,
    RouteAccessor,
    SchoolAccessor,
    SettingsAccessor,
    ShiftAccessor,
    StudentAccessor,
    TripAccessor,
)
from pyschoolbus.config import SchoolBusConfig
from pyschoolbus.exceptions import SchoolBusError
from pyschoolbus.ingestion.orchestrator import FetchOrchestrator
from pyschoolbus.lookups import LookupGateway
from pyschoolbus.models import SchoolBusBaseModel, SchoolBusRecord
from pyschoolbus.mutations import MutationGateway
from pyschoolbus.state.entities import EntityType, ResourceType
from pyschoolbus.state.store import EntityStore
from pyschoolbus.state.views import DerivedViewEngine

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SchoolBusClient:
    """Async client that keeps the console's entity collections in sync.

    Usage::

        async with SchoolBusClient(config) as client:
            await client.initialize()
            client.select_school("S1")
            for route in client.routes.items:
                print(route.name, client.routes.stops(route.id))

    Parameters
    ----------
    config : SchoolBusConfig
        Client configuration.
    session : aiohttp.ClientSession, optional
        Externally owned HTTP session; it is not closed on exit.
    transport : Transport, optional
        Replaces the aiohttp transport entirely (tests, custom stacks).
    clock : callable, optional
        UTC clock used for cache freshness.
    """

    def __init__(
        self,
        config: SchoolBusConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport: Transport | None = transport
        self._paths = paths_for(config)
        self._selected_school_id: str | None = None

        self._store = EntityStore(clock=clock)
        self._views = DerivedViewEngine(
            self._store,
            stop_base_time=parse_clock(config.stop_base_time),
            stop_interval_minutes=config.stop_interval_minutes,
        )
        self._fetcher = FetchOrchestrator(
            self._store,
            self._fetch_collection,
            cache_ttl=config.cache_ttl,
            live_cache_ttl=config.live_cache_ttl,
            resource_fetcher=self._fetch_resource,
        )
        self._mutations: MutationGateway | None = None
        self._lookups: LookupGateway | None = None
        if transport is not None:
            self._bind(transport)

        self.schools = SchoolAccessor(self)
        self.drivers = DriverAccessor(self)
        self.students = StudentAccessor(self)
        self.routes = RouteAccessor(self)
        self.trips = TripAccessor(self)
        self.assignments = AssignmentAccessor(self)
        self.shifts = ShiftAccessor(self)
        self.notifications = NotificationAccessor(self)
        self.dashboard = DashboardAccessor(self)
        self.settings = SettingsAccessor(self)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SchoolBusClient:
        if not self._external_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._bind(HttpTransport(self._config, self._http_session))
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None
            self._mutations = None
            self._lookups = None

    def _bind(self, transport: Transport) -> None:
        self._transport = transport
        self._mutations = MutationGateway(self._store, self._paths, transport)
        self._lookups = LookupGateway(self._paths, transport)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> SchoolBusConfig:
        return self._config

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def views(self) -> DerivedViewEngine:
        return self._views

    @property
    def fetcher(self) -> FetchOrchestrator:
        return self._fetcher

    @property
    def mutations(self) -> MutationGateway:
        if self._mutations is None:
            raise SchoolBusError("Client not initialized. Use 'async with SchoolBusClient(...) as client:'")
        return self._mutations

    @property
    def lookups(self) -> LookupGateway:
        if self._lookups is None:
            raise SchoolBusError("Client not initialized. Use 'async with SchoolBusClient(...) as client:'")
        return self._lookups

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise SchoolBusError("Client not initialized. Use 'async with SchoolBusClient(...) as client:'")
        return self._transport

    async def _fetch_collection(self, entity: EntityType) -> list[SchoolBusRecord]:
        return await fetch_collection(self._paths, self._require_transport(), entity)

    async def _fetch_resource(self, resource: ResourceType) -> SchoolBusBaseModel:
        return await fetch_resource(self._paths, self._require_transport(), resource)

    # ------------------------------------------------------------------
    # School scoping
    # ------------------------------------------------------------------

    @property
    def selected_school_id(self) -> str | None:
        return self._selected_school_id

    def select_school(self, school_id: str | None) -> None:
        """Scope route and trip views to *school_id*; ``None`` shows all."""
        if school_id is not None:
            school_id = school_id.strip() or None
        self._selected_school_id = school_id

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load every collection in dependency order (once per session)."""
        await self._fetcher.initialize()

    async def refresh_all(self) -> None:
        await self._fetcher.refresh_all()

    async def fetch(self, entity: EntityType | str, *, force: bool = False) -> tuple[Any, ...]:
        return await self._fetcher.fetch(entity, force=force)

    async def fetch_resource(self, resource: ResourceType | str, *, force: bool = False) -> Any | None:
        """Load the dashboard or settings document through the same cache."""
        return await self._fetcher.fetch_resource(resource, force=force)
