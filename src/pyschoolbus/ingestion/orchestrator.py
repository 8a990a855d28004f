"""Fetch orchestration.

Owns the rules for *when* a collection or a resource document is fetched:
cache reuse, joining an in-flight request, forced refreshes and the
phased bootstrap.  The HTTP endpoints live in
:mod:`pyschoolbus._api.records`; the merged data lives in
:class:`~pyschoolbus.state.store.EntityStore`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from pydantic import ValidationError

from pyschoolbus.exceptions import SchoolBusError
from pyschoolbus.models import SchoolBusBaseModel, SchoolBusRecord
from pyschoolbus.state.entities import EntityType, ResourceType, StoreKey, coerce_key
from pyschoolbus.state.policy import is_fresh, ttl_for
from pyschoolbus.state.store import EntityStore

_logger = logging.getLogger(__name__)

Fetcher = Callable[[EntityType], Awaitable[Sequence[SchoolBusRecord]]]
ResourceFetcher = Callable[[ResourceType], Awaitable[SchoolBusBaseModel]]

# Each phase settles completely before the next one starts.  Routes need
# schools, trips need routes, scheduling records need all of them.
BOOTSTRAP_PHASES: tuple[tuple[EntityType, ...], ...] = (
    (EntityType.SCHOOLS, EntityType.DRIVERS, EntityType.STUDENTS, EntityType.NOTIFICATIONS),
    (EntityType.ROUTES,),
    (EntityType.TRIPS,),
    (EntityType.ASSIGNMENTS, EntityType.SHIFTS),
)


class FetchOrchestrator:
    """Coalescing, cache-aware collection fetcher.

    Parameters
    ----------
    store : EntityStore
        Destination of fetched collections and per-entity status.
    fetcher : callable
        ``async (entity) -> records``; raises on failure.
    cache_ttl : float
        Seconds a fetched collection is served without a network call.
    live_cache_ttl : float
        Same, for trips, notifications and the dashboard.
    resource_fetcher : callable, optional
        ``async (resource) -> document``; needed by :meth:`fetch_resource`.
    """

    def __init__(
        self,
        store: EntityStore,
        fetcher: Fetcher,
        *,
        cache_ttl: float = 300.0,
        live_cache_ttl: float = 60.0,
        resource_fetcher: ResourceFetcher | None = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._resource_fetcher = resource_fetcher
        self._cache_ttl = cache_ttl
        self._live_cache_ttl = live_cache_ttl
        self._inflight: dict[StoreKey, asyncio.Task[Any]] = {}
        self._bootstrap: asyncio.Task[None] | None = None

    @property
    def initialized(self) -> bool:
        return self._bootstrap is not None and self._bootstrap.done() and not self._bootstrap.cancelled()

    def is_in_flight(self, key: StoreKey | str) -> bool:
        return coerce_key(key) in self._inflight

    def is_cached(self, key: StoreKey | str) -> bool:
        """Whether a non-forced fetch would be answered from the store."""
        kind = coerce_key(key)
        if isinstance(kind, ResourceType):
            if self._store.get_resource(kind) is None:
                return False
        elif not self._store.get_all(kind):
            return False
        ttl = ttl_for(kind, cache_ttl=self._cache_ttl, live_cache_ttl=self._live_cache_ttl)
        return is_fresh(self._store.status(kind).last_fetch, self._store.now(), ttl)

    async def fetch(self, entity: EntityType | str, force: bool = False) -> tuple[Any, ...]:
        """Fetch a collection, reusing the cache or an in-flight request.

        Never raises library errors: a failure is recorded on the entity's
        status and the stale snapshot is returned.
        """
        return await self._load(EntityType.coerce(entity), force)

    async def fetch_resource(self, resource: ResourceType | str, force: bool = False) -> Any | None:
        """Fetch a resource document under the same rules as :meth:`fetch`.

        Returns the stale document (``None`` before the first success) when
        the fetch fails.
        """
        self._require_resource_fetcher()
        return await self._load(ResourceType(resource), force)

    def _require_resource_fetcher(self) -> ResourceFetcher:
        if self._resource_fetcher is None:
            raise RuntimeError("no resource fetcher configured")
        return self._resource_fetcher

    def _snapshot(self, key: StoreKey) -> Any:
        if isinstance(key, ResourceType):
            return self._store.get_resource(key)
        return self._store.get_all(key)

    async def _load(self, key: StoreKey, force: bool) -> Any:
        if not force:
            task = self._inflight.get(key)
            if task is not None:
                _logger.debug("Joining in-flight fetch of %s", key.value)
                return await asyncio.shield(task)
            if self.is_cached(key):
                _logger.debug("Serving %s from cache", key.value)
                return self._snapshot(key)

        # A forced fetch always goes to the network and becomes the request
        # later non-forced callers join.
        task = asyncio.get_running_loop().create_task(self._run(key))
        self._inflight[key] = task
        task.add_done_callback(lambda done, k=key: self._forget(k, done))
        return await asyncio.shield(task)

    def _forget(self, key: StoreKey, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _run(self, key: StoreKey) -> Any:
        self._store.set_status(key, loading=True)
        try:
            if isinstance(key, ResourceType):
                fetched: Any = await self._require_resource_fetcher()(key)
            else:
                fetched = await self._fetcher(key)
        except (SchoolBusError, ValidationError) as exc:
            _logger.warning("Fetching %s failed: %s", key.value, exc)
            self._store.set_status(key, loading=False, error=str(exc) or type(exc).__name__)
            return self._snapshot(key)
        except asyncio.CancelledError:
            self._store.set_status(key, loading=False)
            raise
        except Exception as exc:
            self._store.set_status(key, loading=False, error=f"{type(exc).__name__}: {exc}")
            raise

        if isinstance(key, ResourceType):
            result = self._store.set_resource(key, fetched)
        else:
            result = self._store.replace_all(key, fetched)
        self._store.set_status(key, loading=False, error=None, last_fetch=self._store.now())
        return result

    async def initialize(self) -> None:
        """Run the phased bootstrap once per session.

        Concurrent and repeated calls join the same bootstrap.
        """
        if self._bootstrap is None or self._bootstrap.cancelled():
            self._bootstrap = asyncio.get_running_loop().create_task(self._run_phases(force=False))
        await asyncio.shield(self._bootstrap)

    async def refresh_all(self) -> None:
        """Run every bootstrap phase again, bypassing the cache."""
        await self._run_phases(force=True)

    async def _run_phases(self, *, force: bool) -> None:
        for index, phase in enumerate(BOOTSTRAP_PHASES, start=1):
            _logger.debug("Bootstrap phase %d: %s", index, ", ".join(e.value for e in phase))
            results = await asyncio.gather(
                *(self.fetch(entity, force=force) for entity in phase),
                return_exceptions=True,
            )
            for entity, result in zip(phase, results, strict=True):
                if isinstance(result, BaseException):
                    _logger.warning(
                        "Bootstrap fetch of %s failed",
                        entity.value,
                        exc_info=(type(result), result, result.__traceback__),
                    )
