"""Lookup gateway.

Read-only, on-demand queries that are not part of any synchronized
collection: route exports, trip statistics and playback, and assignment
conflicts.  Results go straight to the caller and never touch the store.
"""

from __future__ import annotations

import logging

from pyschoolbus._api._common import validate_record
from pyschoolbus._api._paths import (
    LOOKUP_CONFLICTS,
    LOOKUP_EXPORT,
    LOOKUP_PLAYBACK,
    LOOKUP_STATS,
    PathConvention,
)
from pyschoolbus._api.records import fetch_lookup
from pyschoolbus._transport import Transport
from pyschoolbus.exceptions import SchoolBusApiError
from pyschoolbus.ingestion.normalize import unwrap_collection, unwrap_record
from pyschoolbus.models import AssignmentConflict, Route, RouteExport, TripPlayback, TripStats
from pyschoolbus.models.requests import ExportRoutesRequest, RecordRequest, TripStatsRequest
from pyschoolbus.state.entities import EntityType

_logger = logging.getLogger(__name__)


class LookupGateway:
    def __init__(self, paths: PathConvention, transport: Transport) -> None:
        self._paths = paths
        self._transport = transport

    async def export_routes(self, format: str = "csv") -> RouteExport:
        """Export every route as the backend sees it.

        The routes are returned as records; :meth:`RouteExport.to_csv`
        renders them.
        """
        request = ExportRoutesRequest(format=format)
        endpoint, body = await fetch_lookup(
            self._paths,
            self._transport,
            EntityType.ROUTES,
            LOOKUP_EXPORT,
            params={"format": request.format},
        )
        items = unwrap_collection(body, EntityType.ROUTES.value)
        if items is None:
            raise SchoolBusApiError(
                f"{endpoint} returned no routes",
                code="invalid_collection",
                endpoint=endpoint,
            )
        routes = tuple(validate_record(Route, item, endpoint=endpoint) for item in items)
        returned_format = body.get("format") if isinstance(body, dict) else None
        _logger.debug("Exported %d route(s)", len(routes))
        return RouteExport(format=str(returned_format or request.format), routes=routes)

    async def trip_stats(self, period: str = "monthly") -> TripStats:
        request = TripStatsRequest(period=period)
        endpoint, body = await fetch_lookup(
            self._paths,
            self._transport,
            EntityType.TRIPS,
            LOOKUP_STATS,
            params={"period": request.period},
        )
        data = dict(unwrap_record(body, "stats") or {})
        data.setdefault("period", request.period)
        return validate_record(TripStats, data, endpoint=endpoint)

    async def trip_playback(self, trip_id: str) -> TripPlayback:
        request = RecordRequest(record_id=trip_id)
        endpoint, body = await fetch_lookup(
            self._paths,
            self._transport,
            EntityType.TRIPS,
            LOOKUP_PLAYBACK,
            record_id=request.record_id,
        )
        data = unwrap_record(body, "playback") or {}
        return validate_record(TripPlayback, data, endpoint=endpoint)

    async def assignment_conflicts(self) -> tuple[AssignmentConflict, ...]:
        endpoint, body = await fetch_lookup(self._paths, self._transport, EntityType.ASSIGNMENTS, LOOKUP_CONFLICTS)
        items = unwrap_collection(body, "conflicts")
        if items is None:
            raise SchoolBusApiError(
                f"{endpoint} returned no conflict list",
                code="invalid_collection",
                endpoint=endpoint,
            )
        return tuple(validate_record(AssignmentConflict, item, endpoint=endpoint) for item in items)
