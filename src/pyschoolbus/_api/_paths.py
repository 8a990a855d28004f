"""Path conventions: how an entity operation becomes an HTTP request.

``flat`` backends expose plain REST resources::

    GET    /students            POST /students
    GET    /students/{id}       PUT  /students/{id}    DELETE /students/{id}
    POST   /students/{id}/{action}
    POST   /students/{action}              (collection actions)
    GET    /trips/stats?period=monthly     (lookups, never stored)
    GET    /dashboard/metrics              GET /settings    PUT /settings

``verb`` backends expose ``POST /v1/{Controller}/{Action}`` for everything
and expect the base DTO envelope (see :mod:`._envelope`).
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from urllib.parse import quote, urlencode

from pyschoolbus._api._envelope import ApiActionType, build_verb_envelope
from pyschoolbus.config import CallerIdentity, SchoolBusConfig
from pyschoolbus.exceptions import SchoolBusEndpointNotSupportedError
from pyschoolbus.state.entities import EntityType, ResourceType

# Named actions.  Flat paths use the value as the trailing segment.
ACTION_OTP = "otp"
ACTION_QR_CODE = "qr-code"
ACTION_TOGGLE_DISABLE = "toggle-disable"
ACTION_TRANSFER = "transfer"
ACTION_BULK_UPLOAD = "bulk-upload"
ACTION_FLAG = "flag"
ACTION_READ = "read"
ACTION_READ_ALL = "read-all"

# Read-only lookups.  Flat paths use the value as the trailing segment.
LOOKUP_EXPORT = "export"
LOOKUP_STATS = "stats"
LOOKUP_PLAYBACK = "playback"
LOOKUP_CONFLICTS = "conflicts"

FLAT_RESOURCE_PATHS: dict[ResourceType, str] = {
    ResourceType.DASHBOARD: "/dashboard/metrics",
    ResourceType.SETTINGS: "/settings",
}
WRITABLE_RESOURCES: frozenset[ResourceType] = frozenset({ResourceType.SETTINGS})


@dataclasses.dataclass(frozen=True)
class PreparedRequest:
    method: str
    endpoint: str
    payload: dict[str, Any] | None = None


def _segment(record_id: str) -> str:
    """Escape an opaque id for use as one path segment."""
    return quote(record_id, safe="")


class FlatPaths:
    """``/{entity}[/{id}][/{action}]`` resources."""

    style = "flat"

    def list(self, entity: EntityType) -> PreparedRequest:
        return PreparedRequest("GET", f"/{entity.value}")

    def get(self, entity: EntityType, record_id: str) -> PreparedRequest:
        return PreparedRequest("GET", f"/{entity.value}/{_segment(record_id)}")

    def create(self, entity: EntityType, body: Mapping[str, Any]) -> PreparedRequest:
        return PreparedRequest("POST", f"/{entity.value}", dict(body))

    def update(self, entity: EntityType, record_id: str, body: Mapping[str, Any]) -> PreparedRequest:
        return PreparedRequest("PUT", f"/{entity.value}/{_segment(record_id)}", dict(body))

    def delete(self, entity: EntityType, record_id: str) -> PreparedRequest:
        return PreparedRequest("DELETE", f"/{entity.value}/{_segment(record_id)}")

    def action(
        self,
        entity: EntityType,
        action: str,
        *,
        record_id: str | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> PreparedRequest:
        if record_id is None:
            endpoint = f"/{entity.value}/{action}"
        else:
            endpoint = f"/{entity.value}/{_segment(record_id)}/{action}"
        return PreparedRequest("POST", endpoint, dict(body) if body else {})

    def lookup(
        self,
        entity: EntityType,
        name: str,
        *,
        record_id: str | None = None,
        params: Mapping[str, str] | None = None,
    ) -> PreparedRequest:
        endpoint = f"/{entity.value}"
        if record_id is not None:
            endpoint = f"{endpoint}/{_segment(record_id)}"
        endpoint = f"{endpoint}/{name}"
        if params:
            endpoint = f"{endpoint}?{urlencode(params)}"
        return PreparedRequest("GET", endpoint)

    def resource_get(self, resource: ResourceType) -> PreparedRequest:
        return PreparedRequest("GET", FLAT_RESOURCE_PATHS[resource])

    def resource_update(self, resource: ResourceType, body: Mapping[str, Any]) -> PreparedRequest:
        if resource not in WRITABLE_RESOURCES:
            raise SchoolBusEndpointNotSupportedError(
                f"{resource.value} is read-only",
                code="not_supported",
                endpoint=FLAT_RESOURCE_PATHS[resource],
            )
        return PreparedRequest("PUT", FLAT_RESOURCE_PATHS[resource], dict(body))


@dataclasses.dataclass(frozen=True)
class _VerbCall:
    path: str
    action_type: ApiActionType


@dataclasses.dataclass(frozen=True)
class _VerbResource:
    id_field: str
    list: _VerbCall | None = None
    get: _VerbCall | None = None
    create: _VerbCall | None = None
    update: _VerbCall | None = None
    delete: _VerbCall | None = None
    actions: Mapping[str, _VerbCall] = dataclasses.field(default_factory=dict)
    lookups: Mapping[str, _VerbCall] = dataclasses.field(default_factory=dict)


_GET = ApiActionType.GET
_INSERT = ApiActionType.INSERT
_UPDATE = ApiActionType.UPDATE
_DELETE = ApiActionType.DELETE

VERB_ENDPOINTS: dict[EntityType, _VerbResource] = {
    EntityType.SCHOOLS: _VerbResource(
        id_field="CorporateID",
        list=_VerbCall("/v1/Corporate/CorporateList", _GET),
        get=_VerbCall("/v1/Corporate/GetCorporates", _GET),
        create=_VerbCall("/v1/Corporate/CorporateRegistration", _INSERT),
        update=_VerbCall("/v1/Corporate/AddEditCorporateService", _UPDATE),
        delete=_VerbCall("/v1/Corporate/SuspendCorporate", _DELETE),
    ),
    EntityType.DRIVERS: _VerbResource(
        id_field="DriverID",
        list=_VerbCall("/v1/DriverList/GetDriverList", _GET),
        get=_VerbCall("/v1/DriverList/GetDriverDetails", _GET),
        create=_VerbCall("/v1/DriverList/AddEditPrivateDriver", _INSERT),
        update=_VerbCall("/v1/DriverList/AddEditPrivateDriver", _UPDATE),
        delete=_VerbCall("/v1/DriverList/AddEditPrivateDriver", _DELETE),
    ),
    EntityType.STUDENTS: _VerbResource(
        id_field="StaffID",
        list=_VerbCall("/v1/Staff/GetStaffList", _GET),
        get=_VerbCall("/v1/Staff/GetStaffDetails", _GET),
        create=_VerbCall("/v1/Staff/AddEditStaff", _INSERT),
        update=_VerbCall("/v1/Staff/AddEditStaff", _UPDATE),
        delete=_VerbCall("/v1/Staff/SuspendStaff", _DELETE),
        actions={
            ACTION_TOGGLE_DISABLE: _VerbCall("/v1/Staff/SuspendStaff", _UPDATE),
            ACTION_TRANSFER: _VerbCall("/v1/Staff/TransferStaff", _UPDATE),
            ACTION_BULK_UPLOAD: _VerbCall("/v1/Staff/AddEditStafV2", _INSERT),
        },
    ),
    EntityType.ROUTES: _VerbResource(
        id_field="RouteID",
        list=_VerbCall("/v1/Route/GetRoutList", _GET),
        get=_VerbCall("/v1/Route/GetRouteDetails", _GET),
        create=_VerbCall("/v1/Route/AddEditRoute", _INSERT),
        update=_VerbCall("/v1/Route/AddEditRoute", _UPDATE),
        delete=_VerbCall("/v1/Route/AddEditRoute", _DELETE),
    ),
    EntityType.TRIPS: _VerbResource(
        id_field="TripID",
        list=_VerbCall("/v1/Trips/GetAllTrips", _GET),
        get=_VerbCall("/v1/Trips/GetTripDetails", _GET),
    ),
    EntityType.ASSIGNMENTS: _VerbResource(
        id_field="AssignmentID",
        list=_VerbCall("/v1/ShuttleTrips/GetAllDriverWithRiderList", _GET),
        get=_VerbCall("/v1/ShuttleTrips/ShuttleTripsDetails", _GET),
        create=_VerbCall("/v1/ShuttleTrips/AddEditDriverwithRiderAssing", _INSERT),
        update=_VerbCall("/v1/ShuttleTrips/AddEditDriverwithRiderAssing", _UPDATE),
        delete=_VerbCall("/v1/ShuttleTrips/AddEditDriverwithRiderAssing", _DELETE),
    ),
    EntityType.SHIFTS: _VerbResource(
        id_field="ShiftID",
        list=_VerbCall("/v1/DriverShift/DriverShiftDetailsReport", _GET),
        get=_VerbCall("/v1/DriverShift/GetDriverShiftDetails", _GET),
        create=_VerbCall("/v1/DriverShift/AddEditDriverShift", _INSERT),
        update=_VerbCall("/v1/DriverShift/AddEditDriverShift", _UPDATE),
        delete=_VerbCall("/v1/DriverShift/AddEditDriverShift", _DELETE),
    ),
    EntityType.NOTIFICATIONS: _VerbResource(
        id_field="NotificationID",
        list=_VerbCall("/v1/Header/GetNotification", _GET),
    ),
}

# Resource documents: (get, update).
VERB_RESOURCES: dict[ResourceType, tuple[_VerbCall | None, _VerbCall | None]] = {
    ResourceType.DASHBOARD: (_VerbCall("/v1/Dashboard/GetDashboard", _GET), None),
    ResourceType.SETTINGS: (None, None),
}


class VerbPaths:
    """``POST /v1/{Controller}/{Action}`` with the base DTO envelope."""

    style = "verb"

    def __init__(self, identity: CallerIdentity, *, clock: Callable[[], datetime] | None = None) -> None:
        self._identity = identity
        self._clock = clock

    def _call(self, entity: EntityType | ResourceType, operation: str, call: _VerbCall | None) -> _VerbCall:
        if call is None:
            raise SchoolBusEndpointNotSupportedError(
                f"{operation} {entity.value} is not available on the verb-style backend",
                code="not_supported",
                endpoint=f"{entity.value}:{operation}",
            )
        return call

    def _prepare(
        self,
        entity: EntityType | ResourceType,
        call: _VerbCall,
        *,
        record_id: str | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> PreparedRequest:
        fields: dict[str, Any] = dict(body) if body else {}
        if record_id is not None and isinstance(entity, EntityType):
            fields[VERB_ENDPOINTS[entity].id_field] = record_id
        now: datetime | None = self._clock() if self._clock is not None else None
        payload = build_verb_envelope(self._identity, call.action_type, fields, now=now)
        return PreparedRequest("POST", call.path, payload)

    def list(self, entity: EntityType) -> PreparedRequest:
        call = self._call(entity, "list", VERB_ENDPOINTS[entity].list)
        return self._prepare(entity, call)

    def get(self, entity: EntityType, record_id: str) -> PreparedRequest:
        call = self._call(entity, "get", VERB_ENDPOINTS[entity].get)
        return self._prepare(entity, call, record_id=record_id)

    def create(self, entity: EntityType, body: Mapping[str, Any]) -> PreparedRequest:
        call = self._call(entity, "create", VERB_ENDPOINTS[entity].create)
        return self._prepare(entity, call, body=body)

    def update(self, entity: EntityType, record_id: str, body: Mapping[str, Any]) -> PreparedRequest:
        call = self._call(entity, "update", VERB_ENDPOINTS[entity].update)
        return self._prepare(entity, call, record_id=record_id, body=body)

    def delete(self, entity: EntityType, record_id: str) -> PreparedRequest:
        call = self._call(entity, "delete", VERB_ENDPOINTS[entity].delete)
        return self._prepare(entity, call, record_id=record_id)

    def action(
        self,
        entity: EntityType,
        action: str,
        *,
        record_id: str | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> PreparedRequest:
        call = self._call(entity, action, VERB_ENDPOINTS[entity].actions.get(action))
        return self._prepare(entity, call, record_id=record_id, body=body)

    def lookup(
        self,
        entity: EntityType,
        name: str,
        *,
        record_id: str | None = None,
        params: Mapping[str, str] | None = None,
    ) -> PreparedRequest:
        call = self._call(entity, name, VERB_ENDPOINTS[entity].lookups.get(name))
        return self._prepare(entity, call, record_id=record_id, body=params)

    def resource_get(self, resource: ResourceType) -> PreparedRequest:
        call = self._call(resource, "get", VERB_RESOURCES[resource][0])
        return self._prepare(resource, call)

    def resource_update(self, resource: ResourceType, body: Mapping[str, Any]) -> PreparedRequest:
        call = self._call(resource, "update", VERB_RESOURCES[resource][1])
        return self._prepare(resource, call, body=body)


PathConvention = FlatPaths | VerbPaths


def paths_for(config: SchoolBusConfig) -> PathConvention:
    if config.path_style == "verb":
        return VerbPaths(config.identity)
    return FlatPaths()
