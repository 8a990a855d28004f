"""Record, resource and lookup endpoints."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pyschoolbus._api._common import send, validate_record
from pyschoolbus._api._paths import PathConvention
from pyschoolbus._transport import Transport
from pyschoolbus.exceptions import SchoolBusApiError
from pyschoolbus.ingestion.normalize import unwrap_collection, unwrap_record
from pyschoolbus.models import SchoolBusBaseModel, SchoolBusRecord
from pyschoolbus.state.entities import EntityType, ResourceType

_logger = logging.getLogger(__name__)


async def fetch_collection(
    paths: PathConvention,
    transport: Transport,
    entity: EntityType,
) -> list[SchoolBusRecord]:
    """Fetch every record of *entity*."""
    request = paths.list(entity)
    body = await send(transport, request)
    items = unwrap_collection(body, entity.value)
    if items is None:
        raise SchoolBusApiError(
            f"{request.endpoint} returned no {entity.value} collection",
            code="invalid_collection",
            endpoint=request.endpoint,
        )
    model = entity.record_type
    records = [validate_record(model, item, endpoint=request.endpoint) for item in items]
    _logger.debug("Fetched %d %s", len(records), entity.value)
    return records


async def fetch_record(
    paths: PathConvention,
    transport: Transport,
    entity: EntityType,
    record_id: str,
) -> SchoolBusRecord:
    request = paths.get(entity, record_id)
    body = await send(transport, request)
    data = unwrap_record(body, entity.singular)
    if data is None:
        raise SchoolBusApiError(
            f"{request.endpoint} returned no {entity.singular} for id={record_id}",
            code="empty_response",
            endpoint=request.endpoint,
        )
    return validate_record(entity.record_type, data, endpoint=request.endpoint)


async def create_record(
    paths: PathConvention,
    transport: Transport,
    entity: EntityType,
    body: Mapping[str, Any],
) -> SchoolBusRecord:
    """Create a record and return the backend's canonical copy.

    A create must echo the record: without it the assigned id is unknown.
    """
    request = paths.create(entity, body)
    response = await send(transport, request)
    data = unwrap_record(response, entity.singular)
    if data is None:
        raise SchoolBusApiError(
            f"{request.endpoint} did not return the created {entity.singular}",
            code="empty_response",
            endpoint=request.endpoint,
        )
    return validate_record(entity.record_type, data, endpoint=request.endpoint)


async def update_record(
    paths: PathConvention,
    transport: Transport,
    entity: EntityType,
    record_id: str,
    body: Mapping[str, Any],
) -> SchoolBusRecord | None:
    """Update a record.  Returns ``None`` when the backend echoes nothing."""
    request = paths.update(entity, record_id, body)
    response = await send(transport, request)
    data = unwrap_record(response, entity.singular)
    if data is None:
        return None
    return validate_record(entity.record_type, data, endpoint=request.endpoint)


async def delete_record(
    paths: PathConvention,
    transport: Transport,
    entity: EntityType,
    record_id: str,
) -> None:
    request = paths.delete(entity, record_id)
    await send(transport, request)


async def post_action(
    paths: PathConvention,
    transport: Transport,
    entity: EntityType,
    action: str,
    *,
    record_id: str | None = None,
    body: Mapping[str, Any] | None = None,
) -> tuple[str, Any]:
    """Invoke a named action.  Returns ``(endpoint, decoded body)``."""
    request = paths.action(entity, action, record_id=record_id, body=body)
    return request.endpoint, await send(transport, request)


async def fetch_lookup(
    paths: PathConvention,
    transport: Transport,
    entity: EntityType,
    name: str,
    *,
    record_id: str | None = None,
    params: Mapping[str, str] | None = None,
) -> tuple[str, Any]:
    """Run a read-only lookup.  Returns ``(endpoint, decoded body)``."""
    request = paths.lookup(entity, name, record_id=record_id, params=params)
    return request.endpoint, await send(transport, request)


def _has_fields(model: type[SchoolBusBaseModel], data: dict[str, Any]) -> bool:
    for name, field in model.model_fields.items():
        if name == "raw":
            continue
        if name in data or (field.alias or name) in data:
            return True
    return False


async def fetch_resource(
    paths: PathConvention,
    transport: Transport,
    resource: ResourceType,
) -> SchoolBusBaseModel:
    request = paths.resource_get(resource)
    body = await send(transport, request)
    data = unwrap_record(body, resource.wire_key)
    if data is None:
        raise SchoolBusApiError(
            f"{request.endpoint} returned no {resource.value} document",
            code="empty_response",
            endpoint=request.endpoint,
        )
    return validate_record(resource.model_type, data, endpoint=request.endpoint)


async def update_resource(
    paths: PathConvention,
    transport: Transport,
    resource: ResourceType,
    body: Mapping[str, Any],
) -> SchoolBusBaseModel | None:
    """Write a resource document.

    Returns ``None`` when the backend echoes nothing, or only an
    acknowledgement such as ``{"success": true}``.
    """
    request = paths.resource_update(resource, body)
    response = await send(transport, request)
    data = unwrap_record(response, resource.wire_key)
    if data is None or not _has_fields(resource.model_type, data):
        return None
    return validate_record(resource.model_type, data, endpoint=request.endpoint)
