"""Shared helpers for the resource layer.

This module centralizes the most repeated patterns:
- sending a prepared request through the transport
- mapping HTTP statuses to the exception taxonomy
- validating records into models

It is internal to pyschoolbus and may change at any time.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pyschoolbus._api._paths import PreparedRequest
from pyschoolbus._transport import Transport, TransportResponse
from pyschoolbus.exceptions import (
    SchoolBusApiError,
    SchoolBusAuthenticationError,
    SchoolBusNotFoundError,
    SchoolBusTransportError,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _error_message(body: Any) -> str:
    if isinstance(body, dict):
        for key in ("message", "error", "detail", "Message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(body, str):
        return body[:200]
    return ""


def _error_code(body: Any, status: int) -> str:
    if isinstance(body, dict):
        code = body.get("code")
        if code is not None and str(code):
            return str(code)
    return str(status)


def _raise_for_status(*, endpoint: str, response: TransportResponse) -> None:
    status = response.status
    if 200 <= status < 300:
        return
    message = _error_message(response.body)
    code = _error_code(response.body, status)
    detail = f"{endpoint} failed: HTTP {status}" + (f" message={message}" if message else "")
    if status in (401, 403):
        raise SchoolBusAuthenticationError(detail, code=code, endpoint=endpoint)
    if status == 404:
        raise SchoolBusNotFoundError(detail, code=code, endpoint=endpoint)
    if 400 <= status < 500:
        raise SchoolBusApiError(detail, code=code, endpoint=endpoint)
    raise SchoolBusTransportError(detail, status_code=status, endpoint=endpoint)


async def send(transport: Transport, request: PreparedRequest) -> Any:
    """Send *request* and return the decoded body (``None`` when empty)."""
    response = await transport.request(request.method, request.endpoint, request.payload)
    _raise_for_status(endpoint=request.endpoint, response=response)
    return response.body


def validate_record(model: type[ModelT], data: Any, *, endpoint: str) -> ModelT:
    """Validate one record, mapping pydantic failures to ``invalid_record``."""
    if not isinstance(data, dict):
        raise SchoolBusApiError(
            f"{endpoint} returned a non-object record: {type(data).__name__}",
            code="invalid_record",
            endpoint=endpoint,
        )
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise SchoolBusApiError(
            f"{endpoint} returned an invalid {model.__name__}: {exc.error_count()} error(s)",
            code="invalid_record",
            endpoint=endpoint,
        ) from exc
