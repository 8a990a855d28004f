"""Base DTO envelope for the verb-style (``/v1/{Controller}/{Action}``) backend."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any

from pyschoolbus.config import CallerIdentity


class ApiActionType(IntEnum):
    INSERT = 1
    UPDATE = 2
    DELETE = 3
    GET = 4


def build_verb_envelope(
    identity: CallerIdentity,
    action_type: ApiActionType,
    fields: Mapping[str, Any] | None = None,
    *,
    dynamic_fields: str = "",
    now: datetime | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Wrap *fields* in the backend's base DTO.

    Parameters
    ----------
    identity : CallerIdentity
        Forwarded as ``ApiOperatorID`` / ``ApiRoleID`` / ``ApiUniqueID``.
    action_type : ApiActionType
        Insert, update, delete or get.
    fields : Mapping, optional
        Record fields, merged at the top level of the envelope.
    dynamic_fields : str
        Opaque ``ApiDynamicFields`` string.
    now : datetime, optional
        Timestamp for ``ApiOperatedOn``; defaults to the current UTC time.
    request_id : str, optional
        ``ApiRequestID``; defaults to a fresh UUID4.

    Returns
    -------
    dict
        The JSON body to POST.
    """
    if now is None:
        now = datetime.now(UTC)
    envelope: dict[str, Any] = {
        "ApiActionTypeID": int(action_type),
        "ApiDynamicFields": dynamic_fields,
        "ApiOperatorID": identity.operator_id,
        "ApiRequestID": request_id or str(uuid.uuid4()),
        "ApiRoleID": identity.role_id,
        "ApiUniqueID": identity.session_id,
        "ApiOperatedOn": now.isoformat(),
    }
    if fields:
        for key, value in fields.items():
            # Envelope keys are never overridden by record fields.
            envelope.setdefault(key, value)
    return envelope
