"""Mutation gateway.

Every write goes to the backend first; the store is only touched with the
canonical record the backend confirms.  A failed call raises and leaves
the store exactly as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel

from pyschoolbus._api._common import validate_record
from pyschoolbus._api._paths import (
    ACTION_BULK_UPLOAD,
    ACTION_FLAG,
    ACTION_OTP,
    ACTION_QR_CODE,
    ACTION_READ,
    ACTION_READ_ALL,
    ACTION_TOGGLE_DISABLE,
    ACTION_TRANSFER,
    PathConvention,
)
from pyschoolbus._api.records import (
    create_record,
    delete_record,
    fetch_record,
    fetch_resource,
    post_action,
    update_record,
    update_resource,
)
from pyschoolbus._transport import Transport
from pyschoolbus.exceptions import SchoolBusApiError
from pyschoolbus.ingestion.normalize import unwrap_collection, unwrap_record
from pyschoolbus.models import (
    AssignmentDraft,
    BulkImportResult,
    BulkStudentRow,
    DriverDraft,
    IncidentFlag,
    Notification,
    OtpCode,
    PlatformSettings,
    QrCode,
    RejectedRow,
    RouteDraft,
    SchoolBusBaseModel,
    SchoolBusDraft,
    SchoolDraft,
    Shift,
    ShiftDraft,
    Student,
    StudentDraft,
    StudentStatus,
)
from pyschoolbus.models.bulk import coerce_rows
from pyschoolbus.models.requests import (
    FlagIncidentRequest,
    RecordRequest,
    ToggleAssignmentRequest,
    TransferStudentRequest,
)
from pyschoolbus.state.entities import EntityType, ResourceType
from pyschoolbus.state.store import EntityStore

_logger = logging.getLogger(__name__)

DRAFT_TYPES: dict[EntityType, type[SchoolBusDraft]] = {
    EntityType.SCHOOLS: SchoolDraft,
    EntityType.DRIVERS: DriverDraft,
    EntityType.STUDENTS: StudentDraft,
    EntityType.ROUTES: RouteDraft,
    EntityType.ASSIGNMENTS: AssignmentDraft,
    EntityType.SHIFTS: ShiftDraft,
}

_READ_ONLY_FIELDS = frozenset({"id", "raw"})


def _wire_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True, mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): _wire_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_wire_value(v) for v in value]
    return value


def patch_to_wire(model: type[SchoolBusBaseModel], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Translate a snake_case/camelCase patch into a camelCase wire body.

    Raises :class:`ValueError` for keys that are not writable fields of
    *model*.
    """
    by_key: dict[str, str] = {}
    for name, field in model.model_fields.items():
        if name in _READ_ONLY_FIELDS:
            continue
        alias = field.alias or name
        by_key[name] = alias
        by_key[alias] = alias

    body: dict[str, Any] = {}
    unknown: list[str] = []
    for key, value in patch.items():
        alias = by_key.get(key)
        if alias is None:
            unknown.append(key)
            continue
        body[alias] = _wire_value(value)
    if unknown:
        raise ValueError(f"unknown {model.__name__} field(s): {', '.join(sorted(unknown))}")
    if not body:
        raise ValueError("patch must contain at least one field")
    return body


class MutationGateway:
    """Create/update/delete and the named entity actions."""

    def __init__(self, store: EntityStore, paths: PathConvention, transport: Transport) -> None:
        self._store = store
        self._paths = paths
        self._transport = transport
        # Status each student had before it was disabled in this session.
        self._status_before_disable: dict[str, StudentStatus] = {}

    # ------------------------------------------------------------------
    # Generic CRUD
    # ------------------------------------------------------------------

    async def create(self, entity: EntityType | str, draft: SchoolBusDraft | Mapping[str, Any]) -> Any:
        """Create a record and upsert the backend's canonical copy."""
        kind = EntityType.coerce(entity)
        draft_type = DRAFT_TYPES.get(kind)
        if draft_type is None:
            raise ValueError(f"{kind.value} records are created by the backend, not the client")
        if not isinstance(draft, draft_type):
            if isinstance(draft, SchoolBusDraft):
                raise TypeError(f"{kind.value} needs a {draft_type.__name__}, got {type(draft).__name__}")
            draft = draft_type.model_validate(draft)

        record = await create_record(self._paths, self._transport, kind, draft.to_payload())
        _logger.debug("Created %s id=%s", kind.singular, record.id)
        return self._store.upsert(kind, record)

    async def update(self, entity: EntityType | str, record_id: str, patch: Mapping[str, Any]) -> Any:
        """Apply *patch* to a record and upsert the canonical result.

        When the backend acknowledges with an empty body the record is
        read back before the store is updated.
        """
        kind = EntityType.coerce(entity)
        request = RecordRequest(record_id=record_id)
        body = patch_to_wire(kind.record_type, patch)

        record = await update_record(self._paths, self._transport, kind, request.record_id, body)
        if record is None:
            _logger.debug("Empty update response for %s id=%s; reading back", kind.singular, request.record_id)
            record = await fetch_record(self._paths, self._transport, kind, request.record_id)
        return self._store.upsert(kind, record)

    async def remove(self, entity: EntityType | str, record_id: str) -> None:
        """Delete a record; the store drops it only after the backend confirms."""
        kind = EntityType.coerce(entity)
        request = RecordRequest(record_id=record_id)
        await delete_record(self._paths, self._transport, kind, request.record_id)
        self._store.remove(kind, request.record_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _current(self, entity: EntityType, record_id: str) -> Any:
        record = self._store.get_by_id(entity, record_id)
        if record is None:
            record = await fetch_record(self._paths, self._transport, entity, record_id)
        return record

    async def _action_record(self, entity: EntityType, record_id: str, endpoint: str, body: Any) -> Any:
        data = unwrap_record(body, entity.singular)
        if data is None:
            return await fetch_record(self._paths, self._transport, entity, record_id)
        return validate_record(entity.record_type, data, endpoint=endpoint)

    # ------------------------------------------------------------------
    # Drivers
    # ------------------------------------------------------------------

    async def generate_driver_otp(self, driver_id: str) -> OtpCode:
        """Issue a pairing code for the driver app.  Not stored."""
        request = RecordRequest(record_id=driver_id)
        endpoint, body = await post_action(
            self._paths, self._transport, EntityType.DRIVERS, ACTION_OTP, record_id=request.record_id
        )
        return validate_record(OtpCode, unwrap_record(body, "result"), endpoint=endpoint)

    async def get_driver_qr_code(self, driver_id: str) -> QrCode:
        request = RecordRequest(record_id=driver_id)
        endpoint, body = await post_action(
            self._paths, self._transport, EntityType.DRIVERS, ACTION_QR_CODE, record_id=request.record_id
        )
        return validate_record(QrCode, unwrap_record(body, "qrCode"), endpoint=endpoint)

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    async def toggle_student_disable(self, student_id: str) -> Student:
        """Disable a student, or restore the status it had before."""
        request = RecordRequest(record_id=student_id)
        current: Student = await self._current(EntityType.STUDENTS, request.record_id)
        if current.status is StudentStatus.DISABLED:
            target = self._status_before_disable.get(current.id, StudentStatus.WAITING)
        else:
            target = StudentStatus.DISABLED

        endpoint, body = await post_action(
            self._paths,
            self._transport,
            EntityType.STUDENTS,
            ACTION_TOGGLE_DISABLE,
            record_id=current.id,
            body={"status": target.value},
        )
        record: Student = await self._action_record(EntityType.STUDENTS, current.id, endpoint, body)

        if target is StudentStatus.DISABLED:
            self._status_before_disable[current.id] = current.status
        else:
            self._status_before_disable.pop(current.id, None)
        return self._store.upsert(EntityType.STUDENTS, record)

    async def transfer_student(
        self, student_id: str, *, school: str | None = None, grade: str | None = None
    ) -> Student:
        """Move a student to another school and/or grade."""
        request = TransferStudentRequest(record_id=student_id, school=school, grade=grade)
        endpoint, body = await post_action(
            self._paths,
            self._transport,
            EntityType.STUDENTS,
            ACTION_TRANSFER,
            record_id=request.record_id,
            body=request.to_payload(),
        )
        record = await self._action_record(EntityType.STUDENTS, request.record_id, endpoint, body)
        return self._store.upsert(EntityType.STUDENTS, record)

    async def bulk_upload_students(
        self,
        rows: Iterable[Mapping[str, Any] | BulkStudentRow],
        *,
        school: str,
    ) -> BulkImportResult:
        """Validate rows client-side and submit the valid ones.

        Nothing is sent when no row is valid.  The backend must echo the
        created students; they are upserted in submission order.
        """
        school = school.strip()
        if not school:
            raise ValueError("school must be non-empty")

        valid: list[BulkStudentRow] = []
        rejected: list[RejectedRow] = []
        for index, (row, original) in enumerate(coerce_rows(rows)):
            reasons = row.problems()
            if reasons:
                rejected.append(RejectedRow(index=index, reasons=reasons, row=original))
            else:
                valid.append(row)

        if not valid:
            _logger.debug("Bulk upload: all %d row(s) rejected; nothing submitted", len(rejected))
            return BulkImportResult(rejected=tuple(rejected))

        endpoint, body = await post_action(
            self._paths,
            self._transport,
            EntityType.STUDENTS,
            ACTION_BULK_UPLOAD,
            body={"school": school, "students": [row.to_payload(school) for row in valid]},
        )
        items = unwrap_collection(body, EntityType.STUDENTS.value)
        if not items:
            raise SchoolBusApiError(
                f"{endpoint} did not return the imported students",
                code="empty_response",
                endpoint=endpoint,
            )
        imported = tuple(validate_record(Student, item, endpoint=endpoint) for item in items)
        for student in imported:
            self._store.upsert(EntityType.STUDENTS, student)
        _logger.debug("Bulk upload: %d imported, %d rejected", len(imported), len(rejected))
        return BulkImportResult(imported=imported, rejected=tuple(rejected))

    def toggle_student_assignment(self, student_id: str, route_id: str) -> Student:
        """Add *route_id* to the student's routes, or remove it.

        A local store update only; no request is sent.
        """
        request = ToggleAssignmentRequest(record_id=student_id, route_id=route_id)
        student: Student | None = self._store.get_by_id(EntityType.STUDENTS, request.record_id)
        if student is None:
            raise KeyError(f"student {request.record_id!r} is not loaded")
        return self._store.upsert(EntityType.STUDENTS, student.with_route_toggled(request.route_id))

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def update_settings(self, patch: Mapping[str, Any]) -> PlatformSettings:
        """Write platform settings and cache the confirmed document.

        An acknowledgement without the document triggers a read-back.
        """
        body = patch_to_wire(PlatformSettings, patch)
        settings = await update_resource(self._paths, self._transport, ResourceType.SETTINGS, body)
        if settings is None:
            _logger.debug("Settings update acknowledged without a document; reading back")
            settings = await fetch_resource(self._paths, self._transport, ResourceType.SETTINGS)
        return self._store.set_resource(ResourceType.SETTINGS, settings)

    # ------------------------------------------------------------------
    # Shifts, trips, notifications
    # ------------------------------------------------------------------

    async def duplicate_shift(self, shift_id: str) -> Shift:
        """Create a copy of a shift named ``"<name> (Copy)"``."""
        request = RecordRequest(record_id=shift_id)
        shift: Shift = await self._current(EntityType.SHIFTS, request.record_id)
        draft = shift.to_draft(shift_name=f"{shift.shift_name} (Copy)".strip())
        return await self.create(EntityType.SHIFTS, draft)

    async def flag_trip_incident(self, trip_id: str, reason: str) -> IncidentFlag:
        request = FlagIncidentRequest(record_id=trip_id, reason=reason)
        endpoint, body = await post_action(
            self._paths,
            self._transport,
            EntityType.TRIPS,
            ACTION_FLAG,
            record_id=request.record_id,
            body={"reason": request.reason},
        )
        data = unwrap_record(body, "flag") or {}
        return validate_record(IncidentFlag, data, endpoint=endpoint)

    async def mark_notification_read(self, notification_id: str) -> Notification:
        request = RecordRequest(record_id=notification_id)
        endpoint, body = await post_action(
            self._paths, self._transport, EntityType.NOTIFICATIONS, ACTION_READ, record_id=request.record_id
        )
        data = unwrap_record(body, EntityType.NOTIFICATIONS.singular)
        if data is not None:
            record = validate_record(Notification, data, endpoint=endpoint)
        else:
            # Acknowledged without a body: the confirmed change is read=True.
            current: Notification = await self._current(EntityType.NOTIFICATIONS, request.record_id)
            record = current.model_copy(update={"read": True})
        return self._store.upsert(EntityType.NOTIFICATIONS, record)

    async def mark_all_notifications_read(self) -> tuple[Notification, ...]:
        endpoint, body = await post_action(self._paths, self._transport, EntityType.NOTIFICATIONS, ACTION_READ_ALL)
        items = unwrap_collection(body, EntityType.NOTIFICATIONS.value)
        if items:
            records = [validate_record(Notification, item, endpoint=endpoint) for item in items]
        else:
            current: tuple[Notification, ...] = self._store.get_all(EntityType.NOTIFICATIONS)
            records = [n if n.read else n.model_copy(update={"read": True}) for n in current]
        return self._store.replace_all(EntityType.NOTIFICATIONS, records)
