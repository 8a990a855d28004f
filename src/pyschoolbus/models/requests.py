"""Pydantic request models for gateway entrypoints.

These models provide a consistent "validate → normalize → execute" flow.
They are used internally by :class:`pyschoolbus.mutations.MutationGateway`
and :class:`pyschoolbus.lookups.LookupGateway`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RecordRequest(BaseModel):
    """Request addressing one record by id."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    record_id: str

    @field_validator("record_id")
    @classmethod
    def _id_non_empty(cls, value: str) -> str:
        record_id = value.strip()
        if not record_id:
            raise ValueError("record id must be non-empty")
        return record_id


class TransferStudentRequest(RecordRequest):
    """Move a student to another school and/or grade."""

    school: str | None = None
    grade: str | None = None

    @model_validator(mode="after")
    def _needs_target(self) -> TransferStudentRequest:
        if not self.school and not self.grade:
            raise ValueError("transfer needs a school or a grade")
        return self

    def to_payload(self) -> dict[str, str]:
        payload: dict[str, str] = {}
        if self.school:
            payload["school"] = self.school
        if self.grade:
            payload["grade"] = self.grade
        return payload


class ToggleAssignmentRequest(RecordRequest):
    route_id: str

    @field_validator("route_id")
    @classmethod
    def _route_non_empty(cls, value: str) -> str:
        route_id = value.strip()
        if not route_id:
            raise ValueError("route id must be non-empty")
        return route_id


class FlagIncidentRequest(RecordRequest):
    reason: str = Field(min_length=1)


class _LookupRequest(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
        str_to_lower=True,
    )


class ExportRoutesRequest(_LookupRequest):
    format: str = Field(default="csv", min_length=1)


class TripStatsRequest(_LookupRequest):
    period: str = Field(default="monthly", min_length=1)
