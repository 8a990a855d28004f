"""Base models and enum for school transport records.

Every stored record inherits from :class:`SchoolBusRecord` which
provides:

* ``alias_generator=to_camel`` so camelCase API keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` and
  placeholder strings so the field default is used.
* A ``raw`` dict that captures the original payload.
* A required, non-empty ``id``.

Create payloads inherit from :class:`SchoolBusDraft` instead: a draft
carries writable fields only and never an id.

Status enums inherit from :class:`SchoolBusEnum` which adds an
``UNKNOWN`` member and a ``_missing_`` hook that tolerates case and
separator differences (``"drop-off"`` → ``DROPOFF``) and returns
``UNKNOWN`` for anything else.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings the console backend uses for "not set".
_SENTINELS = frozenset({"", "--", "null", "undefined"})


def _enum_key(value: str) -> str:
    return "".join(ch for ch in value.upper() if ch.isalnum())


class SchoolBusEnum(StrEnum):
    """Base for status/type enums.

    Every subclass **must** define ``UNKNOWN = "UNKNOWN"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> SchoolBusEnum | None:
        if isinstance(value, str):
            wanted = _enum_key(value)
            for member in cls:
                if _enum_key(member.value) == wanted:
                    return member
        if hasattr(cls, "UNKNOWN"):
            unknown: SchoolBusEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return None


class SchoolBusBaseModel(BaseModel):
    """Base for models parsed from backend payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
    """Original API response dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        """Drop ``None`` and placeholder strings from *values*."""
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip placeholders and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = SchoolBusBaseModel._clean_dict(original)
        # Keep an explicit raw= from the caller (e.g. model_copy round trips).
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned


class SchoolBusRecord(SchoolBusBaseModel):
    """A persisted record, identified by an opaque string id."""

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(int(value))
        if not isinstance(value, str):
            raise ValueError("id must be a string")
        ident = value.strip()
        if not ident:
            raise ValueError("id must be non-empty")
        return ident


class SchoolBusDraft(BaseModel):
    """Writable fields of a record before the backend assigns an id."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    def to_payload(self) -> dict[str, Any]:
        """camelCase JSON payload, unset optional fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
