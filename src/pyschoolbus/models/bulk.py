"""Bulk student import rows and results.

Rows arrive keyed by the headers of the console's CSV template
(``"First Name"``, ``"Guardian Phone"``, ...).  Snake_case and camelCase
keys are accepted too.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from pyschoolbus.models.student import Student, StudentDraft, StudentStatus

__all__ = [
    "CSV_TEMPLATE_COLUMNS",
    "DEFAULT_GRADE",
    "BulkImportResult",
    "BulkStudentRow",
    "RejectedRow",
    "parse_student_csv",
]

CSV_TEMPLATE_COLUMNS: tuple[str, ...] = (
    "First Name",
    "Last Name",
    "Grade",
    "Guardian First Name",
    "Guardian Last Name",
    "Guardian Phone",
    "Pickup Address",
)

DEFAULT_GRADE = "1st Grade"


def _column(header: str, name: str) -> Any:
    parts = name.split("_")
    camel = parts[0] + "".join(p.title() for p in parts[1:])
    return Field(default="", validation_alias=AliasChoices(header, name, camel))


class BulkStudentRow(BaseModel):
    """One uploaded row, before validation."""

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True, coerce_numbers_to_str=True)

    first_name: str = _column("First Name", "first_name")
    last_name: str = _column("Last Name", "last_name")
    grade: str = _column("Grade", "grade")
    guardian_first_name: str = _column("Guardian First Name", "guardian_first_name")
    guardian_last_name: str = _column("Guardian Last Name", "guardian_last_name")
    guardian_phone: str = _column("Guardian Phone", "guardian_phone")
    pickup_address: str = _column("Pickup Address", "pickup_address")
    dropoff_address: str = _column("Dropoff Address", "dropoff_address")

    def problems(self) -> tuple[str, ...]:
        """Reasons this row cannot be imported; empty when valid."""
        reasons: list[str] = []
        if not self.first_name:
            reasons.append("missing first name")
        if not self.last_name:
            reasons.append("missing last name")
        if not self.guardian_first_name:
            reasons.append("missing guardian first name")
        if not self.guardian_last_name:
            reasons.append("missing guardian last name")
        if not self.guardian_phone:
            reasons.append("missing guardian phone")
        if not self.pickup_address and not self.dropoff_address:
            reasons.append("missing address")
        return tuple(reasons)

    def to_draft(self, school: str) -> StudentDraft:
        # Addresses are not geocoded here; coordinates stay unset until the
        # backend resolves them.
        return StudentDraft(
            name=f"{self.first_name} {self.last_name}".strip(),
            school=school,
            grade=self.grade or DEFAULT_GRADE,
            guardian=f"{self.guardian_first_name} {self.guardian_last_name}".strip(),
            guardian_phone=self.guardian_phone,
            status=StudentStatus.WAITING,
        )

    def to_payload(self, school: str) -> dict[str, Any]:
        payload = self.to_draft(school).to_payload()
        if self.pickup_address:
            payload["pickupAddress"] = self.pickup_address
        if self.dropoff_address:
            payload["dropoffAddress"] = self.dropoff_address
        return payload


class RejectedRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    """Zero-based position of the row in the upload."""
    reasons: tuple[str, ...]
    row: dict[str, Any] = Field(default_factory=dict)


class BulkImportResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    imported: tuple[Student, ...] = ()
    rejected: tuple[RejectedRow, ...] = ()

    @property
    def submitted(self) -> bool:
        return bool(self.imported)


def coerce_rows(rows: Iterable[Mapping[str, Any] | BulkStudentRow]) -> list[tuple[BulkStudentRow, dict[str, Any]]]:
    """Pair each row with the plain dict it came from."""
    parsed: list[tuple[BulkStudentRow, dict[str, Any]]] = []
    for row in rows:
        if isinstance(row, BulkStudentRow):
            parsed.append((row, row.model_dump()))
        else:
            original = dict(row)
            values = {key: "" if value is None else value for key, value in original.items()}
            parsed.append((BulkStudentRow.model_validate(values), original))
    return parsed


def parse_student_csv(text: str) -> list[dict[str, str]]:
    """Split CSV text using the template header into row dicts.

    Blank lines are skipped.  Returns an empty list when there is no data
    row under the header.
    """
    reader = csv.DictReader(io.StringIO(text.strip()))
    rows: list[dict[str, str]] = []
    for record in reader:
        cleaned = {str(k).strip(): (v or "").strip() for k, v in record.items() if k is not None}
        if any(cleaned.values()):
            rows.append(cleaned)
    return rows
