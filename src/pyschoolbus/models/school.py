"""School model, the root scoping unit of every other collection."""

from __future__ import annotations

from pyschoolbus.models._base import SchoolBusDraft, SchoolBusRecord

__all__ = ["School", "SchoolDraft"]


class School(SchoolBusRecord):
    """A school served by the transport operator."""

    name: str = ""
    logo_url: str | None = None


class SchoolDraft(SchoolBusDraft):
    name: str
    logo_url: str | None = None
