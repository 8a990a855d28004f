"""Normalization helpers.

Centralizes unwrapping of the response shapes backends use.
"""

from __future__ import annotations

from typing import Any

_NOT_FOUND: Any = object()


def _first_key(body: dict[str, Any], *keys: str) -> Any:
    lowered = {str(k).lower(): v for k, v in body.items()}
    for key in keys:
        if key in body:
            return body[key]
        value = lowered.get(key.lower(), _NOT_FOUND)
        if value is not _NOT_FOUND:
            return value
    return _NOT_FOUND


def unwrap_collection(body: Any, plural: str) -> list[Any] | None:
    """Return the record list of a read response.

    Accepts a bare array, ``{"<plural>": [...]}`` or ``{"data": [...]}``
    (a nested ``{"data": {"<plural>": [...]}}`` too).  ``None`` and ``{}``
    mean an empty collection.  Returns ``None`` for any other shape.
    """
    if body is None:
        return []
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return None
    if not body:
        return []
    value = _first_key(body, plural, "data")
    if value is _NOT_FOUND or value is None:
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return unwrap_collection(value, plural)
    return None


def unwrap_record(body: Any, singular: str) -> dict[str, Any] | None:
    """Return the record of a write/get response.

    Accepts a bare object, ``{"<singular>": {...}}`` or ``{"data": {...}}``.
    Returns ``None`` for an empty body or a body without a record.
    """
    if not isinstance(body, dict) or not body:
        return None
    value = _first_key(body, singular, "data")
    if isinstance(value, dict):
        return value if value else None
    if value is not _NOT_FOUND:
        # {"data": null} or {"student": [...]}: no usable record.
        return None
    return body
