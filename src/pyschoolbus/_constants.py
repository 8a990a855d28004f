"""Internal constants shared across the library."""

from __future__ import annotations

from datetime import datetime, time, timedelta

BASE_URL = "http://localhost:8080/api"
USER_AGENT = "pyschoolbus/0.1"

OPERATOR_HEADER = "X-Operator-Id"
ROLE_HEADER = "X-Role-Id"
SESSION_HEADER = "X-Session-Id"

# ------------------------------------------------------------------
# Route stop fallbacks (school gate coordinates used when a student
# has no location for the requested direction)
# ------------------------------------------------------------------

DEFAULT_STOP_ADDRESS = "Unknown location"
DEFAULT_STOP_LAT = -1.2864
DEFAULT_STOP_LNG = 36.8172

STOP_TIME_FORMAT = "%I:%M %p"


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` 24-hour clock string.

    Raises :class:`ValueError` for anything else.
    """
    text = value.strip()
    try:
        return datetime.strptime(text, "%H:%M").time()
    except ValueError as exc:
        raise ValueError(f"clock must be HH:MM (24h), got {value!r}") from exc


def stop_time(base: time, index: int, step_minutes: int) -> str:
    """Synthetic arrival time of the *index*-th stop, e.g. ``"07:05 AM"``."""
    if index < 0:
        raise ValueError(f"stop index must be >= 0, got {index}")
    start = datetime.combine(datetime(2000, 1, 1).date(), base)
    return (start + timedelta(minutes=index * step_minutes)).strftime(STOP_TIME_FORMAT)
