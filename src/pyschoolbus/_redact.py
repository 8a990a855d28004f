"""Helpers for safe debug logging.

Requests carry the operator's session id and bearer token, and some
responses carry one-time codes.  This module redacts those fields before
they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "newpassword",
        "confirmpassword",
        "token",
        "apitoken",
        "accesstoken",
        "authorization",
        "cookie",
        "x-session-id",
        "sessionid",
        "apiuniqueid",
        "otp",
    }
)

# A ``code`` next to an expiry is a one-time code, not an error code.
_ONE_TIME_CODE_KEYS: frozenset[str] = frozenset({"code", "pin"})
_EXPIRY_KEYS: frozenset[str] = frozenset({"expiresin", "expires_in", "expiresat", "expires_at"})


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        sensitive = _SENSITIVE_VALUE_KEYS
        if any(str(k).lower() in _EXPIRY_KEYS for k in value):
            sensitive = sensitive | _ONE_TIME_CODE_KEYS
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in sensitive:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
