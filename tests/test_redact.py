from __future__ import annotations

from pyschoolbus._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "code": "404",
        "X-Session-Id": "sess-1",
        "authorization": "Bearer abc",
        "password": "pw",
        "nested": {"otp": "123456", "ApiUniqueID": "u-1"},
    }

    redacted = redact_for_log(payload)
    assert redacted["code"] == "404"
    assert redacted["X-Session-Id"] == "<redacted>"
    assert redacted["authorization"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["nested"]["otp"] == "<redacted>"
    assert redacted["nested"]["ApiUniqueID"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_walks_lists() -> None:
    redacted = redact_for_log([{"token": "t"}, {"name": "Ann"}, b"\x00\x01"])
    assert redacted == [{"token": "<redacted>"}, {"name": "Ann"}, "<bytes:2b>"]


def test_redact_for_log_masks_one_time_codes() -> None:
    redacted = redact_for_log({"result": {"code": "482913", "expiresIn": 300}})
    assert redacted == {"result": {"code": "<redacted>", "expiresIn": 300}}

    error = redact_for_log({"code": "invalid_grade", "message": "bad"})
    assert error["code"] == "invalid_grade"
