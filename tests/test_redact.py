from __future__ import annotations

from pyband._redact import redact_for_log


def test_readings_under_shadow_sections_are_masked() -> None:
    payload = {
        "state": {
            "desired": {"data_requested": 1, "max_pulse_alert": 150},
            "reported": {"heart_rate": 72, "SpO2": 98, "max_pulse_alert": 150},
        },
        "version": 7,
        "clientToken": "t-1",
    }

    redacted = redact_for_log(payload)

    assert redacted["state"]["reported"] == {
        "heart_rate": "<redacted>",
        "SpO2": "<redacted>",
        "max_pulse_alert": 150,
    }
    assert redacted["state"]["desired"] == {"data_requested": 1, "max_pulse_alert": 150}
    assert redacted["version"] == 7
    assert redacted["clientToken"] == "t-1"


def test_reading_names_outside_shadow_sections_are_kept() -> None:
    row = {"user": "ana", "thing_nick": "steps", "steps": "n/a"}
    assert redact_for_log(row) == row


def test_credentials_are_masked_anywhere() -> None:
    redacted = redact_for_log({"Authorization": "Bearer abc", "headers": [{"x-amz-security-token": "s"}]})

    assert redacted["Authorization"] == "<redacted>"
    assert redacted["headers"][0]["x-amz-security-token"] == "<redacted>"


def test_long_strings_and_bytes_are_shortened() -> None:
    redacted = redact_for_log({"message": "x" * 600, "raw": b"\xff\xfe"}, max_string=10)

    assert redacted["message"].startswith("x" * 10)
    assert "<truncated>" in redacted["message"]
    assert redacted["raw"] == "<bytes:2b>"
