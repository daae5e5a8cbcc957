"""Helpers for safe debug logging of shadow traffic.

Shadow documents nest the band's readings under ``state.reported`` (and
``state.desired`` / ``state.delta`` on update echoes). Readings inside
those sections are masked; control flags and alert thresholds stay
visible so request/confirm traces remain useful. Credentials are masked
wherever they appear.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pyband.models.fields import READ_FIELDS

_CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {"authorization", "password", "token", "cookie", "x-amz-security-token"}
)
_SHADOW_SECTIONS: frozenset[str] = frozenset({"reported", "desired", "delta"})
_READING_KEYS: frozenset[str] = frozenset(str(field) for field in READ_FIELDS)

_REDACTED = "<redacted>"
_MAX_DEPTH = 8


def redact_for_log(value: Any, *, max_string: int = 256) -> Any:
    """Return a copy of *value* with credentials and band readings masked."""
    return _redact(value, max_string=max_string, in_section=False, depth=0)


def _redact(value: Any, *, max_string: int, in_section: bool, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"

    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for raw_key, item in value.items():
            key = str(raw_key)
            if key.lower() in _CREDENTIAL_KEYS or (in_section and key in _READING_KEYS):
                out[key] = _REDACTED
                continue
            out[key] = _redact(
                item,
                max_string=max_string,
                in_section=in_section or key in _SHADOW_SECTIONS,
                depth=depth + 1,
            )
        return out

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"

    if isinstance(value, Sequence):
        return [_redact(item, max_string=max_string, in_section=in_section, depth=depth + 1) for item in value]

    return value
