"""Commands a conversation can issue, and validation of their inputs.

Commands are immutable and built per request. ``WriteThreshold`` keeps the
raw slot text; it is validated with :class:`ThresholdRequest` when the
command runs so malformed input is reported as a rejection rather than a
routing failure.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyband.models.fields import READ_FIELDS, THRESHOLD_FIELDS, BandField

_INTEGER_TEXT = re.compile(r"[+-]?\d+")


class _Command(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    #: Whether the command needs a bound device in addition to an identity.
    requires_device: ClassVar[bool] = False


class Identify(_Command):
    kind: Literal["identify"] = "identify"
    user_id: str

    @field_validator("user_id")
    @classmethod
    def _user_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("user_id must be non-empty")
        return value


class SelectDevice(_Command):
    kind: Literal["select_device"] = "select_device"
    nickname: str

    @field_validator("nickname")
    @classmethod
    def _nickname_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("nickname must be non-empty")
        return value


class ReadField(_Command):
    kind: Literal["read_field"] = "read_field"
    requires_device: ClassVar[bool] = True
    field: BandField

    @field_validator("field")
    @classmethod
    def _readable(cls, value: BandField) -> BandField:
        if value not in READ_FIELDS:
            raise ValueError(f"{value} is not a readable field")
        return value


class WriteThreshold(_Command):
    kind: Literal["write_threshold"] = "write_threshold"
    requires_device: ClassVar[bool] = True
    field: BandField
    value: Any = None

    @field_validator("field")
    @classmethod
    def _writable(cls, value: BandField) -> BandField:
        if value not in THRESHOLD_FIELDS:
            raise ValueError(f"{value} is not a threshold field")
        return value


Command = Annotated[Identify | SelectDevice | ReadField | WriteThreshold, Field(discriminator="kind")]


class ThresholdRequest(BaseModel):
    """Validated threshold write: ``value`` must be a well-formed integer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    field: BandField
    value: int

    @field_validator("value", mode="before")
    @classmethod
    def _well_formed_integer(cls, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError("booleans are not thresholds")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            if _INTEGER_TEXT.fullmatch(text):
                return int(text)
        raise ValueError(f"not a well-formed integer: {value!r}")
