"""Device and catalog models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from pyband.models._base import BandBaseModel


class DeviceRef(BaseModel):
    """A band owned by a user: spoken nickname plus physical serial number."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    nickname: str
    physical_id: str

    @field_validator("nickname", "physical_id")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must be non-empty")
        return value

    def matches(self, nickname: str) -> bool:
        """Case-insensitive nickname comparison."""
        return self.nickname.casefold() == nickname.strip().casefold()


class CatalogRecord(BandBaseModel):
    """One row of the user/device catalog table.

    The table stores one item per (user, band) pair using the keys
    ``user``, ``thing_nick`` and ``serial_number``.
    """

    user: str
    thing_nick: str
    serial_number: str

    @field_validator("serial_number", mode="before")
    @classmethod
    def _serial_as_text(cls, value: object) -> object:
        # Numeric serials are stored as numbers in some tables.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def belongs_to(self, user_id: str) -> bool:
        return self.user.casefold() == user_id.strip().casefold()

    def to_device_ref(self) -> DeviceRef:
        return DeviceRef(nickname=self.thing_nick, physical_id=self.serial_number)
