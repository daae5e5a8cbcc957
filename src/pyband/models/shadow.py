"""Shadow documents.

A device shadow pairs a ``desired`` document (last write intent from the
controller side) with a ``reported`` document (last state published by
the band). Both are partial documents merged by key on the store side.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pyband.models._base import BandBaseModel


class ShadowState(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    desired: dict[str, Any] = Field(default_factory=dict)
    reported: dict[str, Any] = Field(default_factory=dict)


class ShadowDocument(BandBaseModel):
    """Full shadow document as returned by a shadow ``get``."""

    state: ShadowState = Field(default_factory=ShadowState)
    version: int | None = None
    timestamp: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _null_sections(cls, values: Any) -> Any:
        # A shadow with nothing desired yet carries "desired": null.
        if not isinstance(values, dict):
            return values
        state = values.get("state")
        if isinstance(state, dict):
            values = {**values, "state": {k: v for k, v in state.items() if v is not None}}
        return values

    def reported(self) -> ReportedSnapshot:
        return ReportedSnapshot(self.state.reported)


def desired_update(patch: Mapping[str, Any]) -> dict[str, Any]:
    """Wrap a partial desired document in the shadow update envelope."""
    return {"state": {"desired": dict(patch)}}


class ReportedSnapshot(Mapping[str, Any]):
    """Read-only view of a reported document.

    ``get`` treats an explicit ``null`` the same as an absent key.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})

    def __getitem__(self, key: str) -> Any:
        value = self._data[key]
        if value is None:
            raise KeyError(key)
        return value

    def __iter__(self) -> Iterator[str]:
        return (key for key, value in self._data.items() if value is not None)

    def __len__(self) -> int:
        return sum(1 for value in self._data.values() if value is not None)

    def __repr__(self) -> str:
        return f"ReportedSnapshot(keys={sorted(self)})"
