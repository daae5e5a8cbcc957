"""Base model for documents exchanged with the catalog and shadow store.

Every wire model inherits from :class:`BandBaseModel` which provides:

* A ``model_validator(mode="before")`` that drops empty sentinel values
  (``None``, ``""``) so the field default is used.
* A ``raw`` dict that captures the original document.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_SENTINELS = frozenset({""})


class BandBaseModel(BaseModel):
    """Base for wire documents (catalog rows, shadow documents)."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original document."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip empty values and stash the raw document."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = BandBaseModel._clean_dict(original)
        # Keep an explicit raw= from keyword construction.
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
