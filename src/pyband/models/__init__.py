"""Data models for pyband."""

from pyband.models.commands import (
    Command,
    Identify,
    ReadField,
    SelectDevice,
    ThresholdRequest,
    WriteThreshold,
)
from pyband.models.device import CatalogRecord, DeviceRef
from pyband.models.fields import READ_FIELDS, THRESHOLD_FIELDS, BandField, ReadableField
from pyband.models.response import SkillResponse
from pyband.models.shadow import ReportedSnapshot, ShadowDocument, ShadowState, desired_update

__all__ = [
    "BandField",
    "CatalogRecord",
    "Command",
    "DeviceRef",
    "Identify",
    "READ_FIELDS",
    "ReadField",
    "ReadableField",
    "ReportedSnapshot",
    "SelectDevice",
    "ShadowDocument",
    "ShadowState",
    "SkillResponse",
    "THRESHOLD_FIELDS",
    "ThresholdRequest",
    "WriteThreshold",
    "desired_update",
]
