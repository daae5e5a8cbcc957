"""pyband - Async voice-skill core for smart bands behind a device shadow."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyband")
except PackageNotFoundError:
    __version__ = "0+local"
from pyband.catalog import DeviceCatalog, HttpDeviceCatalog, StaticDeviceCatalog
from pyband.config import BandConfig
from pyband.exceptions import (
    BandConfigError,
    BandError,
    BandRejectedError,
    BandRoutingError,
    BandTransportError,
    FieldUnavailableError,
    InvalidValueError,
    MissingSlotError,
    NoDeviceError,
    NoIdentityError,
    NoSuchDeviceError,
    NoSuchUserError,
    RejectionReason,
    UnknownIntentError,
)
from pyband.gate import CommandGate
from pyband.models import (
    BandField,
    CatalogRecord,
    Command,
    DeviceRef,
    Identify,
    ReadField,
    SelectDevice,
    SkillResponse,
    WriteThreshold,
)
from pyband.protocol import ShadowRequestProtocol, shadow_key
from pyband.router import IntentRouter, Operation
from pyband.session import SessionRegistry, SessionState
from pyband.shadow import HttpShadowStore, InMemoryShadowStore, MqttShadowStore, ShadowStore
from pyband.skill import BandSkill

__all__ = [
    "__version__",
    "BandConfig",
    "BandConfigError",
    "BandError",
    "BandField",
    "BandRejectedError",
    "BandRoutingError",
    "BandSkill",
    "BandTransportError",
    "CatalogRecord",
    "Command",
    "CommandGate",
    "DeviceCatalog",
    "DeviceRef",
    "FieldUnavailableError",
    "HttpDeviceCatalog",
    "HttpShadowStore",
    "Identify",
    "InMemoryShadowStore",
    "IntentRouter",
    "InvalidValueError",
    "MissingSlotError",
    "MqttShadowStore",
    "NoDeviceError",
    "NoIdentityError",
    "NoSuchDeviceError",
    "NoSuchUserError",
    "Operation",
    "ReadField",
    "RejectionReason",
    "SelectDevice",
    "SessionRegistry",
    "SessionState",
    "ShadowRequestProtocol",
    "ShadowStore",
    "SkillResponse",
    "StaticDeviceCatalog",
    "UnknownIntentError",
    "WriteThreshold",
    "shadow_key",
]
