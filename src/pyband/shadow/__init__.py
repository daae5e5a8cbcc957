"""Shadow store implementations."""

from pyband.shadow.base import ShadowStore
from pyband.shadow.memory import InMemoryShadowStore
from pyband.shadow.mqtt import MqttShadowStore
from pyband.shadow.rest import HttpShadowStore

__all__ = [
    "HttpShadowStore",
    "InMemoryShadowStore",
    "MqttShadowStore",
    "ShadowStore",
]
