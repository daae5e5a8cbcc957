"""Maps inbound intents to commands.

Both the operation names (``read-heart-rate``) and the voice front end's
intent names (``CheckHeartbeatIntent``) are accepted. Slots may be given
as plain values or as ``{"value": ...}`` objects.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pyband.exceptions import MissingSlotError, UnknownIntentError
from pyband.models.commands import Command, Identify, ReadField, SelectDevice, WriteThreshold
from pyband.models.fields import BandField


class Operation(enum.StrEnum):
    IDENTIFY_USER = "identify-user"
    SELECT_DEVICE = "select-device"
    READ_HEART_RATE = "read-heart-rate"
    READ_ACTIVITY = "read-activity"
    READ_TEMPERATURE = "read-temperature"
    READ_SPO2 = "read-spo2"
    READ_STEPS = "read-steps"
    SET_MIN_HEART_RATE_THRESHOLD = "set-min-heart-rate-threshold"
    SET_MAX_HEART_RATE_THRESHOLD = "set-max-heart-rate-threshold"


INTENT_OPERATIONS: dict[str, Operation] = {
    "CaptureUsernameIntent": Operation.IDENTIFY_USER,
    "SelectThingIntent": Operation.SELECT_DEVICE,
    "CheckHeartbeatIntent": Operation.READ_HEART_RATE,
    "CheckActivityIntent": Operation.READ_ACTIVITY,
    "CheckTemperatureIntent": Operation.READ_TEMPERATURE,
    "CheckSpOIntent": Operation.READ_SPO2,
    "CheckStepsIntent": Operation.READ_STEPS,
    "ChangeMinHeartbeatIntent": Operation.SET_MIN_HEART_RATE_THRESHOLD,
    "ChangeMaxHeartbeatIntent": Operation.SET_MAX_HEART_RATE_THRESHOLD,
}


@dataclass(frozen=True)
class _Route:
    slot: str | None = None
    field: BandField | None = None
    #: Empty slots are passed on for the command to reject.
    optional: bool = False


_ROUTES: dict[Operation, _Route] = {
    Operation.IDENTIFY_USER: _Route(slot="username"),
    Operation.SELECT_DEVICE: _Route(slot="thingNick"),
    Operation.READ_HEART_RATE: _Route(field=BandField.HEART_RATE),
    Operation.READ_ACTIVITY: _Route(field=BandField.ACTIVITY_TYPE),
    Operation.READ_TEMPERATURE: _Route(field=BandField.AMBIENT_TEMPERATURE),
    Operation.READ_SPO2: _Route(field=BandField.SPO2),
    Operation.READ_STEPS: _Route(field=BandField.STEPS),
    Operation.SET_MIN_HEART_RATE_THRESHOLD: _Route(slot="minPulse", field=BandField.MIN_PULSE_ALERT, optional=True),
    Operation.SET_MAX_HEART_RATE_THRESHOLD: _Route(slot="maxPulse", field=BandField.MAX_PULSE_ALERT, optional=True),
}


def _slot_value(slots: Mapping[str, Any], name: str) -> Any:
    value = slots.get(name)
    if isinstance(value, Mapping):
        value = value.get("value")
    if isinstance(value, str):
        value = value.strip()
    return value


class IntentRouter:
    """Turns ``(intent_name, slots)`` into a :data:`Command`."""

    def resolve(self, intent_name: str) -> Operation:
        operation = INTENT_OPERATIONS.get(intent_name)
        if operation is not None:
            return operation
        try:
            return Operation(intent_name)
        except ValueError:
            raise UnknownIntentError(intent_name) from None

    def route(self, intent_name: str, slots: Mapping[str, Any] | None = None) -> Command:
        operation = self.resolve(intent_name)
        route = _ROUTES[operation]
        slots = slots or {}

        slot_value: Any = None
        if route.slot is not None:
            slot_value = _slot_value(slots, route.slot)
            if (slot_value is None or slot_value == "") and not route.optional:
                raise MissingSlotError(intent_name, route.slot)

        if operation is Operation.IDENTIFY_USER:
            return Identify(user_id=str(slot_value))
        if operation is Operation.SELECT_DEVICE:
            return SelectDevice(nickname=str(slot_value))
        assert route.field is not None  # noqa: S101
        if route.slot is None:
            return ReadField(field=route.field)
        return WriteThreshold(field=route.field, value=slot_value)
