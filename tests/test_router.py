from __future__ import annotations

import pytest

from pyband.exceptions import MissingSlotError, UnknownIntentError
from pyband.models.commands import Identify, ReadField, SelectDevice, WriteThreshold
from pyband.models.fields import BandField
from pyband.router import INTENT_OPERATIONS, IntentRouter, Operation


@pytest.mark.parametrize(
    "name, field",
    [
        ("read-heart-rate", BandField.HEART_RATE),
        ("read-activity", BandField.ACTIVITY_TYPE),
        ("read-temperature", BandField.AMBIENT_TEMPERATURE),
        ("read-spo2", BandField.SPO2),
        ("read-steps", BandField.STEPS),
        ("CheckHeartbeatIntent", BandField.HEART_RATE),
        ("CheckSpOIntent", BandField.SPO2),
    ],
)
def test_read_operations_map_to_read_field(name: str, field: BandField) -> None:
    command = IntentRouter().route(name)
    assert command == ReadField(field=field)
    assert command.requires_device


def test_identify_and_select_use_their_slots() -> None:
    router = IntentRouter()

    assert router.route("identify-user", {"username": "Ana"}) == Identify(user_id="Ana")
    assert router.route("CaptureUsernameIntent", {"username": {"value": " ana "}}) == Identify(user_id="ana")
    assert router.route("SelectThingIntent", {"thingNick": {"value": "Band1"}}) == SelectDevice(nickname="Band1")
    assert not Identify.requires_device


def test_threshold_operations_keep_raw_value() -> None:
    router = IntentRouter()

    command = router.route("set-max-heart-rate-threshold", {"maxPulse": "abc"})
    assert command == WriteThreshold(field=BandField.MAX_PULSE_ALERT, value="abc")

    command = router.route("ChangeMinHeartbeatIntent", {"minPulse": {"value": "45"}})
    assert command == WriteThreshold(field=BandField.MIN_PULSE_ALERT, value="45")


@pytest.mark.parametrize("slots", [None, {"maxPulse": ""}, {"maxPulse": {"value": None}}, {"maxPulse": "  "}])
def test_empty_threshold_slot_is_routed_for_validation(slots: dict[str, object] | None) -> None:
    command = IntentRouter().route("ChangeMaxHeartbeatIntent", slots)

    assert isinstance(command, WriteThreshold)
    assert command.field is BandField.MAX_PULSE_ALERT
    assert command.value in (None, "")


def test_every_front_end_intent_resolves_to_an_operation() -> None:
    router = IntentRouter()
    assert set(INTENT_OPERATIONS.values()) == set(Operation)
    for name, operation in INTENT_OPERATIONS.items():
        assert router.resolve(name) is operation


def test_unknown_intent() -> None:
    with pytest.raises(UnknownIntentError) as exc_info:
        IntentRouter().route("AMAZON.FooIntent")
    assert exc_info.value.intent_name == "AMAZON.FooIntent"


@pytest.mark.parametrize("slots", [None, {}, {"username": ""}, {"username": {"value": None}}])
def test_missing_slot(slots: dict[str, object] | None) -> None:
    with pytest.raises(MissingSlotError) as exc_info:
        IntentRouter().route("identify-user", slots)
    assert exc_info.value.slot == "username"
