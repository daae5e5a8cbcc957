from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyband import messages
from pyband.catalog import StaticDeviceCatalog
from pyband.config import BandConfig
from pyband.exceptions import BandConfigError, BandTransportError
from pyband.models.commands import ReadField
from pyband.models.device import DeviceRef
from pyband.models.fields import BandField
from pyband.shadow.memory import InMemoryShadowStore
from pyband.shadow.rest import HttpShadowStore
from pyband.skill import BandSkill

CONV = "conv-1"


@dataclass
class RecordingStore:
    """Shadow store double that records every call and can be told to fail."""

    reported: dict[str, dict[str, Any]] = field(default_factory=dict)
    fail: bool = False
    read_delay: float = 0.0
    writes: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    reads: list[str] = field(default_factory=list)

    async def set_desired(self, device_key: str, patch: Mapping[str, Any]) -> None:
        self.writes.append((device_key, dict(patch)))
        if self.fail:
            raise BandTransportError("service unavailable", status_code=503)

    async def get_reported(self, device_key: str) -> dict[str, Any]:
        self.reads.append(device_key)
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        return dict(self.reported.get(device_key, {}))


async def _no_wait(_seconds: float) -> None:
    return None


def _catalog() -> StaticDeviceCatalog:
    catalog = StaticDeviceCatalog()
    catalog.add("ana", "band1", "001")
    catalog.add("ana", "band2", "002")
    return catalog


def _skill(store: Any, **config: Any) -> BandSkill:
    return BandSkill(BandConfig(**config), catalog=_catalog(), store=store, sleep=_no_wait)


async def _bind(skill: BandSkill, nickname: str = "band1") -> None:
    await skill.handle_intent(CONV, "identify-user", {"username": "ana"})
    await skill.handle_intent(CONV, "select-device", {"thingNick": nickname})


def test_launch_welcomes_and_creates_session() -> None:
    skill = _skill(RecordingStore())
    reply = skill.launch(CONV)

    assert reply.speech == messages.WELCOME
    assert reply.reprompt == reply.speech
    assert CONV in skill.sessions


@pytest.mark.asyncio
async def test_scenario_a_identify_select_read_heart_rate() -> None:
    store = InMemoryShadowStore()
    store.publish_reported("smartband_001", {"heart_rate": 72})
    skill = _skill(store)

    skill.launch(CONV)
    greeting = await skill.handle_intent(CONV, "identify-user", {"username": "Ana"})
    assert "band1" in greeting.speech and "band2" in greeting.speech

    selected = await skill.handle_intent(CONV, "select-device", {"thingNick": "band1"})
    assert selected.speech == messages.device_selected("band1")

    reply = await skill.handle_intent(CONV, "read-heart-rate")

    assert "72" in reply.speech
    assert reply.speech == "El pulso es: 72."
    assert store.desired("smartband_001") == {"data_requested": 1}


@pytest.mark.asyncio
async def test_scenario_b_read_before_identify_makes_no_store_calls() -> None:
    store = RecordingStore(reported={"smartband_001": {"heart_rate": 72}})
    skill = _skill(store)

    reply = await skill.handle_intent(CONV, "read-heart-rate")

    assert reply.speech == messages.ASK_IDENTITY
    assert store.writes == []
    assert store.reads == []


@pytest.mark.asyncio
async def test_read_after_identify_without_device_asks_for_device() -> None:
    store = RecordingStore()
    skill = _skill(store)
    await skill.handle_intent(CONV, "identify-user", {"username": "ana"})

    reply = await skill.handle_intent(CONV, "read-steps")

    assert reply.speech == messages.ASK_DEVICE
    assert store.writes == []


@pytest.mark.asyncio
async def test_scenario_c_unknown_device_keeps_previous_binding() -> None:
    skill = _skill(RecordingStore())
    await _bind(skill, "band2")

    reply = await skill.handle_intent(CONV, "select-device", {"thingNick": "bandX"})

    assert reply.speech == messages.no_such_device("bandX")
    assert skill.sessions.get(CONV).bound_device == DeviceRef(nickname="band2", physical_id="002")


@pytest.mark.asyncio
async def test_scenario_c_unknown_device_without_previous_binding() -> None:
    skill = _skill(RecordingStore())
    await skill.handle_intent(CONV, "identify-user", {"username": "ana"})

    reply = await skill.handle_intent(CONV, "select-device", {"thingNick": "bandX"})

    assert reply.speech == messages.no_such_device("bandX")
    assert skill.sessions.get(CONV).bound_device is None


@pytest.mark.asyncio
async def test_scenario_d_invalid_threshold_records_no_writes() -> None:
    store = RecordingStore()
    skill = _skill(store)
    await _bind(skill)

    reply = await skill.handle_intent(CONV, "set-max-heart-rate-threshold", {"maxPulse": "abc"})

    assert reply.speech == messages.INVALID_VALUE
    assert store.writes == []


@pytest.mark.asyncio
async def test_threshold_write_confirms_without_reading() -> None:
    store = RecordingStore()
    skill = _skill(store)
    await _bind(skill)

    reply = await skill.handle_intent(CONV, "ChangeMinHeartbeatIntent", {"minPulse": {"value": "45"}})

    assert reply.speech == messages.threshold_set(BandField.MIN_PULSE_ALERT, 45)
    assert store.writes == [("smartband_001", {"min_pulse_alert": 45})]
    assert store.reads == []


class _AckResponse:
    status = 200

    def __init__(self, raw: bytes) -> None:
        self._raw = raw

    async def read(self) -> bytes:
        return self._raw

    async def __aenter__(self) -> _AckResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _AckHttp:
    def __init__(self, raw: bytes) -> None:
        self.raw = raw
        self.calls = 0

    def request(self, method: str, url: str, **_kwargs: Any) -> _AckResponse:
        self.calls += 1
        return _AckResponse(self.raw)


@pytest.mark.asyncio
async def test_accepted_threshold_write_confirms_regardless_of_ack_body(caplog: pytest.LogCaptureFixture) -> None:
    http = _AckHttp(b"\xff\xfe")
    skill = _skill(HttpShadowStore(http, "https://shadow.example.com"))  # type: ignore[arg-type]
    await _bind(skill)

    with caplog.at_level(logging.ERROR, logger="pyband.skill"):
        reply = await skill.handle_intent(CONV, "set-max-heart-rate-threshold", {"maxPulse": "150"})

    assert reply.speech == messages.threshold_set(BandField.MAX_PULSE_ALERT, 150)
    assert http.calls == 1
    assert "Unexpected failure" not in caplog.text


@pytest.mark.asyncio
async def test_undecodable_shadow_read_is_logged_transport_failure(caplog: pytest.LogCaptureFixture) -> None:
    skill = _skill(HttpShadowStore(_AckHttp(b"\xff\xfe"), "https://shadow.example.com"))  # type: ignore[arg-type]
    await _bind(skill)

    with caplog.at_level(logging.WARNING, logger="pyband.skill"):
        reply = await skill.handle_intent(CONV, "read-heart-rate")

    assert reply.speech == messages.TRANSIENT_FAILURE
    assert "operation=shadow.get_reported" in caplog.text
    assert "device_key=smartband_001" in caplog.text
    assert "Unexpected failure" not in caplog.text


@pytest.mark.asyncio
@pytest.mark.parametrize("slots", [{}, {"maxPulse": ""}, {"maxPulse": {"value": None}}])
async def test_empty_threshold_slot_is_invalid_value(slots: dict[str, Any]) -> None:
    store = RecordingStore()
    skill = _skill(store)
    await _bind(skill)

    reply = await skill.handle_intent(CONV, "set-max-heart-rate-threshold", slots)

    assert reply.speech == messages.INVALID_VALUE
    assert store.writes == []


@pytest.mark.asyncio
async def test_empty_threshold_slot_before_identify_asks_for_identity() -> None:
    skill = _skill(RecordingStore())

    reply = await skill.handle_intent(CONV, "set-max-heart-rate-threshold", {"maxPulse": ""})

    assert reply.speech == messages.ASK_IDENTITY


@pytest.mark.asyncio
async def test_unknown_user_is_reported_and_session_stays_empty() -> None:
    skill = _skill(RecordingStore())

    reply = await skill.handle_intent(CONV, "identify-user", {"username": "nobody"})

    assert reply.speech == messages.NO_SUCH_USER
    assert skill.sessions.get(CONV).identity is None


@pytest.mark.asyncio
async def test_soft_miss_asks_to_try_again() -> None:
    store = RecordingStore(reported={"smartband_001": {"steps": 10}})
    skill = _skill(store)
    await _bind(skill)

    reply = await skill.handle_intent(CONV, "read-spo2")

    assert reply.speech == messages.field_unavailable("SpO2")
    assert len(store.writes) == 1
    assert len(store.reads) == 1


@pytest.mark.asyncio
async def test_transport_failure_is_logged_and_answered(caplog: pytest.LogCaptureFixture) -> None:
    store = RecordingStore(fail=True)
    skill = _skill(store)
    await _bind(skill)

    with caplog.at_level(logging.WARNING, logger="pyband.skill"):
        read_reply = await skill.handle_intent(CONV, "read-heart-rate")
        write_reply = await skill.handle_intent(CONV, "set-max-heart-rate-threshold", {"maxPulse": "150"})

    assert read_reply.speech == messages.TRANSIENT_FAILURE
    assert write_reply.speech == messages.threshold_failure(BandField.MAX_PULSE_ALERT)
    assert "device_key=smartband_001" in caplog.text
    assert "operation=fetch_field.request" in caplog.text
    assert "operation=set_threshold" in caplog.text


@pytest.mark.asyncio
async def test_read_exceeding_ceiling_is_transport_failure() -> None:
    store = RecordingStore(reported={"smartband_001": {"heart_rate": 72}}, read_delay=1.0)
    skill = _skill(store, quiescence_window=0.0, operation_margin=0.05)
    await _bind(skill)

    reply = await skill.handle_intent(CONV, "read-heart-rate")

    assert reply.speech == messages.TRANSIENT_FAILURE


@pytest.mark.asyncio
async def test_unknown_intent_falls_back() -> None:
    skill = _skill(RecordingStore())
    reply = await skill.handle_intent(CONV, "OrderPizzaIntent")
    assert reply.speech == messages.FALLBACK


@pytest.mark.asyncio
async def test_unexpected_collaborator_error_never_escapes() -> None:
    class _BrokenCatalog:
        async def lookup(self, user_id: str) -> list[DeviceRef]:
            raise RuntimeError("boom")

    skill = BandSkill(BandConfig(), catalog=_BrokenCatalog(), store=RecordingStore(), sleep=_no_wait)
    reply = await skill.handle_intent(CONV, "identify-user", {"username": "ana"})
    assert reply.speech == messages.TRANSIENT_FAILURE


@pytest.mark.asyncio
async def test_conversations_are_isolated() -> None:
    store = InMemoryShadowStore()
    store.publish_reported("smartband_001", {"heart_rate": 72})
    skill = _skill(store)
    await _bind(skill)

    other = await skill.handle_intent("conv-2", "read-heart-rate")

    assert other.speech == messages.ASK_IDENTITY
    assert skill.sessions.get(CONV).bound_device is not None


@pytest.mark.asyncio
async def test_waits_do_not_block_other_conversations() -> None:
    release = asyncio.Event()

    async def _held_wait(_seconds: float) -> None:
        await release.wait()

    store = InMemoryShadowStore()
    store.publish_reported("smartband_001", {"heart_rate": 72})
    skill = BandSkill(BandConfig(), catalog=_catalog(), store=store, sleep=_held_wait)
    await _bind(skill)

    pending = asyncio.create_task(skill.execute(CONV, ReadField(field=BandField.HEART_RATE)))
    await asyncio.sleep(0)

    other = await asyncio.wait_for(skill.handle_intent("conv-2", "identify-user", {"username": "ana"}), 1.0)
    assert "band1" in other.speech

    release.set()
    assert (await pending).speech == "El pulso es: 72."


@pytest.mark.asyncio
async def test_end_forgets_conversation() -> None:
    skill = _skill(RecordingStore())
    await _bind(skill)

    skill.end(CONV)

    reply = await skill.handle_intent(CONV, "read-heart-rate")
    assert reply.speech == messages.ASK_IDENTITY


@pytest.mark.asyncio
async def test_context_manager_builds_memory_backend() -> None:
    async with BandSkill(BandConfig(shadow_backend="memory"), catalog=_catalog(), sleep=_no_wait) as skill:
        await _bind(skill)
        reply = await skill.handle_intent(CONV, "read-heart-rate")
    assert reply.speech == messages.field_unavailable("heart_rate")


@pytest.mark.asyncio
async def test_context_manager_requires_catalog_url() -> None:
    with pytest.raises(BandConfigError):
        async with BandSkill(BandConfig(shadow_backend="memory")):
            pass


class _CatalogHttp:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = rows
        self.headers: list[Mapping[str, str]] = []

    def get(self, url: str, *, headers: Mapping[str, str], **_kwargs: Any) -> _AckResponse:
        self.headers.append(headers)
        return _AckResponse(json.dumps(self.rows).encode("utf-8"))


@pytest.mark.asyncio
async def test_context_manager_builds_http_catalog_with_token() -> None:
    http = _CatalogHttp([{"user": "ana", "thing_nick": "band1", "serial_number": "001"}])
    config = BandConfig(
        shadow_backend="memory",
        catalog_url="https://catalog.example.com/bands",
        catalog_auth_token="cat-token",
    )

    async with BandSkill(config, http_session=http, sleep=_no_wait) as skill:  # type: ignore[arg-type]
        reply = await skill.handle_intent(CONV, "identify-user", {"username": "ana"})

    assert "band1" in reply.speech
    assert http.headers[0]["authorization"] == "Bearer cat-token"
