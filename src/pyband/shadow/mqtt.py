"""Shadow store over MQTT.

Uses the reserved shadow topics of the broker:

* publish ``$aws/things/{key}/shadow/update`` with
  ``{"state": {"desired": ...}, "clientToken": ...}``
* publish ``$aws/things/{key}/shadow/get`` with ``{"clientToken": ...}``
* answers arrive on ``.../{update|get}/{accepted|rejected}`` and are
  correlated by ``clientToken``.

paho-mqtt runs its network loop on its own thread; messages are handed
to the asyncio loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from pyband._redact import redact_for_log
from pyband.exceptions import BandTransportError
from pyband.models.shadow import ShadowDocument, desired_update

_TOPIC_ROOT = "$aws/things"
_RESPONSE_FILTERS: tuple[str, ...] = (
    f"{_TOPIC_ROOT}/+/shadow/update/accepted",
    f"{_TOPIC_ROOT}/+/shadow/update/rejected",
    f"{_TOPIC_ROOT}/+/shadow/get/accepted",
    f"{_TOPIC_ROOT}/+/shadow/get/rejected",
)


def shadow_topic(device_key: str, action: str) -> str:
    return f"{_TOPIC_ROOT}/{device_key}/shadow/{action}"


def parse_response_topic(topic: str) -> tuple[str, str, str] | None:
    """Split ``$aws/things/{key}/shadow/{action}/{status}``.

    Returns ``(device_key, action, status)`` or ``None`` for other topics.
    """
    parts = topic.split("/")
    if len(parts) != 6 or parts[0] != "$aws" or parts[1] != "things" or parts[3] != "shadow":
        return None
    _, _, device_key, _, action, status = parts
    if status not in ("accepted", "rejected"):
        return None
    return device_key, action, status


@dataclass(frozen=True)
class _Response:
    device_key: str
    action: str
    status: str
    payload: dict[str, Any]


class MqttShadowStore:
    """Threaded paho-mqtt client answering shadow requests on an asyncio loop.

    Usage::

        store = MqttShadowStore(host="broker.example.com")
        await store.start()
        try:
            await store.set_desired("smartband_42", {"data_requested": 1})
        finally:
            store.stop()
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 8883,
        client_id: str = "pyband",
        keepalive: int = 60,
        tls: bool = True,
        username: str | None = None,
        password: str | None = None,
        response_timeout: float = 5.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._client_id = client_id
        self._keepalive = keepalive
        self._tls = tls
        self._username = username
        self._password = password
        self._response_timeout = response_timeout
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connected: asyncio.Event | None = None
        self._pending: dict[str, asyncio.Future[_Response]] = {}
        self._running = False

    async def start(self) -> None:
        """Connect, subscribe to shadow responses and wait for the CONNACK."""
        self.stop()
        self._loop = asyncio.get_running_loop()
        self._connected = asyncio.Event()
        self._logger.debug(
            "MQTT shadow store start host=%s port=%s client_id=%s",
            self._host,
            self._port,
            self._client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        if self._username:
            client.username_pw_set(self._username, self._password)
        if self._tls:
            client.tls_set()

        loop = self._loop
        connected = self._connected

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            for topic_filter in _RESPONSE_FILTERS:
                c.subscribe(topic_filter, qos=1)
            loop.call_soon_threadsafe(connected.set)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            loop.call_soon_threadsafe(self._handle_message, msg.topic, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            await asyncio.to_thread(client.connect, self._host, self._port, self._keepalive)
        except OSError as exc:
            raise BandTransportError(f"MQTT connect to {self._host}:{self._port} failed: {exc}") from exc
        client.loop_start()
        self._client = client
        self._running = True

        try:
            await asyncio.wait_for(connected.wait(), self._response_timeout)
        except TimeoutError as exc:
            self.stop()
            raise BandTransportError(f"MQTT connect to {self._host}:{self._port} timed out") from exc

    def stop(self) -> None:
        """Disconnect and fail any request still waiting for an answer."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        for fut in self._pending.values():
            if not fut.done():
                fut.set_exception(BandTransportError("MQTT shadow store stopped"))
        self._pending.clear()

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _publish(self, topic: str, body: Mapping[str, Any]) -> None:
        client = self._client
        if client is None or not self._running:
            raise BandTransportError("MQTT shadow store is not running; call start() first")
        info = client.publish(topic, json.dumps(body, separators=(",", ":")), qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise BandTransportError(f"MQTT publish to {topic} failed rc={info.rc}")

    def _handle_message(self, topic: str, payload: bytes) -> None:
        """Resolve the pending request a shadow response belongs to (loop thread)."""
        parsed_topic = parse_response_topic(topic)
        if parsed_topic is None:
            return
        try:
            body = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            self._logger.debug("MQTT payload parse failure topic=%s", topic, exc_info=True)
            return
        if not isinstance(body, dict):
            return

        self._logger.debug("MQTT shadow response topic=%s payload=%s", topic, redact_for_log(body))
        token = body.get("clientToken")
        fut = self._pending.get(token) if isinstance(token, str) else None
        if fut is None or fut.done():
            return
        device_key, action, status = parsed_topic
        fut.set_result(_Response(device_key=device_key, action=action, status=status, payload=body))

    async def _request(
        self,
        device_key: str,
        action: str,
        body: Mapping[str, Any],
        *,
        operation: str,
    ) -> dict[str, Any]:
        token = secrets.token_hex(16)
        fut: asyncio.Future[_Response] = asyncio.get_running_loop().create_future()
        self._pending[token] = fut
        try:
            try:
                self._publish(shadow_topic(device_key, action), {**body, "clientToken": token})
            except BandTransportError as exc:
                exc.operation = operation
                exc.device_key = device_key
                raise
            try:
                response = await asyncio.wait_for(fut, self._response_timeout)
            except TimeoutError as exc:
                raise BandTransportError(
                    f"No shadow {action} response for {device_key}",
                    operation=operation,
                    device_key=device_key,
                ) from exc
        finally:
            self._pending.pop(token, None)

        if response.status == "rejected":
            code = response.payload.get("code")
            raise BandTransportError(
                f"Shadow {action} rejected for {device_key}: code={code} message={response.payload.get('message', '')}",
                operation=operation,
                device_key=device_key,
                status_code=code if isinstance(code, int) else None,
            )
        return response.payload

    async def set_desired(self, device_key: str, patch: Mapping[str, Any]) -> None:
        await self._request(device_key, "update", desired_update(patch), operation="shadow.set_desired")

    async def get_reported(self, device_key: str) -> dict[str, Any]:
        payload = await self._request(device_key, "get", {}, operation="shadow.get_reported")
        try:
            document = ShadowDocument.model_validate(payload)
        except ValidationError as exc:
            raise BandTransportError(
                "Shadow document has an unexpected shape",
                operation="shadow.get_reported",
                device_key=device_key,
            ) from exc
        return dict(document.state.reported)
