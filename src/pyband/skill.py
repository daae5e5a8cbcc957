"""High-level async skill: routes intents, gates them and answers in speech."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import aiohttp

from pyband import messages
from pyband.catalog import DeviceCatalog, HttpDeviceCatalog
from pyband.config import BandConfig
from pyband.exceptions import (
    BandConfigError,
    BandError,
    BandRoutingError,
    BandTransportError,
    FieldUnavailableError,
    InvalidValueError,
    NoDeviceError,
    NoIdentityError,
    NoSuchDeviceError,
    NoSuchUserError,
)
from pyband.gate import CommandGate
from pyband.models.commands import Command, Identify, ReadField, SelectDevice, WriteThreshold
from pyband.models.fields import READ_FIELDS
from pyband.models.response import SkillResponse
from pyband.protocol import ShadowRequestProtocol
from pyband.router import IntentRouter
from pyband.session import SessionRegistry, SessionState
from pyband.shadow.base import ShadowStore
from pyband.shadow.memory import InMemoryShadowStore
from pyband.shadow.mqtt import MqttShadowStore
from pyband.shadow.rest import HttpShadowStore

_logger = logging.getLogger(__name__)


class BandSkill:
    """Conversational front end over the band catalog and shadow store.

    Usage::

        async with BandSkill(BandConfig.from_env()) as skill:
            skill.launch("conv-1")
            reply = await skill.handle_intent("conv-1", "CaptureUsernameIntent", {"username": "ana"})

    Collaborators passed in explicitly are used as-is and never closed;
    missing ones are built from the config on ``__aenter__``.
    """

    def __init__(
        self,
        config: BandConfig | None = None,
        *,
        catalog: DeviceCatalog | None = None,
        store: ShadowStore | None = None,
        http_session: aiohttp.ClientSession | None = None,
        router: IntentRouter | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._config = config or BandConfig()
        self._catalog = catalog
        self._store = store
        self._external_session = http_session is not None
        self._http_session = http_session
        self._router = router or IntentRouter()
        self._sleep = sleep
        self._owned_mqtt: MqttShadowStore | None = None
        self._protocol: ShadowRequestProtocol | None = None
        self.sessions = SessionRegistry()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BandSkill:
        if self._catalog is None:
            if not self._config.catalog_url:
                raise BandConfigError("catalog_url is required when no catalog is provided")
            self._catalog = HttpDeviceCatalog(
                self._ensure_http_session(),
                self._config.catalog_url,
                auth_token=self._config.catalog_auth_token,
                timeout=self._config.http_timeout,
            )
        if self._store is None:
            self._store = await self._build_store()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._owned_mqtt is not None:
            self._owned_mqtt.stop()
            self._owned_mqtt = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _ensure_http_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return self._http_session

    async def _build_store(self) -> ShadowStore:
        config = self._config
        if config.shadow_backend == "memory":
            return InMemoryShadowStore()
        if config.shadow_backend == "mqtt":
            if not config.mqtt_host:
                raise BandConfigError("mqtt_host is required for the mqtt shadow backend")
            store = MqttShadowStore(
                host=config.mqtt_host,
                port=config.mqtt_port,
                client_id=config.mqtt_client_id,
                keepalive=config.mqtt_keepalive,
                tls=config.mqtt_tls,
                response_timeout=config.http_timeout,
                logger=_logger,
            )
            await store.start()
            self._owned_mqtt = store
            return store
        if not config.shadow_endpoint:
            raise BandConfigError("shadow_endpoint is required for the http shadow backend")
        return HttpShadowStore(
            self._ensure_http_session(),
            config.shadow_endpoint,
            auth_token=config.shadow_auth_token,
            timeout=config.http_timeout,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_catalog(self) -> DeviceCatalog:
        if self._catalog is None:
            raise BandError("Skill not initialized. Use 'async with BandSkill(...) as skill:'")
        return self._catalog

    def _require_protocol(self) -> ShadowRequestProtocol:
        if self._protocol is None:
            if self._store is None:
                raise BandError("Skill not initialized. Use 'async with BandSkill(...) as skill:'")
            self._protocol = ShadowRequestProtocol.from_config(self._store, self._config, sleep=self._sleep)
        return self._protocol

    # ------------------------------------------------------------------
    # Conversation lifecycle
    # ------------------------------------------------------------------

    def launch(self, conversation_id: str) -> SkillResponse:
        """Start a conversation and ask for the username."""
        self.sessions.get(conversation_id)
        return SkillResponse(speech=messages.WELCOME)

    def end(self, conversation_id: str) -> None:
        """Forget the conversation's identity and device binding."""
        self.sessions.discard(conversation_id)

    async def handle_intent(
        self,
        conversation_id: str,
        intent_name: str,
        slots: Mapping[str, Any] | None = None,
    ) -> SkillResponse:
        """Route an intent and execute it. Always returns a response."""
        try:
            command = self._router.route(intent_name, slots)
        except BandRoutingError as exc:
            _logger.info("Unroutable intent in %s: %s", conversation_id, exc)
            return SkillResponse(speech=messages.FALLBACK)
        return await self.execute(conversation_id, command)

    async def execute(self, conversation_id: str, command: Command) -> SkillResponse:
        """Run one command for a conversation. Always returns a response.

        Commands for the same conversation run one at a time.
        """
        async with self.sessions.lock(conversation_id):
            session = self.sessions.get(conversation_id)
            try:
                return await self._run(session, command)
            except BandError as exc:
                return self._render_error(exc, command)
            except Exception:
                _logger.exception("Unexpected failure handling %s in %s", type(command).__name__, conversation_id)
                return SkillResponse(speech=messages.TRANSIENT_FAILURE)

    async def _run(self, session: SessionState, command: Command) -> SkillResponse:
        if isinstance(command, Identify):
            devices = await session.identify(command.user_id, self._require_catalog())
            assert session.identity is not None  # noqa: S101
            return SkillResponse(speech=messages.greeting(session.identity, devices))

        if isinstance(command, SelectDevice):
            device = await session.select_device(command.nickname, self._require_catalog())
            return SkillResponse(speech=messages.device_selected(device.nickname))

        CommandGate.check(session, requires_device=command.requires_device)
        device = session.bound_device
        assert device is not None  # noqa: S101
        protocol = self._require_protocol()

        if isinstance(command, ReadField):
            try:
                value = await asyncio.wait_for(
                    protocol.fetch_field(device, command.field),
                    self._config.operation_ceiling,
                )
            except TimeoutError as exc:
                raise BandTransportError(
                    f"Read of {command.field} exceeded {self._config.operation_ceiling:.1f}s",
                    operation="fetch_field",
                    device_key=protocol.device_key(device),
                ) from exc
            return SkillResponse(speech=messages.field_value(READ_FIELDS[command.field].success_phrase, value))

        if isinstance(command, WriteThreshold):
            written = await protocol.set_threshold(device, command.field, command.value)
            return SkillResponse(speech=messages.threshold_set(command.field, written))

        raise TypeError(f"Unsupported command: {command!r}")

    def _render_error(self, exc: BandError, command: Command) -> SkillResponse:
        if isinstance(exc, NoIdentityError):
            return SkillResponse(speech=messages.ASK_IDENTITY)
        if isinstance(exc, NoDeviceError):
            return SkillResponse(speech=messages.ASK_DEVICE)
        if isinstance(exc, NoSuchUserError):
            return SkillResponse(speech=messages.NO_SUCH_USER)
        if isinstance(exc, NoSuchDeviceError):
            return SkillResponse(speech=messages.no_such_device(exc.nickname))
        if isinstance(exc, InvalidValueError):
            return SkillResponse(speech=messages.INVALID_VALUE)
        if isinstance(exc, FieldUnavailableError):
            return SkillResponse(speech=messages.field_unavailable(exc.field_key))

        if isinstance(exc, BandTransportError):
            _logger.warning(
                "%s failed operation=%s device_key=%s status=%s: %s",
                type(command).__name__,
                exc.operation or "-",
                exc.device_key or "-",
                exc.status_code,
                exc,
            )
        else:
            _logger.warning("%s failed: %s", type(command).__name__, exc)
        if isinstance(command, WriteThreshold):
            return SkillResponse(speech=messages.threshold_failure(command.field))
        return SkillResponse(speech=messages.TRANSIENT_FAILURE)
