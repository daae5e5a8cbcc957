"""Per-conversation identity and device binding."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pyband.exceptions import NoSuchDeviceError, NoSuchUserError
from pyband.gate import CommandGate
from pyband.models.device import DeviceRef

if TYPE_CHECKING:
    from pyband.catalog import DeviceCatalog

_logger = logging.getLogger(__name__)


class SessionState:
    """Identity/selection binding for one conversation.

    ``bound_device`` is never set while ``identity`` is unset. Identifying
    as a different user clears the bound device; identifying again as the
    same user keeps it.

    Not safe for concurrent mutation: callers serialize commands per
    conversation (see :class:`SessionRegistry`).
    """

    __slots__ = ("conversation_id", "_identity", "_bound_device")

    def __init__(self, conversation_id: str = "") -> None:
        self.conversation_id = conversation_id
        self._identity: str | None = None
        self._bound_device: DeviceRef | None = None

    def __repr__(self) -> str:
        return (
            f"SessionState(conversation_id={self.conversation_id!r}, "
            f"identity={self._identity!r}, bound_device={self._bound_device!r})"
        )

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def bound_device(self) -> DeviceRef | None:
        return self._bound_device

    async def identify(self, user_id: str, catalog: DeviceCatalog) -> list[DeviceRef]:
        """Look *user_id* up and commit it as the conversation's identity.

        Raises :class:`NoSuchUserError` (session unchanged) when the user
        owns no devices. Returns the user's devices otherwise.
        """
        normalized = user_id.strip().lower()
        devices = await catalog.lookup(normalized)
        if not devices:
            raise NoSuchUserError(normalized)

        if self._identity != normalized:
            self._bound_device = None
        self._identity = normalized
        _logger.debug(
            "Conversation %s identified user=%s devices=%d",
            self.conversation_id,
            normalized,
            len(devices),
        )
        return devices

    async def select_device(self, nickname: str, catalog: DeviceCatalog) -> DeviceRef:
        """Bind the identity's device whose nickname matches, ignoring case.

        Raises :class:`NoIdentityError` before any lookup when nobody is
        identified, and :class:`NoSuchDeviceError` (binding unchanged) when
        no device matches.
        """
        CommandGate.check(self, requires_device=False)
        assert self._identity is not None  # noqa: S101

        devices = await catalog.lookup(self._identity)
        selected = next((device for device in devices if device.matches(nickname)), None)
        if selected is None:
            raise NoSuchDeviceError(nickname.strip())

        self._bound_device = selected
        _logger.debug(
            "Conversation %s selected device nickname=%s",
            self.conversation_id,
            selected.nickname,
        )
        return selected


class SessionRegistry:
    """Sessions keyed by conversation id, each with its own lock.

    Holding a conversation's lock serializes its commands while other
    conversations proceed independently.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, conversation_id: str) -> SessionState:
        """Return the conversation's session, creating an empty one if needed."""
        session = self._sessions.get(conversation_id)
        if session is None:
            session = SessionState(conversation_id)
            self._sessions[conversation_id] = session
        return session

    def lock(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    def discard(self, conversation_id: str) -> None:
        """Forget a finished conversation."""
        self._sessions.pop(conversation_id, None)
        self._locks.pop(conversation_id, None)
