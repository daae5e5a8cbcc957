"""Precondition checks run before every command."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyband.exceptions import NoDeviceError, NoIdentityError

if TYPE_CHECKING:
    from pyband.session import SessionState


class CommandGate:
    """Validates a session against a command's preconditions.

    The check is synchronous and side-effect free; it never touches the
    catalog or the shadow store.
    """

    @staticmethod
    def check(session: SessionState, requires_device: bool = False) -> None:
        """Raise the first unmet precondition.

        A missing identity is reported before a missing device.
        """
        if session.identity is None:
            raise NoIdentityError()
        if requires_device and session.bound_device is None:
            raise NoDeviceError()
