"""Custom exception hierarchy for pyband."""

from __future__ import annotations

import enum


class RejectionReason(enum.StrEnum):
    """Why a command was refused without (or after) talking to the backend."""

    NO_IDENTITY = "no_identity"
    NO_DEVICE = "no_device"
    NO_SUCH_USER = "no_such_user"
    NO_SUCH_DEVICE = "no_such_device"
    INVALID_VALUE = "invalid_value"
    FIELD_UNAVAILABLE = "field_unavailable"


class BandError(Exception):
    """Base exception for all pyband errors."""


class BandConfigError(BandError):
    """Invalid or missing configuration."""


class BandRejectedError(BandError):
    """A command was refused; the conversation can recover by retrying."""

    reason: RejectionReason

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.reason.value)


class NoIdentityError(BandRejectedError):
    """No user has been identified in this conversation yet."""

    reason = RejectionReason.NO_IDENTITY


class NoDeviceError(BandRejectedError):
    """No device has been selected in this conversation yet."""

    reason = RejectionReason.NO_DEVICE


class NoSuchUserError(BandRejectedError):
    """The catalog has no devices for the requested user."""

    reason = RejectionReason.NO_SUCH_USER

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"no devices registered for user {user_id!r}")


class NoSuchDeviceError(BandRejectedError):
    """The nickname does not match any device owned by the identified user."""

    reason = RejectionReason.NO_SUCH_DEVICE

    def __init__(self, nickname: str) -> None:
        self.nickname = nickname
        super().__init__(f"no device named {nickname!r}")


class InvalidValueError(BandRejectedError):
    """A threshold value is not a well-formed integer."""

    reason = RejectionReason.INVALID_VALUE

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"not an integer: {value!r}")


class FieldUnavailableError(BandRejectedError):
    """Soft miss: the reported document was read but lacks the field.

    This is not a transport failure. The band may not have published yet,
    or may never publish the field.
    """

    reason = RejectionReason.FIELD_UNAVAILABLE

    def __init__(self, field_key: str, *, device_key: str = "") -> None:
        self.field_key = field_key
        self.device_key = device_key
        super().__init__(f"field {field_key!r} not present in reported state of {device_key or 'device'}")


class BandTransportError(BandError):
    """Catalog or shadow-store call failed (network, auth, unknown device, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        device_key: str = "",
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.device_key = device_key
        self.status_code = status_code
        super().__init__(message)


class BandRoutingError(BandError):
    """An inbound intent could not be turned into a command."""


class UnknownIntentError(BandRoutingError):
    """The intent name is not one the skill understands."""

    def __init__(self, intent_name: str) -> None:
        self.intent_name = intent_name
        super().__init__(f"unknown intent {intent_name!r}")


class MissingSlotError(BandRoutingError):
    """A required slot was absent or empty."""

    def __init__(self, intent_name: str, slot: str) -> None:
        self.intent_name = intent_name
        self.slot = slot
        super().__init__(f"intent {intent_name!r} requires slot {slot!r}")
