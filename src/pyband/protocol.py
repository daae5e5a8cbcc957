"""Request/confirm protocol against the device shadow.

The shadow offers no acknowledgement from the band. A read therefore
writes a "publish a fresh report" flag into the desired document, waits a
fixed quiescence window, and reads whatever the reported document holds
at that point::

    Idle -> PatchSent -> Waiting -> ReportedRead -> Resolved | SoftMiss
               \\-> Failed (store write or read error at any step)

There is exactly one request, one wait and one read per call. The wait is
blind: it neither ends early when the band answers quickly nor extends
when it is slow, so "not reported yet" and "never reported" look the
same (both surface as :class:`FieldUnavailableError`). Retrying is up to
the caller.

Threshold writes are asymmetric: one desired write, no wait and no
read-back. Success only means the store accepted the write.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from pyband._constants import DATA_REQUEST_FIELD, DEFAULT_QUIESCENCE_WINDOW, SHADOW_KEY_PREFIX
from pyband.exceptions import BandTransportError, FieldUnavailableError, InvalidValueError
from pyband.models.commands import ThresholdRequest
from pyband.models.fields import THRESHOLD_FIELDS, BandField
from pyband.models.shadow import ReportedSnapshot

if TYPE_CHECKING:
    from pyband.config import BandConfig
    from pyband.models.device import DeviceRef
    from pyband.shadow.base import ShadowStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def shadow_key(physical_id: str, *, prefix: str = SHADOW_KEY_PREFIX) -> str:
    """Shadow key the band with serial *physical_id* listens on."""
    return f"{prefix}{physical_id}"


class ShadowRequestProtocol:
    """Reads and threshold writes for one shadow store."""

    def __init__(
        self,
        store: ShadowStore,
        *,
        quiescence_window: float = DEFAULT_QUIESCENCE_WINDOW,
        key_prefix: str = SHADOW_KEY_PREFIX,
        data_request_field: str = DATA_REQUEST_FIELD,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._quiescence_window = quiescence_window
        self._key_prefix = key_prefix
        self._data_request_field = data_request_field
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        store: ShadowStore,
        config: BandConfig,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> ShadowRequestProtocol:
        return cls(
            store,
            quiescence_window=config.quiescence_window,
            key_prefix=config.shadow_key_prefix,
            data_request_field=config.data_request_field,
            sleep=sleep,
        )

    @property
    def quiescence_window(self) -> float:
        return self._quiescence_window

    def device_key(self, device: DeviceRef) -> str:
        return shadow_key(device.physical_id, prefix=self._key_prefix)

    async def _store_call(self, call: Awaitable[T], *, operation: str, device_key: str) -> T:
        try:
            return await call
        except BandTransportError as exc:
            exc.operation = exc.operation or operation
            exc.device_key = exc.device_key or device_key
            _logger.debug("%s failed for %s: %s", operation, device_key, exc)
            raise

    async def fetch_field(self, device: DeviceRef, field: BandField | str) -> Any:
        """Request a fresh report and return *field* from reported state.

        Raises :class:`FieldUnavailableError` when the read succeeds but the
        field is absent or null, and :class:`BandTransportError` when a
        store call fails.
        """
        key = self.device_key(device)
        field_key = str(field)

        await self._store_call(
            self._store.set_desired(key, {self._data_request_field: 1}),
            operation="fetch_field.request",
            device_key=key,
        )
        _logger.debug("Report requested key=%s field=%s; waiting %.1fs", key, field_key, self._quiescence_window)

        await self._sleep(self._quiescence_window)

        reported = ReportedSnapshot(
            await self._store_call(
                self._store.get_reported(key),
                operation="fetch_field.read",
                device_key=key,
            )
        )
        value = reported.get(field_key)
        if value is None:
            _logger.debug("Soft miss key=%s field=%s reported_keys=%s", key, field_key, sorted(reported))
            raise FieldUnavailableError(field_key, device_key=key)
        _logger.debug("Resolved key=%s field=%s", key, field_key)
        return value

    async def set_threshold(self, device: DeviceRef, field: BandField, value: Any) -> int:
        """Write an integer alert threshold into desired state.

        *value* is validated before any store call; malformed input raises
        :class:`InvalidValueError`. Returns the integer written.
        """
        if field not in THRESHOLD_FIELDS:
            raise ValueError(f"{field} is not a threshold field")
        try:
            request = ThresholdRequest(field=field, value=value)
        except ValidationError as exc:
            raise InvalidValueError(value) from exc

        key = self.device_key(device)
        await self._store_call(
            self._store.set_desired(key, {str(request.field): request.value}),
            operation="set_threshold",
            device_key=key,
        )
        _logger.debug("Threshold written key=%s field=%s", key, request.field)
        return request.value
