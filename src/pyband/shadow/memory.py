"""In-process shadow store for local runs and simulated bands."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pyband.exceptions import BandTransportError

_logger = logging.getLogger(__name__)


@dataclass
class _Shadow:
    desired: dict[str, Any] = field(default_factory=dict)
    reported: dict[str, Any] = field(default_factory=dict)
    version: int = 0


class InMemoryShadowStore:
    """Merge-by-key shadow documents kept in a dict.

    ``on_desired`` is called after every accepted desired write with the
    device key and the patch; a simulated band can use it to publish into
    the reported document. Every call is appended to ``calls`` as
    ``(operation, device_key)``.
    """

    def __init__(self, *, on_desired: Callable[[str, dict[str, Any]], None] | None = None) -> None:
        self._shadows: dict[str, _Shadow] = {}
        self._on_desired = on_desired
        self.calls: list[tuple[str, str]] = []

    def _shadow(self, device_key: str) -> _Shadow:
        shadow = self._shadows.get(device_key)
        if shadow is None:
            shadow = _Shadow()
            self._shadows[device_key] = shadow
        return shadow

    def publish_reported(self, device_key: str, patch: Mapping[str, Any]) -> None:
        """Merge *patch* into the reported document, as the band would."""
        shadow = self._shadow(device_key)
        for key, value in patch.items():
            if value is None:
                shadow.reported.pop(key, None)
            else:
                shadow.reported[key] = copy.deepcopy(value)
        shadow.version += 1

    def desired(self, device_key: str) -> dict[str, Any]:
        shadow = self._shadows.get(device_key)
        return copy.deepcopy(shadow.desired) if shadow is not None else {}

    async def set_desired(self, device_key: str, patch: Mapping[str, Any]) -> None:
        self.calls.append(("set_desired", device_key))
        shadow = self._shadow(device_key)
        for key, value in patch.items():
            if value is None:
                shadow.desired.pop(key, None)
            else:
                shadow.desired[key] = copy.deepcopy(value)
        shadow.version += 1
        _logger.debug("Desired update key=%s version=%s", device_key, shadow.version)
        if self._on_desired is not None:
            self._on_desired(device_key, dict(patch))

    async def get_reported(self, device_key: str) -> dict[str, Any]:
        self.calls.append(("get_reported", device_key))
        shadow = self._shadows.get(device_key)
        if shadow is None:
            raise BandTransportError(
                f"No shadow for {device_key}",
                operation="shadow.get_reported",
                device_key=device_key,
                status_code=404,
            )
        return copy.deepcopy(shadow.reported)
