"""Shadow store interface."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class ShadowStore(Protocol):
    """Structural interface over a device-shadow service.

    Writes and device-side reconciliation are asynchronous and are not
    ordered against reads: a ``get_reported`` issued right after
    ``set_desired`` may or may not observe the band's reaction.

    Implementations raise :class:`pyband.exceptions.BandTransportError`
    when the call itself fails (network, auth, unknown shadow).
    """

    async def set_desired(self, device_key: str, patch: Mapping[str, Any]) -> None:
        ...

    async def get_reported(self, device_key: str) -> dict[str, Any]:
        ...
