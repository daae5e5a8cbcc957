"""User/device catalog lookups.

The catalog maps a username to the bands that user owns. It is a flat
table of ``{user, thing_nick, serial_number}`` rows; lookups filter it
case-insensitively on ``user``. An empty result means "unknown or
deviceless user" and is not an error.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from pyband._constants import USER_AGENT
from pyband._redact import redact_for_log
from pyband.exceptions import BandTransportError
from pyband.models.device import CatalogRecord, DeviceRef

_logger = logging.getLogger(__name__)

_LOOKUP = "catalog.lookup"


class DeviceCatalog(Protocol):
    """Structural catalog interface used by :class:`pyband.session.SessionState`."""

    async def lookup(self, user_id: str) -> list[DeviceRef]:
        ...


def _parse_records(items: Iterable[Any]) -> list[CatalogRecord]:
    records: list[CatalogRecord] = []
    for item in items:
        try:
            records.append(CatalogRecord.model_validate(item))
        except ValidationError:
            _logger.debug("Skipping malformed catalog row %s", redact_for_log(item))
    return records


def _devices_for(records: Iterable[CatalogRecord], user_id: str) -> list[DeviceRef]:
    return [record.to_device_ref() for record in records if record.belongs_to(user_id)]


class StaticDeviceCatalog:
    """Catalog backed by an in-memory list of rows."""

    def __init__(self, records: Iterable[CatalogRecord | Mapping[str, Any]] = ()) -> None:
        self._records: list[CatalogRecord] = [
            r if isinstance(r, CatalogRecord) else CatalogRecord.model_validate(r) for r in records
        ]

    @classmethod
    def from_json_file(cls, path: str | Path) -> StaticDeviceCatalog:
        """Load rows from a JSON array (or a ``{"Items": [...]}`` table dump)."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("Items", [])
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a JSON array of catalog rows")
        return cls(_parse_records(data))

    def add(self, user: str, nickname: str, physical_id: str) -> None:
        self._records.append(CatalogRecord(user=user, thing_nick=nickname, serial_number=physical_id))

    async def lookup(self, user_id: str) -> list[DeviceRef]:
        return _devices_for(self._records, user_id)


class HttpDeviceCatalog:
    """Catalog fetched over HTTP.

    ``url`` must return the whole table as JSON, either an array of rows
    or ``{"Items": [...]}``. The table is scanned and filtered on every
    lookup so selections always see the current device list.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        url: str,
        *,
        auth_token: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._http = http_session
        self._url = url
        self._auth_token = auth_token
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _fetch_table(self) -> list[Any]:
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        if self._auth_token:
            headers["authorization"] = f"Bearer {self._auth_token}"

        _logger.debug("GET %s", self._url)
        try:
            async with self._http.get(self._url, headers=headers, timeout=self._timeout) as resp:
                raw = await resp.read()
                if resp.status != 200:
                    raise BandTransportError(
                        f"HTTP {resp.status} from catalog",
                        operation=_LOOKUP,
                        status_code=resp.status,
                    )
        except BandTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise BandTransportError(f"Catalog request failed: {exc}", operation=_LOOKUP) from exc

        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BandTransportError("Invalid JSON from catalog", operation=_LOOKUP) from exc

        if isinstance(body, dict):
            body = body.get("Items")
        if not isinstance(body, list):
            raise BandTransportError("Catalog response is not a list of rows", operation=_LOOKUP)
        return body

    async def lookup(self, user_id: str) -> list[DeviceRef]:
        records = _parse_records(await self._fetch_table())
        return _devices_for(records, user_id)
