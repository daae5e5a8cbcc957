"""HTTP transport for the device-shadow REST API.

Endpoints (relative to ``endpoint``):
  - ``GET  /things/{key}/shadow`` (full shadow document)
  - ``POST /things/{key}/shadow`` (``{"state": {"desired": ...}}`` update)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from pyband._constants import USER_AGENT
from pyband._redact import redact_for_log
from pyband.exceptions import BandTransportError
from pyband.models.shadow import ShadowDocument, desired_update

_logger = logging.getLogger(__name__)


class HttpShadowStore:
    """Shadow store over HTTP, one request per call."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        endpoint: str,
        *,
        auth_token: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._http = http_session
        self._endpoint = endpoint.rstrip("/")
        self._auth_token = auth_token
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def _url(self, device_key: str) -> str:
        return f"{self._endpoint}/things/{quote(device_key, safe='')}/shadow"

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._auth_token:
            headers["authorization"] = f"Bearer {self._auth_token}"
        return headers

    async def _request(
        self,
        method: str,
        device_key: str,
        *,
        operation: str,
        body: Mapping[str, Any] | None = None,
        read_body: bool = True,
    ) -> Any:
        url = self._url(device_key)
        data = json.dumps(body, separators=(",", ":")) if body is not None else None

        _logger.debug("%s %s body=%s", method, url, redact_for_log(body))

        try:
            async with self._http.request(
                method,
                url,
                data=data,
                headers=self._headers(),
                timeout=self._timeout,
            ) as resp:
                raw = await resp.read()
                if resp.status == 404:
                    raise BandTransportError(
                        f"No shadow for {device_key}",
                        operation=operation,
                        device_key=device_key,
                        status_code=404,
                    )
                if resp.status >= 300:
                    raise BandTransportError(
                        f"HTTP {resp.status} from shadow service: {raw[:200].decode('utf-8', 'replace')}",
                        operation=operation,
                        device_key=device_key,
                        status_code=resp.status,
                    )
        except BandTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise BandTransportError(
                f"Shadow request failed: {exc}",
                operation=operation,
                device_key=device_key,
            ) from exc

        if not read_body or not raw.strip():
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BandTransportError(
                f"Invalid JSON from shadow service: {raw[:64]!r}",
                operation=operation,
                device_key=device_key,
            ) from exc

    async def set_desired(self, device_key: str, patch: Mapping[str, Any]) -> None:
        await self._request(
            "POST",
            device_key,
            operation="shadow.set_desired",
            body=desired_update(patch),
            read_body=False,
        )

    async def get_reported(self, device_key: str) -> dict[str, Any]:
        payload = await self._request("GET", device_key, operation="shadow.get_reported")
        try:
            document = ShadowDocument.model_validate(payload)
        except ValidationError as exc:
            raise BandTransportError(
                "Shadow document has an unexpected shape",
                operation="shadow.get_reported",
                device_key=device_key,
            ) from exc
        return dict(document.state.reported)
