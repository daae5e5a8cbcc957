"""Skill configuration for pyband."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyband._constants import (
    DATA_REQUEST_FIELD,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_OPERATION_MARGIN,
    DEFAULT_QUIESCENCE_WINDOW,
    SHADOW_KEY_PREFIX,
)
from pyband.exceptions import BandConfigError

SHADOW_BACKENDS: frozenset[str] = frozenset({"http", "mqtt", "memory"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class BandConfig:
    """Skill configuration.

    Parameters
    ----------
    shadow_backend : str
        Which shadow store to build when none is injected: ``"http"``,
        ``"mqtt"`` or ``"memory"``.
    shadow_endpoint : str
        Base URL of the device-shadow REST API (``http`` backend).
    shadow_auth_token : str or None
        Bearer token sent to the shadow REST API, if any.
    catalog_url : str
        URL returning the user/device catalog as JSON.
    catalog_auth_token : str or None
        Bearer token sent to the catalog URL, if any.
    shadow_key_prefix : str
        Prefix of the per-device shadow key. The band firmware listens on
        ``<prefix><serial>`` so this must match the device side exactly.
    data_request_field : str
        Desired-state flag written before every read.
    quiescence_window : float
        Seconds to wait between requesting a report and reading it.
    operation_margin : float
        Extra seconds on top of ``quiescence_window`` before a read is
        abandoned as a transport failure.
    http_timeout : float
        Per-request HTTP timeout in seconds.
    mqtt_host, mqtt_port, mqtt_client_id, mqtt_keepalive, mqtt_tls
        Broker settings for the ``mqtt`` backend.
    """

    shadow_backend: str = "http"
    shadow_endpoint: str = ""
    shadow_auth_token: str | None = None
    catalog_url: str = ""
    catalog_auth_token: str | None = None
    shadow_key_prefix: str = SHADOW_KEY_PREFIX
    data_request_field: str = DATA_REQUEST_FIELD
    quiescence_window: float = DEFAULT_QUIESCENCE_WINDOW
    operation_margin: float = DEFAULT_OPERATION_MARGIN
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    mqtt_host: str = ""
    mqtt_port: int = 8883
    mqtt_client_id: str = "pyband"
    mqtt_keepalive: int = 60
    mqtt_tls: bool = True

    def __post_init__(self) -> None:
        if self.shadow_backend not in SHADOW_BACKENDS:
            raise BandConfigError(
                f"shadow_backend must be one of {sorted(SHADOW_BACKENDS)}, got {self.shadow_backend!r}"
            )
        if self.quiescence_window < 0:
            raise BandConfigError("quiescence_window must be >= 0")
        if self.operation_margin <= 0:
            raise BandConfigError("operation_margin must be > 0")

    @property
    def operation_ceiling(self) -> float:
        """Hard limit for one read (patch write + wait + read)."""
        return self.quiescence_window + self.operation_margin

    @classmethod
    def from_env(cls, **overrides: Any) -> BandConfig:
        """Create configuration from ``BAND_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "BAND_SHADOW_BACKEND": "shadow_backend",
            "BAND_SHADOW_ENDPOINT": "shadow_endpoint",
            "BAND_SHADOW_AUTH_TOKEN": "shadow_auth_token",
            "BAND_CATALOG_URL": "catalog_url",
            "BAND_CATALOG_AUTH_TOKEN": "catalog_auth_token",
            "BAND_SHADOW_KEY_PREFIX": "shadow_key_prefix",
            "BAND_DATA_REQUEST_FIELD": "data_request_field",
            "BAND_MQTT_HOST": "mqtt_host",
            "BAND_MQTT_CLIENT_ID": "mqtt_client_id",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "BAND_QUIESCENCE_WINDOW": "quiescence_window",
            "BAND_OPERATION_MARGIN": "operation_margin",
            "BAND_HTTP_TIMEOUT": "http_timeout",
        }
        _ENV_INT_MAP = {
            "BAND_MQTT_PORT": "mqtt_port",
            "BAND_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
        except ValueError as exc:
            raise BandConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("BAND_MQTT_TLS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
