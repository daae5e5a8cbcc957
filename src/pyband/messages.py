"""User-facing phrasing.

Every command outcome, including each rejection and failure, maps to one
sentence spoken back to the user.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pyband.models.device import DeviceRef
from pyband.models.fields import BandField

WELCOME = "Bienvenido a tu banda inteligente. Por favor, dime tu nombre de usuario para empezar."
ASK_IDENTITY = "Primero debes proporcionar tu nombre de usuario. Por favor, dime tu nombre."
ASK_DEVICE = (
    "Primero debes seleccionar un dispositivo. Por favor, dime el nombre del dispositivo que deseas usar."
)
NO_SUCH_USER = (
    "No encontré dispositivos registrados para este usuario. Por favor, verifica tu nombre de usuario."
)
INVALID_VALUE = "El valor indicado no es un número entero válido. Por favor, intenta nuevamente."
TRANSIENT_FAILURE = "Hubo un problema al procesar tu solicitud. Por favor, intenta nuevamente más tarde."
FALLBACK = "No entendí tu solicitud. Puedes pedirme tu ritmo cardíaco, SpO2, pasos o temperatura ambiente."

_THRESHOLD_NAMES: dict[BandField, str] = {
    BandField.MIN_PULSE_ALERT: "mínimo",
    BandField.MAX_PULSE_ALERT: "máximo",
}


def greeting(user_id: str, devices: Iterable[DeviceRef]) -> str:
    names = ", ".join(device.nickname for device in devices)
    return (
        f"Hola {user_id}. Tienes registrados los siguientes dispositivos: {names}. "
        "Por favor, dime el nombre del dispositivo que deseas usar."
    )


def no_such_device(nickname: str) -> str:
    return f"No encontré un dispositivo llamado {nickname}. Por favor, intenta nuevamente."


def device_selected(nickname: str) -> str:
    return (
        f"Perfecto. Ahora estás usando el dispositivo {nickname}. "
        "Puedes consultar tu ritmo cardíaco, SpO2, pasos, temperatura ambiente. ¿Qué deseas hacer?"
    )


def field_value(success_phrase: str, value: Any) -> str:
    return f"{success_phrase}: {value}."


def field_unavailable(field_key: str) -> str:
    return f"No se pudo obtener la información de {field_key}. Intenta nuevamente."


def threshold_set(field: BandField, value: int) -> str:
    return f"El umbral {_THRESHOLD_NAMES[field]} de pulsaciones se ha establecido en {value}."


def threshold_failure(field: BandField) -> str:
    return (
        f"Hubo un problema al establecer el umbral {_THRESHOLD_NAMES[field]}. "
        "Por favor, intenta nuevamente más tarde."
    )
