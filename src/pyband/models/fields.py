"""Shadow fields exposed by the band and the phrasing used to read them back.

Member values are the exact keys the band firmware publishes in its
reported state and reads from its desired state. They are not a naming
convention and must not be normalised (``enviroment_temperature`` and
``SpO2`` are spelled as the firmware spells them).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class BandField(enum.StrEnum):
    """Shadow document keys."""

    HEART_RATE = "heart_rate"
    ACTIVITY_TYPE = "activity_type"
    AMBIENT_TEMPERATURE = "enviroment_temperature"
    SPO2 = "SpO2"
    STEPS = "steps"
    MIN_PULSE_ALERT = "min_pulse_alert"
    MAX_PULSE_ALERT = "max_pulse_alert"


@dataclass(frozen=True)
class ReadableField:
    """A field the user can ask for, with the phrase that introduces its value."""

    field: BandField
    success_phrase: str


READ_FIELDS: dict[BandField, ReadableField] = {
    readable.field: readable
    for readable in (
        ReadableField(BandField.HEART_RATE, "El pulso es"),
        ReadableField(BandField.ACTIVITY_TYPE, "La actividad actual es"),
        ReadableField(BandField.AMBIENT_TEMPERATURE, "La temperatura del entorno es"),
        ReadableField(BandField.SPO2, "El nivel de oxígeno en la sangre es"),
        ReadableField(BandField.STEPS, "El número de pasos es"),
    )
}

THRESHOLD_FIELDS: frozenset[BandField] = frozenset({BandField.MIN_PULSE_ALERT, BandField.MAX_PULSE_ALERT})
