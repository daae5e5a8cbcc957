#!/usr/bin/env python3
"""Interactive text console for the band skill.

Type intents as ``<intent> [slot=value ...]``, for example::

    identify-user username=ana
    select-device thingNick=band1
    read-heart-rate
    set-max-heart-rate-threshold maxPulse=150

By default the console runs against an in-memory shadow with a simulated
band that publishes random readings whenever a report is requested, and a
catalog loaded from ``--catalog`` (a JSON array of
``{user, thing_nick, serial_number}`` rows). With ``--live`` the backends
are built from ``BAND_*`` environment variables instead.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import shlex
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyband import BandConfig, BandSkill, InMemoryShadowStore, StaticDeviceCatalog  # noqa: E402
from pyband._constants import DATA_REQUEST_FIELD  # noqa: E402
from pyband.models.fields import BandField  # noqa: E402

_DEMO_ROWS = [
    {"user": "ana", "thing_nick": "band1", "serial_number": "0001"},
    {"user": "ana", "thing_nick": "band2", "serial_number": "0002"},
]


def _publish_readings(store: InMemoryShadowStore, device_key: str, patch: dict[str, Any]) -> None:
    if not patch.get(DATA_REQUEST_FIELD):
        return
    store.publish_reported(
        device_key,
        {
            BandField.HEART_RATE: random.randint(55, 110),
            BandField.ACTIVITY_TYPE: random.choice(["reposo", "caminando", "corriendo"]),
            BandField.AMBIENT_TEMPERATURE: round(random.uniform(16, 30), 1),
            BandField.SPO2: random.randint(93, 100),
            BandField.STEPS: random.randint(0, 12000),
        },
    )


def _parse_line(line: str) -> tuple[str, dict[str, str]]:
    parts = shlex.split(line)
    slots: dict[str, str] = {}
    for part in parts[1:]:
        key, sep, value = part.partition("=")
        if sep:
            slots[key] = value
    return parts[0], slots


async def _run(args: argparse.Namespace) -> int:
    if args.live:
        skill = BandSkill(BandConfig.from_env())
    else:
        catalog = StaticDeviceCatalog.from_json_file(args.catalog) if args.catalog else StaticDeviceCatalog(_DEMO_ROWS)

        def on_desired(device_key: str, patch: dict[str, Any]) -> None:
            _publish_readings(store, device_key, patch)

        store = InMemoryShadowStore(on_desired=on_desired)
        skill = BandSkill(
            BandConfig(shadow_backend="memory", quiescence_window=args.wait),
            catalog=catalog,
            store=store,
        )

    conversation_id = "console"
    async with skill:
        print(skill.launch(conversation_id).speech)
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            if line in {"quit", "exit"}:
                break
            intent, slots = _parse_line(line)
            reply = await skill.handle_intent(conversation_id, intent, slots)
            print(reply.speech)
        skill.end(conversation_id)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--catalog", type=Path, help="JSON catalog file for the simulated setup")
    parser.add_argument("--wait", type=float, default=0.5, help="quiescence window for the simulated setup")
    parser.add_argument("--live", action="store_true", help="use BAND_* environment configuration")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
