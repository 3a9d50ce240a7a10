#!/usr/bin/env python3
"""Real-world integration demo: a Homie weather station.

This script publishes a small Homie device against a real MQTT broker
so that its topics can be inspected with any MQTT client (for example
``mosquitto_sub -v -t 'homie/#'``) or picked up by a Homie-aware
controller such as openHAB.

  **Phase 1 - Fresh start**

  1. Clear retained topics left behind by a previous run.
  2. Create the device with an ``outside`` node carrying a read-only
     temperature and a settable reporting interval.
  3. Publish and run a background task that mocks temperature readings.
  4. Send ``homie/weather/outside/interval/set`` to change the interval.

  **Phase 2 - Live reconfiguration**

  1. Add a ``rain`` node while the device is ready; observe
     ``$state`` going to ``init`` and back to ``ready``.
  2. Remove it again.

  **Phase 3 - Shutdown**

  1. Disconnect; the last retained values are flushed to YAML.

Run from the project root::

    python examples/realworld_test_weather_station.py [mqtt://broker:1883]
"""

from __future__ import annotations

import asyncio
import logging
import random
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure the package is importable when running from the repo root.
# ---------------------------------------------------------------------------
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from pyHomie import Device, Property  # noqa: E402

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

#: Broker URL (overridable on the command line).
BROKER_URL = "mqtt://localhost:1883"

#: Persistence file for retained values.
STATE_FILE = Path("/tmp/pyHomie_weather_demo_state.yaml")

#: Seconds each phase keeps running.
PHASE_DURATION = 30

# ---------------------------------------------------------------------------
# Logging - colourful, timestamped, to stdout
# ---------------------------------------------------------------------------

BOLD = "\033[1m"
GREEN = "\033[32m"
CYAN = "\033[36m"
YELLOW = "\033[33m"
RED = "\033[31m"
RESET = "\033[0m"


class ColourFormatter(logging.Formatter):
    LEVEL_COLOURS = {
        logging.DEBUG: CYAN,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: RED + BOLD,
    }

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLOURS.get(record.levelno, "")
        ts = self.formatTime(record, "%H:%M:%S")
        return (
            f"{BOLD}{ts}{RESET} "
            f"{colour}{record.levelname:<8s}{RESET} "
            f"{record.name}: {record.getMessage()}"
        )


def setup_logging() -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColourFormatter())
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    root.addHandler(handler)


def banner(text: str) -> None:
    logging.getLogger("demo").info("%s==== %s ====%s", BOLD, text, RESET)


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------

async def on_interval(value: int, prop: Property) -> None:
    """Accept a new reporting interval and confirm it."""
    logging.getLogger("demo.callback").info("Interval set to %ds", value)
    await prop.update_value(value)


def on_message(topic: str, payload: str) -> None:
    logging.getLogger("demo.callback").info("Unrouted %s = %r", topic, payload)


async def mock_readings(temperature: Property, interval: Property) -> None:
    """Publish a drifting temperature every *interval* seconds."""
    value = 12.0
    while True:
        value = round(value + random.uniform(-0.5, 0.5), 1)
        await temperature.update_value(value)
        await asyncio.sleep(interval.value or 60)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

async def main() -> None:
    setup_logging()
    log = logging.getLogger("demo")
    url = sys.argv[1] if len(sys.argv) > 1 else BROKER_URL

    banner("PHASE 1 - FRESH START")
    device = Device(
        "weather",
        "Weather Station",
        mqtt=url,
        on_message=on_message,
        state_path=STATE_FILE,
    )
    cleared = await device.clear_topics()
    log.info("Cleared %d stale topics.", len(cleared))

    outside = await device.add_node("outside", "Outside", "sensor")
    temperature = await outside.add_property(
        "temperature", "Temperature", "float", unit="°C"
    )
    interval = await outside.add_property(
        "interval", "Interval", "integer", 5,
        format="1:3600", unit="s", callback=on_interval,
    )
    await device.publish()
    log.info("Published %r", device)

    readings = asyncio.create_task(mock_readings(temperature, interval))
    await asyncio.sleep(PHASE_DURATION)

    banner("PHASE 2 - LIVE RECONFIGURATION")

    async def configure(node):
        await node.add_property(
            "intensity", "Intensity", "float", 0.0, format="0:200", unit="mm/h"
        )

    rain = await device.add_node("rain", "Rain", "sensor", configure=configure)
    log.info("Added %r", rain)
    await asyncio.sleep(PHASE_DURATION)
    await device.remove_node("rain")
    log.info("Removed rain node.")

    banner("PHASE 3 - SHUTDOWN")
    readings.cancel()
    await device.disconnect()
    await device.join()
    log.info("Retained values saved to %s", STATE_FILE)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print(f"\n{YELLOW}Interrupted by user.{RESET}")
