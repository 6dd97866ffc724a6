"""
Sensor readings import.

New sensors can come with a CSV of past samples (`date,waterQuality,bacteriaCount` with a
header row). Without one, a flat baseline series is generated from the installation date.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from outbreakmap.domain.models import SensorReading

logger = logging.getLogger(__name__)

BASELINE_WATER_QUALITY = 50
BASELINE_BACTERIA_COUNT = 20


def format_reading_date(d: date) -> str:
    return d.strftime("%d-%m-%Y")


def parse_readings_csv(text: str) -> list[SensorReading]:
    """Parse CSV text into readings; the header row and malformed rows are skipped."""
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    out: list[SensorReading] = []
    for line in lines[1:]:
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 3 or not all(parts[:3]):
            continue
        try:
            out.append(
                SensorReading(date=parts[0], water_quality=int(parts[1]), bacteria_count=int(parts[2]))
            )
        except ValueError:
            logger.debug("Skipping malformed readings row: %r", line)
            continue
    return out


def flat_line_readings(installation_date: date, today: date | None = None) -> list[SensorReading]:
    """One baseline reading per day from installation through today (inclusive).

    An installation date in the future yields a single reading on that date.
    """
    today = today or date.today()
    if installation_date > today:
        return [
            SensorReading(
                date=format_reading_date(installation_date),
                water_quality=BASELINE_WATER_QUALITY,
                bacteria_count=BASELINE_BACTERIA_COUNT,
            )
        ]
    days = (today - installation_date).days + 1
    return [
        SensorReading(
            date=format_reading_date(installation_date + timedelta(days=i)),
            water_quality=BASELINE_WATER_QUALITY,
            bacteria_count=BASELINE_BACTERIA_COUNT,
        )
        for i in range(days)
    ]


def readings_for_new_sensor(
    installation_date: date, csv_text: str | None = None, *, today: date | None = None
) -> list[SensorReading]:
    """CSV readings when they parse to something, otherwise the flat baseline."""
    readings = parse_readings_csv(csv_text) if csv_text else []
    if readings:
        return readings
    return flat_line_readings(installation_date, today)
