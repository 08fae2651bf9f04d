"""Meter sheet state: billing periods, typed inputs and usage deltas."""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import httpx

from dormdesk.models.enums import Utility
from dormdesk.schemas.readings import MeterReading, PreviousReading, ReadingInput
from dormdesk.schemas.rooms import Room
from dormdesk.services.backend_client import BackendClient, BackendError

logger = logging.getLogger(__name__)

UNAVAILABLE = "-"

_NON_NUMERIC = re.compile(r"[^0-9.]")


def default_period(today: date) -> tuple[int, int]:
    """Period a new sheet opens on: the month after ``today``."""
    if today.month == 12:
        return 1, today.year + 1
    return today.month + 1, today.year


def previous_period(month: int, year: int) -> tuple[int, int]:
    """The billing month before ``month``/``year``."""
    if month == 1:
        return 12, year - 1
    return month - 1, year


def clean_reading_input(raw: str | None) -> str:
    """Apply the numeric keypad mask: digits and at most one decimal point."""
    if not raw:
        return ""
    whole, point, fraction = _NON_NUMERIC.sub("", raw).partition(".")
    cleaned = whole + point + fraction.replace(".", "")
    return "" if cleaned == "." else cleaned


def _to_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def usage_delta(previous: Decimal | float | int | None, current: str | None) -> str:
    """Usage between the previous reading and the current input, for display.

    Returns "-" when either side is missing or non-numeric, and when the
    delta is negative. Whole deltas render without decimals, others with two.
    """
    previous_value = _to_decimal(previous)
    current_value = _to_decimal(current)
    if previous_value is None or current_value is None:
        return UNAVAILABLE

    delta = current_value - previous_value
    if delta < 0:
        return UNAVAILABLE
    if delta == delta.to_integral_value():
        return str(int(delta))
    return str(delta.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def latest_by_room(readings: Iterable[MeterReading]) -> dict[str, MeterReading]:
    """Most recent reading per room; later entries win ties."""
    latest: dict[str, MeterReading] = {}
    for reading in readings:
        current = latest.get(reading.room_id)
        if (
            current is None
            or current.created_at is None
            or reading.created_at is None
            or reading.created_at >= current.created_at
        ):
            latest[reading.room_id] = reading
    return latest


def _format_reading(value: Decimal | None) -> str:
    if value is None:
        return ""
    if value == value.to_integral_value():
        return str(int(value))
    return str(value)


@dataclass
class MeterSheet:
    """Inputs for the current period plus the readings they are compared to."""

    month: int
    year: int
    values: dict[str, ReadingInput] = field(default_factory=dict)
    previous: dict[str, PreviousReading] = field(default_factory=dict)

    def value_for(self, room_id: str) -> ReadingInput:
        return self.values.get(room_id) or ReadingInput()

    def previous_for(self, room_id: str) -> PreviousReading:
        return self.previous.get(room_id) or PreviousReading()

    def is_complete(self, room_id: str) -> bool:
        """Both utilities have a value typed in."""
        value = self.value_for(room_id)
        return bool(value.water.strip()) and bool(value.electric.strip())

    def usage(self, room_id: str, utility: Utility) -> str:
        previous = self.previous_for(room_id)
        value = self.value_for(room_id)
        if utility == Utility.WATER:
            return usage_delta(previous.water, value.water)
        return usage_delta(previous.electric, value.electric)

    def with_inputs(self, form: Mapping[str, object]) -> "MeterSheet":
        """Overlay submitted ``water_<room>``/``electric_<room>`` fields."""
        values = {room_id: value.model_copy() for room_id, value in self.values.items()}
        for key, raw in form.items():
            utility, _, room_id = str(key).partition("_")
            if not room_id or utility not in (Utility.WATER.value, Utility.ELECTRIC.value):
                continue
            entry = values.setdefault(room_id, ReadingInput())
            setattr(entry, utility, clean_reading_input(str(raw)))
        return MeterSheet(self.month, self.year, values, dict(self.previous))


async def load_meter_sheet(
    client: BackendClient,
    month: int,
    year: int,
    rooms: Iterable[Room],
) -> MeterSheet:
    """Build the sheet for a period.

    Readings already recorded for the period prefill the inputs. A failure
    to load the previous period leaves the comparison column empty.
    """
    sheet = MeterSheet(month=month, year=year)
    for room in rooms:
        sheet.values[room.id] = ReadingInput()

    current = await client.get_meter_readings(month=month, year=year)
    for room_id, reading in latest_by_room(current).items():
        sheet.values[room_id] = ReadingInput(
            water=_format_reading(reading.water_reading),
            electric=_format_reading(reading.electric_reading),
        )

    prev_month, prev_year = previous_period(month, year)
    try:
        earlier = await client.get_meter_readings(month=prev_month, year=prev_year)
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("Previous readings for %s/%s unavailable: %s", prev_month, prev_year, e)
        earlier = []
    for room_id, reading in latest_by_room(earlier).items():
        sheet.previous[room_id] = PreviousReading(
            water=reading.water_reading,
            electric=reading.electric_reading,
        )
    return sheet
