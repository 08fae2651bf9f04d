"""Meter reading schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_serializer

from dormdesk.schemas.base import BackendModel


class MeterReading(BackendModel):
    """A recorded reading for one room and billing month."""

    id: str
    room_id: str
    month: int
    year: int
    water_reading: Decimal | None = None
    electric_reading: Decimal | None = None
    created_at: datetime | None = None


class MeterReadingCreate(BackendModel):
    """Payload for recording a reading."""

    room_id: str
    month: int
    year: int
    water_reading: Decimal
    electric_reading: Decimal

    @field_serializer("water_reading", "electric_reading", when_used="json")
    def serialize_reading(self, value: Decimal) -> int | float:
        """Send readings as JSON numbers."""
        if value == value.to_integral_value():
            return int(value)
        return float(value)


class ReadingInput(BaseModel):
    """Current-period values as typed into the meter sheet."""

    water: str = ""
    electric: str = ""


class PreviousReading(BaseModel):
    """Prior-period values for one room."""

    water: Decimal | None = None
    electric: Decimal | None = None
