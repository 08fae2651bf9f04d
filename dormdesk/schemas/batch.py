"""Batch journal response schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from dormdesk.models.enums import BatchItemState, BatchStatus, InvoiceOutcome


class BatchItemResponse(BaseModel):
    """Schema for one room of a batch run."""

    position: int
    room_id: str
    room_number: str
    water_reading: Decimal
    electric_reading: Decimal
    has_active_contract: bool
    state: BatchItemState
    invoice_outcome: InvoiceOutcome | None
    error: str | None

    model_config = {"from_attributes": True}


class BatchRunResponse(BaseModel):
    """Schema for batch progress polling."""

    id: int
    month: int
    year: int
    status: BatchStatus
    total: int
    completed: int
    percent: int
    readings_created: int
    invoices_generated: int
    message: str | None
    created_at: datetime
    finished_at: datetime | None
    items: list[BatchItemResponse]

    model_config = {"from_attributes": True}

