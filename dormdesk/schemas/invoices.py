"""Invoice and payment schemas."""

from datetime import datetime
from decimal import Decimal

from dormdesk.models.enums import InvoiceStatus, PaymentStatus
from dormdesk.schemas.base import BackendModel
from dormdesk.schemas.rooms import Contract, Room


class InvoiceGenerate(BackendModel):
    """Request body for server-side invoice generation."""

    room_id: str
    month: int
    year: int


class InvoiceContract(Contract):
    """Contract embedded in an invoice, with its room."""

    room: Room | None = None


class Invoice(BackendModel):
    """Invoice as returned by the backend."""

    id: str | None = None
    contract_id: str | None = None
    month: int | None = None
    year: int | None = None
    rent_amount: Decimal = Decimal("0")
    water_amount: Decimal = Decimal("0")
    electric_amount: Decimal = Decimal("0")
    other_fees: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    status: InvoiceStatus = InvoiceStatus.DRAFT
    due_date: datetime | None = None
    contract: InvoiceContract | None = None
    created_at: datetime | None = None


class Payment(BackendModel):
    """Payment slip submitted against an invoice."""

    id: str
    invoice_id: str
    amount: Decimal
    slip_image_url: str | None = None
    slip_bank_ref: str | None = None
    paid_at: datetime | None = None
    status: PaymentStatus = PaymentStatus.PENDING
    invoice: Invoice | None = None


class SlipReview(BackendModel):
    """Staff decision on a payment slip."""

    payment_id: str
    status: PaymentStatus
