"""Payment slip review helpers."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from dormdesk.models.enums import PaymentStatus
from dormdesk.schemas.invoices import Payment

# A slip can only be verified or rejected, never sent back to pending
REVIEW_DECISIONS = (PaymentStatus.VERIFIED, PaymentStatus.REJECTED)


class InvalidReview(ValueError):
    """The requested status is not a review decision."""


@dataclass(frozen=True)
class PaymentSummary:
    received_today: Decimal
    verified: int
    pending: int


def payment_room_number(payment: Payment) -> str | None:
    invoice = payment.invoice
    if invoice and invoice.contract and invoice.contract.room:
        return invoice.contract.room.number
    return None


def payment_building(payment: Payment) -> str | None:
    invoice = payment.invoice
    if invoice and invoice.contract and invoice.contract.room and invoice.contract.room.building:
        building = invoice.contract.room.building
        return building.name or building.code
    return None


def payment_tenant(payment: Payment) -> str | None:
    invoice = payment.invoice
    if invoice and invoice.contract and invoice.contract.tenant:
        return invoice.contract.tenant.name
    return None


def can_review(payment: Payment) -> bool:
    """Only pending transfers with a slip image can be verified or rejected."""
    return payment.status == PaymentStatus.PENDING and bool(payment.slip_image_url)


def filter_payments(
    payments: Iterable[Payment],
    room: str = "",
    status: PaymentStatus | None = None,
) -> list[Payment]:
    """Keep payments in ``status`` whose room number contains ``room``."""
    room = room.strip()
    result = []
    for payment in payments:
        if status is not None and payment.status != status:
            continue
        if room and room not in (payment_room_number(payment) or ""):
            continue
        result.append(payment)
    return result


def summarize_payments(payments: Sequence[Payment], today: date) -> PaymentSummary:
    received = sum(
        (p.amount for p in payments if p.paid_at is not None and p.paid_at.date() == today),
        Decimal("0"),
    )
    return PaymentSummary(
        received_today=received,
        verified=sum(1 for p in payments if p.status == PaymentStatus.VERIFIED),
        pending=sum(1 for p in payments if p.status == PaymentStatus.PENDING),
    )


def review_decision(value: str) -> PaymentStatus:
    """Parse a submitted review status."""
    try:
        status = PaymentStatus(value)
    except ValueError:
        raise InvalidReview(f"Unknown payment status: {value}") from None
    if status not in REVIEW_DECISIONS:
        raise InvalidReview(f"A slip cannot be set back to {status.value}")
    return status
