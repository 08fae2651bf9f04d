"""Tests for payment slip review helpers."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from dormdesk.models.enums import PaymentStatus
from dormdesk.schemas.invoices import Invoice, InvoiceContract, Payment
from dormdesk.schemas.rooms import Building, Room, Tenant
from dormdesk.services.payments import (
    InvalidReview,
    can_review,
    filter_payments,
    payment_building,
    payment_room_number,
    payment_tenant,
    review_decision,
    summarize_payments,
)


def _payment(
    payment_id: str,
    room_number: str | None,
    status: PaymentStatus = PaymentStatus.PENDING,
    amount: str = "3500",
    paid_at: str | None = "2024-05-03T09:30:00",
    slip: bool = True,
) -> Payment:
    invoice = None
    if room_number is not None:
        invoice = Invoice(
            id=f"inv-{payment_id}",
            month=5,
            year=2024,
            contract=InvoiceContract(
                id="c",
                tenant_id="t",
                room_id=f"r{room_number}",
                tenant=Tenant(id="t", name="Somchai"),
                room=Room(
                    id=f"r{room_number}",
                    number=room_number,
                    building=Building(id="b", name="Main", code="A"),
                ),
            ),
        )
    return Payment(
        id=payment_id,
        invoice_id=f"inv-{payment_id}",
        amount=Decimal(amount),
        status=status,
        paid_at=datetime.fromisoformat(paid_at) if paid_at else None,
        slip_image_url="https://cdn.test/slip.jpg" if slip else None,
        invoice=invoice,
    )


# =============================================================================
# Unit Tests: Lookups
# =============================================================================


class TestPaymentLookups:
    """Tests for values pulled from the embedded invoice."""

    def test_embedded_values(self):
        payment = _payment("p1", "230")
        assert payment_room_number(payment) == "230"
        assert payment_building(payment) == "Main"
        assert payment_tenant(payment) == "Somchai"

    def test_missing_invoice(self):
        payment = _payment("p1", None)
        assert payment_room_number(payment) is None
        assert payment_building(payment) is None
        assert payment_tenant(payment) is None

    def test_parses_backend_payload(self):
        payment = Payment.model_validate(
            {
                "id": "p1",
                "invoiceId": "i1",
                "amount": 1200.5,
                "slipImageUrl": "https://cdn.test/s.jpg",
                "slipBankRef": "REF1",
                "status": "VERIFIED",
                "invoice": {"id": "i1", "month": 4, "year": 2024},
            }
        )
        assert payment.amount == Decimal("1200.5")
        assert payment.slip_bank_ref == "REF1"
        assert payment.invoice.month == 4


# =============================================================================
# Unit Tests: Filtering and summary
# =============================================================================


class TestFilterPayments:
    """Tests for the room and status filters."""

    def test_filters_by_status_and_room_substring(self):
        payments = [
            _payment("p1", "230"),
            _payment("p2", "231", status=PaymentStatus.VERIFIED),
            _payment("p3", "101"),
            _payment("p4", None),
        ]
        assert [p.id for p in filter_payments(payments, status=PaymentStatus.PENDING)] == [
            "p1",
            "p3",
            "p4",
        ]
        assert [p.id for p in filter_payments(payments, room=" 23 ")] == ["p1", "p2"]
        assert [
            p.id for p in filter_payments(payments, room="23", status=PaymentStatus.VERIFIED)
        ] == ["p2"]

    def test_summary_counts_today_only(self):
        payments = [
            _payment("p1", "230", amount="1000", paid_at="2024-05-03T08:00:00"),
            _payment(
                "p2",
                "231",
                status=PaymentStatus.VERIFIED,
                amount="500.50",
                paid_at="2024-05-03T20:00:00",
            ),
            _payment(
                "p3",
                "232",
                status=PaymentStatus.REJECTED,
                amount="700",
                paid_at="2024-05-02T08:00:00",
            ),
            _payment("p4", "233", paid_at=None),
        ]
        summary = summarize_payments(payments, date(2024, 5, 3))
        assert summary.received_today == Decimal("1500.50")
        assert summary.verified == 1
        assert summary.pending == 2


# =============================================================================
# Unit Tests: Review
# =============================================================================


class TestReview:
    """Tests for which slips can be reviewed and how."""

    def test_can_review_only_pending_transfers(self):
        assert can_review(_payment("p1", "230"))
        assert not can_review(_payment("p2", "230", slip=False))
        assert not can_review(_payment("p3", "230", status=PaymentStatus.VERIFIED))

    def test_review_decision(self):
        assert review_decision("VERIFIED") == PaymentStatus.VERIFIED
        assert review_decision("REJECTED") == PaymentStatus.REJECTED
        with pytest.raises(InvalidReview):
            review_decision("PENDING")
        with pytest.raises(InvalidReview):
            review_decision("PAID")
