"""Batch journal database models - progress of meter batch submissions."""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dormdesk.core.database import Base
from dormdesk.models.enums import BatchItemState, BatchStatus, InvoiceOutcome


class BatchRun(Base):
    """One confirmed meter batch submission for a billing period."""

    __tablename__ = "batch_runs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    month: Mapped[int]
    year: Mapped[int]
    status: Mapped[BatchStatus] = mapped_column(String(20), default=BatchStatus.RUNNING, index=True)

    # Progress counters
    total: Mapped[int] = mapped_column(default=0)
    completed: Mapped[int] = mapped_column(default=0)
    readings_created: Mapped[int] = mapped_column(default=0)
    invoices_generated: Mapped[int] = mapped_column(default=0)

    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    finished_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    items: Mapped[list["BatchItem"]] = relationship(
        back_populates="run",
        order_by="BatchItem.position",
        cascade="all, delete-orphan",
    )

    @property
    def percent(self) -> int:
        """Completed share of the run, rounded to a whole percent."""
        if not self.total:
            return 0
        return round(self.completed * 100 / self.total)


class BatchItem(Base):
    """A single room inside a batch run."""

    __tablename__ = "batch_items"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    run_id: Mapped[int] = mapped_column(ForeignKey("batch_runs.id"), index=True)
    position: Mapped[int]

    room_id: Mapped[str] = mapped_column(String(64))
    room_number: Mapped[str] = mapped_column(String(32))
    water_reading: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2))
    electric_reading: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2))
    has_active_contract: Mapped[bool] = mapped_column(default=False)

    state: Mapped[BatchItemState] = mapped_column(String(20), default=BatchItemState.PENDING)
    invoice_outcome: Mapped[InvoiceOutcome | None] = mapped_column(String(20), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    run: Mapped["BatchRun"] = relationship(back_populates="items")
