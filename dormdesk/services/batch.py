"""Sequential meter batch submission.

Each room moves through ``pending -> reading_submitted -> invoice_attempted
-> done``. Only the meter reading write is critical: when it fails the room
becomes ``failed`` and the batch stops, leaving earlier rooms submitted and
later rooms untouched. Invoice generation failures are logged and skipped.
A batch is therefore not transactional.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

import httpx
from sqlalchemy.orm import Session, sessionmaker

from dormdesk.models.batch import BatchItem, BatchRun
from dormdesk.models.enums import BatchItemState, BatchStatus, InvoiceOutcome
from dormdesk.schemas.readings import MeterReadingCreate, ReadingInput
from dormdesk.schemas.rooms import Contract, Room
from dormdesk.services.backend_client import BackendClient, BackendError
from dormdesk.services.rooms import has_active_contract

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Saving meter readings failed"

ALLOWED_TRANSITIONS: dict[BatchItemState, set[BatchItemState]] = {
    BatchItemState.PENDING: {BatchItemState.READING_SUBMITTED, BatchItemState.FAILED},
    BatchItemState.READING_SUBMITTED: {BatchItemState.INVOICE_ATTEMPTED, BatchItemState.DONE},
    BatchItemState.INVOICE_ATTEMPTED: {BatchItemState.DONE},
    BatchItemState.DONE: set(),
    BatchItemState.FAILED: set(),
}


class NothingToSubmit(Exception):
    """No visible room has both water and electric values filled in."""


class ConfirmationRequired(Exception):
    """The user has not yet confirmed submitting ``count`` rooms."""

    def __init__(self, count: int) -> None:
        super().__init__(f"Confirm saving meter readings for {count} rooms")
        self.count = count


@dataclass(frozen=True)
class BatchCandidate:
    """A room with both readings filled in, ready to submit."""

    room_id: str
    room_number: str
    water: Decimal
    electric: Decimal
    has_active_contract: bool


@dataclass(frozen=True)
class BatchConfirmation:
    """The user's answer to "save N rooms?"."""

    expected_count: int
    accepted: bool

    def covers(self, count: int) -> bool:
        return self.accepted and self.expected_count == count


@dataclass
class BatchItemProgress:
    """State machine for one room of the batch."""

    position: int
    candidate: BatchCandidate
    state: BatchItemState = BatchItemState.PENDING
    invoice_outcome: InvoiceOutcome | None = None
    error: str | None = None

    def advance(self, state: BatchItemState) -> None:
        if state not in ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(f"Cannot move batch item from {self.state.value} to {state.value}")
        self.state = state


@dataclass
class BatchProgress:
    """Running counters for a batch."""

    total: int
    completed: int = 0
    status: BatchStatus = BatchStatus.RUNNING
    created: list[str] = field(default_factory=list)
    invoiced: list[str] = field(default_factory=list)
    message: str | None = None

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(self.completed * 100 / self.total)


ProgressListener = Callable[[BatchProgress, BatchItemProgress], None]


def prepare_batch(
    visible_rooms: Sequence[Room],
    values: Mapping[str, ReadingInput],
    contracts: Sequence[Contract],
) -> list[BatchCandidate]:
    """Rooms on screen with both values filled in, in display order."""
    candidates = []
    for room in visible_rooms:
        value = values.get(room.id)
        if value is None or not value.water.strip() or not value.electric.strip():
            continue
        candidates.append(
            BatchCandidate(
                room_id=room.id,
                room_number=room.number,
                water=Decimal(value.water.strip()),
                electric=Decimal(value.electric.strip()),
                has_active_contract=has_active_contract(room.id, contracts),
            )
        )
    if not candidates:
        raise NothingToSubmit("Enter water and electric readings for at least one room")
    return candidates


def require_confirmation(
    candidates: Sequence[BatchCandidate],
    confirmation: BatchConfirmation | None,
) -> None:
    """Raise unless the user accepted exactly this many rooms."""
    if confirmation is None or not confirmation.covers(len(candidates)):
        raise ConfirmationRequired(len(candidates))


def summary_message(progress: BatchProgress) -> str:
    message = f"Saved {len(progress.created)} rooms"
    if progress.invoiced:
        message += f" and generated invoices for {len(progress.invoiced)} rooms"
    return message


class BatchOrchestrator:
    """Submits one meter reading per candidate, strictly one room at a time."""

    def __init__(
        self,
        client: BackendClient,
        month: int,
        year: int,
        listener: ProgressListener | None = None,
    ) -> None:
        self.client = client
        self.month = month
        self.year = year
        self.listener = listener

    def _notify(self, progress: BatchProgress, item: BatchItemProgress) -> None:
        if self.listener is not None:
            self.listener(progress, item)

    async def run(self, candidates: Sequence[BatchCandidate]) -> BatchProgress:
        """Process every candidate in order; stop at the first failed reading write."""
        items = [BatchItemProgress(position=i, candidate=c) for i, c in enumerate(candidates)]
        progress = BatchProgress(total=len(items))
        logger.info(
            "Submitting meter readings for %d rooms (%02d/%d)",
            progress.total,
            self.month,
            self.year,
        )

        for item in items:
            if not await self._submit_reading(progress, item):
                progress.status = BatchStatus.FAILED
                progress.message = FAILURE_MESSAGE
                logger.error(
                    "Meter batch aborted at room %s after %d of %d rooms",
                    item.candidate.room_number,
                    progress.completed,
                    progress.total,
                )
                return progress

            if item.candidate.has_active_contract:
                await self._attempt_invoice(progress, item)
            else:
                item.invoice_outcome = InvoiceOutcome.SKIPPED

            item.advance(BatchItemState.DONE)
            progress.completed += 1
            self._notify(progress, item)

        progress.status = BatchStatus.COMPLETED
        progress.message = summary_message(progress)
        logger.info("Meter batch finished: %s", progress.message)
        return progress

    async def _submit_reading(self, progress: BatchProgress, item: BatchItemProgress) -> bool:
        candidate = item.candidate
        reading = MeterReadingCreate(
            room_id=candidate.room_id,
            month=self.month,
            year=self.year,
            water_reading=candidate.water,
            electric_reading=candidate.electric,
        )
        try:
            await self.client.create_meter_reading(reading)
        except (BackendError, httpx.HTTPError, ValueError) as e:
            # ValueError covers an unreadable 2xx body; the write may still have landed
            item.error = str(e) or e.__class__.__name__
            item.advance(BatchItemState.FAILED)
            self._notify(progress, item)
            return False

        item.advance(BatchItemState.READING_SUBMITTED)
        progress.created.append(candidate.room_id)
        self._notify(progress, item)
        return True

    async def _attempt_invoice(self, progress: BatchProgress, item: BatchItemProgress) -> None:
        candidate = item.candidate
        try:
            invoice = await self.client.generate_invoice(candidate.room_id, self.month, self.year)
        except Exception as e:
            logger.warning("Invoice generation failed for room %s: %s", candidate.room_number, e)
            item.invoice_outcome = InvoiceOutcome.FAILED
        else:
            if invoice.id:
                item.invoice_outcome = InvoiceOutcome.GENERATED
                progress.invoiced.append(candidate.room_id)
            else:
                item.invoice_outcome = InvoiceOutcome.FAILED
        item.advance(BatchItemState.INVOICE_ATTEMPTED)
        self._notify(progress, item)


class BatchJournal:
    """Persists batch runs so the progress page can poll them."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create_run(
        self,
        month: int,
        year: int,
        candidates: Iterable[BatchCandidate],
        submitted_by: str | None = None,
    ) -> int:
        """Record a confirmed batch with every room pending."""
        with self._session_factory() as db:
            run = BatchRun(month=month, year=year, submitted_by=submitted_by)
            for position, candidate in enumerate(candidates):
                run.items.append(
                    BatchItem(
                        position=position,
                        room_id=candidate.room_id,
                        room_number=candidate.room_number,
                        water_reading=candidate.water,
                        electric_reading=candidate.electric,
                        has_active_contract=candidate.has_active_contract,
                        state=BatchItemState.PENDING,
                    )
                )
            run.total = len(run.items)
            db.add(run)
            db.commit()
            db.refresh(run)
            return run.id

    def get_run(self, run_id: int) -> BatchRun | None:
        """Load a run with its items."""
        with self._session_factory() as db:
            run = db.query(BatchRun).filter(BatchRun.id == run_id).first()
            if run is not None:
                # Load items before the session closes
                _ = run.items
            return run

    def listener(self, run_id: int) -> ProgressListener:
        """Progress listener writing every item transition to the journal."""

        def record(progress: BatchProgress, item: BatchItemProgress) -> None:
            with self._session_factory() as db:
                db_item = (
                    db.query(BatchItem)
                    .filter(BatchItem.run_id == run_id, BatchItem.position == item.position)
                    .first()
                )
                if db_item is not None:
                    db_item.state = item.state
                    db_item.invoice_outcome = item.invoice_outcome
                    db_item.error = item.error
                run = db.query(BatchRun).filter(BatchRun.id == run_id).first()
                if run is not None:
                    run.completed = progress.completed
                    run.readings_created = len(progress.created)
                    run.invoices_generated = len(progress.invoiced)
                db.commit()

        return record

    def fail(self, run_id: int, message: str, error: str | None = None) -> None:
        """Mark a run failed without touching its counters.

        The first unfinished item is the one that was in flight; it is marked
        failed with ``error``.
        """
        with self._session_factory() as db:
            run = db.query(BatchRun).filter(BatchRun.id == run_id).first()
            if run is None:
                return
            in_flight = next(
                (
                    item
                    for item in sorted(run.items, key=lambda i: i.position)
                    if item.state not in (BatchItemState.DONE, BatchItemState.FAILED)
                ),
                None,
            )
            if in_flight is not None:
                in_flight.state = BatchItemState.FAILED
                in_flight.error = error
            run.status = BatchStatus.FAILED
            run.message = message
            run.finished_at = datetime.now(UTC)
            db.commit()

    def finish(self, run_id: int, progress: BatchProgress) -> None:
        """Store the final status and summary message."""
        with self._session_factory() as db:
            run = db.query(BatchRun).filter(BatchRun.id == run_id).first()
            if run is None:
                return
            run.status = progress.status
            run.message = progress.message
            run.completed = progress.completed
            run.readings_created = len(progress.created)
            run.invoices_generated = len(progress.invoiced)
            run.finished_at = datetime.now(UTC)
            db.commit()


async def execute_batch_run(
    run_id: int,
    candidates: Sequence[BatchCandidate],
    month: int,
    year: int,
    client_factory: Callable[[], BackendClient],
    journal: BatchJournal,
) -> BatchProgress:
    """Background task body: run the batch and close out the journal entry."""
    try:
        async with client_factory() as client:
            orchestrator = BatchOrchestrator(client, month, year, listener=journal.listener(run_id))
            progress = await orchestrator.run(candidates)
    except Exception as e:
        logger.exception("Meter batch %d crashed", run_id)
        journal.fail(run_id, FAILURE_MESSAGE, error=str(e) or e.__class__.__name__)
        raise
    journal.finish(run_id, progress)
    return progress
