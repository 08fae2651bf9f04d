"""Batch progress routes polled by the progress page."""

from fastapi import APIRouter, Depends, HTTPException, status

from dormdesk.schemas.batch import BatchRunResponse
from dormdesk.services.batch import BatchJournal
from dormdesk.web.dependencies import get_journal

router = APIRouter(prefix="/batches", tags=["batches"])


@router.get("/{run_id}", response_model=BatchRunResponse)
def get_batch_run(
    run_id: int,
    journal: BatchJournal = Depends(get_journal),
):
    """Current state of a batch run and its rooms."""
    run = journal.get_run(run_id)
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Batch run not found",
        )
    return BatchRunResponse.model_validate(run)
