"""Notification badge route."""

from fastapi import APIRouter, Request

from dormdesk.schemas.notifications import NotificationSnapshot

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationSnapshot)
def get_notifications(request: Request) -> NotificationSnapshot:
    """Latest counts from the background feed."""
    feed = getattr(request.app.state, "notification_feed", None)
    if feed is None:
        return NotificationSnapshot(error="Live refresh is disabled")
    return feed.snapshot()
