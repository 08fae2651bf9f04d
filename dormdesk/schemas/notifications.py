"""Notification feed schema."""

from datetime import datetime

from pydantic import BaseModel


class NotificationSnapshot(BaseModel):
    """Latest counts from the notification feed."""

    pending_payments: int = 0
    pending_maintenance: int = 0
    updated_at: datetime | None = None
    error: str | None = None

    @property
    def total(self) -> int:
        """Badge count."""
        return self.pending_payments + self.pending_maintenance
