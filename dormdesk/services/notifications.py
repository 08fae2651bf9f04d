"""Notification badge: pending payment slips and open maintenance tickets."""

from collections.abc import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from dormdesk.models.enums import MaintenanceStatus, PaymentStatus
from dormdesk.schemas.notifications import NotificationSnapshot
from dormdesk.services.backend_client import BackendClient
from dormdesk.services.refresh import PeriodicRefresh


async def fetch_notification_counts(client: BackendClient) -> NotificationSnapshot:
    """Count what is waiting for staff right now."""
    payments = await client.get_payments(status=PaymentStatus.PENDING)
    requests = await client.get_maintenance_requests()
    return NotificationSnapshot(
        pending_payments=len(payments),
        pending_maintenance=sum(1 for r in requests if r.status == MaintenanceStatus.PENDING),
    )


class NotificationFeed:
    """Notification counts kept fresh in the background."""

    def __init__(
        self,
        client_factory: Callable[[], BackendClient],
        scheduler: AsyncIOScheduler,
        interval_seconds: int,
    ) -> None:
        self._client_factory = client_factory
        self.refresh = PeriodicRefresh(
            self._fetch,
            interval_seconds=interval_seconds,
            scheduler=scheduler,
            name="notifications",
        )

    async def _fetch(self) -> NotificationSnapshot:
        async with self._client_factory() as client:
            return await fetch_notification_counts(client)

    def start(self) -> "NotificationFeed":
        self.refresh.start()
        return self

    def close(self) -> None:
        self.refresh.close()

    def snapshot(self) -> NotificationSnapshot:
        """Latest counts, with the refresh time and last error attached."""
        data = self.refresh.data or NotificationSnapshot()
        return data.model_copy(
            update={"updated_at": self.refresh.updated_at, "error": self.refresh.error}
        )
