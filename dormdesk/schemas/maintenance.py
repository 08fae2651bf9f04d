"""Maintenance request schemas."""

from datetime import datetime

from pydantic import Field

from dormdesk.models.enums import MaintenanceKind, MaintenanceStatus
from dormdesk.schemas.base import BackendModel
from dormdesk.schemas.rooms import Room


class MaintenanceDetails(BackendModel):
    """Structured attachments stored alongside the free-text note."""

    kind: MaintenanceKind = MaintenanceKind.REPAIR
    images: list[str] = Field(default_factory=list)
    water_image_url: str | None = None
    electric_image_url: str | None = None
    tenant_name: str | None = None
    phone: str | None = None
    note: str = ""


class MaintenanceRequest(BackendModel):
    """Maintenance ticket."""

    id: str
    room_id: str
    title: str
    description: str | None = None
    details: MaintenanceDetails | None = None
    status: MaintenanceStatus = MaintenanceStatus.PENDING
    reported_by: str | None = None
    resolved_at: datetime | None = None
    room: Room | None = None
    created_at: datetime | None = None


class MaintenanceRequestCreate(BackendModel):
    """Payload for opening a ticket."""

    room_id: str
    title: str
    description: str | None = None
    details: MaintenanceDetails
    reported_by: str | None = None


class MaintenanceStatusUpdate(BackendModel):
    """Payload for moving a ticket to another status."""

    status: MaintenanceStatus
    resolved_at: datetime | None = None
