"""Room, building, tenant and contract schemas."""

from datetime import datetime
from decimal import Decimal

from dormdesk.models.enums import RoomStatus, TenantStatus
from dormdesk.schemas.base import BackendModel


class Building(BackendModel):
    """Building used to group and filter rooms."""

    id: str
    name: str = ""
    code: str | None = None
    floors: int = 0

    @property
    def label(self) -> str:
        """Display name, falling back to the building code."""
        return (self.name or self.code or "").strip()


class Tenant(BackendModel):
    """Tenant record."""

    id: str
    name: str
    nickname: str | None = None
    phone: str = ""
    line_user_id: str | None = None
    status: TenantStatus = TenantStatus.ACTIVE


class Contract(BackendModel):
    """Links a tenant to a room."""

    id: str
    tenant_id: str
    room_id: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    deposit: Decimal = Decimal("0")
    current_rent: Decimal = Decimal("0")
    occupant_count: int = 1
    is_active: bool = False
    tenant: Tenant | None = None


class Room(BackendModel):
    """Read-only room snapshot."""

    id: str
    number: str
    floor: int | None = None
    status: RoomStatus = RoomStatus.VACANT
    price_per_month: Decimal | None = None
    water_override_amount: Decimal | None = None
    electric_override_amount: Decimal | None = None
    building_id: str | None = None
    building: Building | None = None
    contracts: list[Contract] | None = None
