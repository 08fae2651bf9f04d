"""Staff user and login schemas."""

from pydantic import Field

from dormdesk.models.enums import StaffRole
from dormdesk.schemas.base import BackendModel


class StaffUser(BackendModel):
    """Dashboard user profile as issued by the backend."""

    id: str
    username: str
    name: str | None = None
    role: StaffRole
    permissions: list[str] = Field(default_factory=list)
    line_user_id: str | None = None
    phone: str | None = None

    @property
    def display_name(self) -> str:
        """Name shown in the navigation bar."""
        return self.name or self.username


class LoginRequest(BackendModel):
    """Username/password login."""

    username: str
    password: str


class LineLoginRequest(BackendModel):
    """Login keyed by a LINE user id."""

    line_user_id: str


class LoginResponse(BackendModel):
    """Bearer token plus the profile it belongs to."""

    access_token: str = Field(alias="access_token")
    user: StaffUser
