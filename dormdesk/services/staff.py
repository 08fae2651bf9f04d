"""Staff session context and the meter entry authorization gate.

The gate is advisory UI gating only; the backend enforces permissions on
every write.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from dormdesk.models.enums import StaffRole
from dormdesk.schemas.users import LoginResponse, StaffUser
from dormdesk.services.backend_client import BackendClient, BackendError

logger = logging.getLogger(__name__)

METER_PERMISSION = "meter"

SESSION_TOKEN_KEY = "access_token"
SESSION_PROFILE_KEY = "profile"
SESSION_LINE_ID_KEY = "line_user_id"


def has_meter_permission(user: StaffUser | None) -> bool:
    """Owners and admins, or anyone granted the meter permission."""
    if user is None:
        return False
    if user.role in (StaffRole.OWNER, StaffRole.ADMIN):
        return True
    return METER_PERMISSION in user.permissions


class StaffSession:
    """Who is using the dashboard, as carried by the signed session cookie."""

    def __init__(
        self,
        token: str | None = None,
        profile: StaffUser | None = None,
        line_user_id: str | None = None,
    ) -> None:
        self.token = token
        self.profile = profile
        self.line_user_id = line_user_id

    @classmethod
    def from_session(cls, session: dict[str, Any]) -> "StaffSession":
        profile = None
        raw_profile = session.get(SESSION_PROFILE_KEY)
        if raw_profile:
            try:
                profile = StaffUser.model_validate(raw_profile)
            except ValidationError:
                logger.warning("Discarding unreadable cached profile")
        return cls(
            token=session.get(SESSION_TOKEN_KEY),
            profile=profile,
            line_user_id=session.get(SESSION_LINE_ID_KEY),
        )

    @property
    def is_logged_in(self) -> bool:
        return bool(self.token)

    def save(self, session: dict[str, Any]) -> None:
        """Write this context back into the session cookie."""
        for key, value in (
            (SESSION_TOKEN_KEY, self.token),
            (
                SESSION_PROFILE_KEY,
                self.profile.model_dump(mode="json", by_alias=True) if self.profile else None,
            ),
            (SESSION_LINE_ID_KEY, self.line_user_id),
        ):
            if value is None:
                session.pop(key, None)
            else:
                session[key] = value

    def sign_in(self, login: LoginResponse) -> None:
        self.token = login.access_token
        self.profile = login.user
        if login.user.line_user_id:
            self.line_user_id = login.user.line_user_id

    def sign_out(self) -> None:
        """Forget the login but keep the remembered LINE id."""
        self.token = None
        self.profile = None

    async def refresh(self, client: BackendClient) -> StaffUser | None:
        """Re-fetch the profile for the token, keeping the cached one on failure."""
        if not self.token:
            return self.profile
        try:
            self.profile = await client.get_profile()
        except (BackendError, httpx.HTTPError) as e:
            logger.info("Profile refresh failed, using cached profile: %s", e)
        return self.profile


@dataclass(frozen=True)
class MeterAccess:
    """Outcome of the meter entry gate."""

    allowed: bool
    via: str | None = None  # "login" or "line"


async def resolve_meter_access(
    staff: StaffSession,
    client: BackendClient,
    line_user_id: str | None = None,
) -> MeterAccess:
    """Decide whether the current actor may record meter readings.

    A logged-in session is checked first; otherwise the LINE user id is
    looked up with the backend. Anything that goes wrong denies access.
    """
    if staff.is_logged_in or staff.profile is not None:
        profile = await staff.refresh(client)
        if has_meter_permission(profile):
            return MeterAccess(allowed=True, via="login")

    line_user_id = line_user_id or staff.line_user_id
    if not line_user_id:
        return MeterAccess(allowed=False)

    try:
        allowed = await client.is_staff(line_user_id)
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("Staff lookup failed for LINE user: %s", e)
        return MeterAccess(allowed=False)
    return MeterAccess(allowed=allowed, via="line" if allowed else None)
