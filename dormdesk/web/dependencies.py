"""Web-specific dependencies: staff session, backend clients and flash messages."""

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from fastapi.responses import RedirectResponse

from dormdesk.core.config import resolve_api_url, settings
from dormdesk.core.database import SessionLocal
from dormdesk.services.backend_client import BackendClient, ClientFactory
from dormdesk.services.batch import BatchJournal
from dormdesk.services.staff import StaffSession


def get_staff_session(request: Request) -> StaffSession:
    """Staff context carried by the session cookie."""
    return StaffSession.from_session(request.session)


def get_client_factory(request: Request) -> ClientFactory:
    """Client factory for the backend that serves this request's host."""
    return ClientFactory(
        resolve_api_url(settings, request.url.hostname),
        timeout=settings.API_TIMEOUT_SECONDS,
    )


async def get_backend_client(
    staff: StaffSession = Depends(get_staff_session),
    factory: ClientFactory = Depends(get_client_factory),
) -> AsyncIterator[BackendClient]:
    """Backend client authenticated as the current staff member, if any."""
    async with factory(staff.token) as client:
        yield client


def get_journal() -> BatchJournal:
    return BatchJournal(SessionLocal)


def login_redirect(request: Request) -> RedirectResponse:
    """Send an anonymous visitor to the login page and back here afterwards."""
    return RedirectResponse(f"/login?next={request.url.path}", status_code=303)


def get_flash_messages(request: Request) -> list[dict]:
    """Get and clear flash messages from session."""
    messages = request.session.pop("flash_messages", [])
    return messages


def add_flash_message(request: Request, message: str, category: str = "info") -> None:
    """Add a flash message to the session."""
    messages = request.session.get("flash_messages", [])
    messages.append({"message": message, "category": category})
    request.session["flash_messages"] = messages
