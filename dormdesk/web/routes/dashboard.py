"""Dashboard web routes."""

import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from dormdesk.services.backend_client import BackendClient, BackendError
from dormdesk.services.rooms import building_room_counts, summarize_room_status
from dormdesk.services.staff import StaffSession, has_meter_permission
from dormdesk.web.dependencies import get_backend_client, get_staff_session, login_redirect
from dormdesk.web.template_config import templates

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse, response_model=None)
async def dashboard(
    request: Request,
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> HTMLResponse | RedirectResponse:
    """Display room occupancy and pending work."""
    if not staff.is_logged_in:
        return login_redirect(request)

    load_error = None
    rooms = []
    buildings = []
    try:
        rooms = await client.get_rooms()
        buildings = await client.get_buildings()
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("Dashboard data unavailable: %s", e)
        load_error = str(e) or "Failed to load rooms"

    counts = building_room_counts(rooms)
    feed = getattr(request.app.state, "notification_feed", None)

    return templates.TemplateResponse(
        request,
        "dashboard/index.html",
        {
            "staff": staff,
            "status_counts": summarize_room_status(rooms),
            "rooms_total": len(rooms),
            "buildings": [(b, counts.get(b.id, 0)) for b in buildings],
            "notifications": feed.snapshot() if feed is not None else None,
            "can_record_meters": has_meter_permission(staff.profile),
            "load_error": load_error,
        },
    )
