"""Maintenance ticket web routes."""

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import TypeVar

import httpx
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from dormdesk.models.enums import MaintenanceKind, MaintenanceStatus
from dormdesk.schemas.maintenance import MaintenanceStatusUpdate
from dormdesk.services.backend_client import BackendClient, BackendError
from dormdesk.services.maintenance import build_request, details_for, filter_requests
from dormdesk.services.staff import StaffSession
from dormdesk.web.dependencies import (
    add_flash_message,
    get_backend_client,
    get_staff_session,
    login_redirect,
)
from dormdesk.web.template_config import templates

logger = logging.getLogger(__name__)

router = APIRouter()

E = TypeVar("E", bound=Enum)


def _parse_enum(enum_type: type[E], value: str) -> E | None:
    # Empty or unknown filter values mean "all"
    try:
        return enum_type(value) if value else None
    except ValueError:
        return None


@router.get("/", response_class=HTMLResponse, response_model=None)
async def list_maintenance(
    request: Request,
    status: str = "",
    kind: str = "",
    search: str = "",
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> HTMLResponse | RedirectResponse:
    """List tickets with their parsed details."""
    if not staff.is_logged_in:
        return login_redirect(request)

    load_error = None
    requests = []
    rooms = []
    try:
        requests = await client.get_maintenance_requests()
        rooms = await client.get_rooms()
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("Maintenance tickets unavailable: %s", e)
        load_error = str(e) or "Failed to load maintenance requests"

    selected_status = _parse_enum(MaintenanceStatus, status)
    selected_kind = _parse_enum(MaintenanceKind, kind)
    tickets = [
        {"request": r, "details": details_for(r)}
        for r in filter_requests(requests, status=selected_status, kind=selected_kind, search=search)
    ]

    return templates.TemplateResponse(
        request,
        "maintenance/list.html",
        {
            "staff": staff,
            "tickets": tickets,
            "rooms": sorted(rooms, key=lambda r: r.number),
            "statuses": list(MaintenanceStatus),
            "kinds": list(MaintenanceKind),
            "selected_status": selected_status,
            "selected_kind": selected_kind,
            "search": search,
            "load_error": load_error,
        },
    )


@router.post("/", response_model=None)
async def create_maintenance(
    request: Request,
    room_id: str = Form(...),
    title: str = Form(...),
    note: str = Form(""),
    image_urls: str = Form(""),
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> RedirectResponse:
    """Open a repair ticket."""
    if not staff.is_logged_in:
        return login_redirect(request)

    payload = build_request(
        room_id,
        title,
        note,
        image_urls=image_urls.splitlines(),
        reported_by=staff.profile.id if staff.profile else None,
    )
    try:
        await client.create_maintenance_request(payload)
    except (BackendError, httpx.HTTPError) as e:
        add_flash_message(request, f"Could not open ticket: {e}", "error")
    else:
        add_flash_message(request, f"Ticket '{payload.title}' opened.", "success")
    return RedirectResponse("/maintenance/", status_code=303)


@router.post("/{request_id}/status", response_model=None)
async def update_maintenance(
    request: Request,
    request_id: str,
    status: MaintenanceStatus = Form(...),
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> RedirectResponse:
    """Move a ticket to another status."""
    if not staff.is_logged_in:
        return login_redirect(request)

    update = MaintenanceStatusUpdate(
        status=status,
        resolved_at=datetime.now(UTC) if status == MaintenanceStatus.COMPLETED else None,
    )
    try:
        await client.update_maintenance_status(request_id, update)
    except (BackendError, httpx.HTTPError) as e:
        add_flash_message(request, f"Could not update ticket: {e}", "error")
    else:
        add_flash_message(request, "Ticket updated.", "success")
    return RedirectResponse("/maintenance/", status_code=303)
