"""Meter reading sheet web routes.

The sheet is one form with a water and an electric input per visible room.
Submitting it asks for confirmation first, then records a batch run in the
journal and hands the backend writes to a background task; the browser is
redirected to a progress page that polls the journal.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from functools import partial
from typing import Any

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends, Form, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.datastructures import FormData

from dormdesk.core.config import settings
from dormdesk.models.enums import Utility
from dormdesk.schemas.rooms import Building, Contract, Room
from dormdesk.services.backend_client import BackendClient, BackendError, ClientFactory
from dormdesk.services.batch import (
    BatchConfirmation,
    BatchJournal,
    ConfirmationRequired,
    NothingToSubmit,
    execute_batch_run,
    prepare_batch,
    require_confirmation,
)
from dormdesk.services.readings import MeterSheet, default_period, load_meter_sheet
from dormdesk.services.rooms import (
    RoomFilter,
    active_tenant_name,
    build_room_view,
    building_room_counts,
    group_by_building,
)
from dormdesk.services.staff import StaffSession, resolve_meter_access
from dormdesk.web.dependencies import (
    add_flash_message,
    get_backend_client,
    get_client_factory,
    get_journal,
    get_staff_session,
)
from dormdesk.web.template_config import templates

logger = logging.getLogger(__name__)

router = APIRouter()

# Form fields that drive the confirmation step rather than carry readings
_CONTROL_FIELDS = {"action", "confirmed", "expected_count"}

MIN_YEAR = 2000
MAX_YEAR = 2100


@dataclass
class SheetData:
    """Everything the sheet needs from the backend for one period."""

    rooms: list[Room]
    buildings: list[Building]
    contracts: list[Contract]
    sheet: MeterSheet


async def _optional_list(fetch: Callable[[], Awaitable[list]], what: str) -> list:
    try:
        return await fetch()
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("Could not load %s, continuing without: %s", what, e)
        return []


async def load_sheet_data(client: BackendClient, month: int, year: int) -> SheetData:
    """Rooms and readings are required; buildings and contracts are best-effort."""
    rooms = await client.get_rooms()
    buildings = await _optional_list(client.get_buildings, "buildings")
    contracts = await _optional_list(client.get_contracts, "contracts")
    sheet = await load_meter_sheet(client, month, year, rooms)
    return SheetData(rooms=rooms, buildings=buildings, contracts=contracts, sheet=sheet)


def _form_str(form: FormData, key: str, default: str = "") -> str:
    value = form.get(key)
    return value if isinstance(value, str) else default


def _form_int(form: FormData, key: str, default: int) -> int:
    try:
        return int(_form_str(form, key))
    except ValueError:
        return default


def _sheet_context(
    staff: StaffSession,
    data: SheetData,
    room_filter: RoomFilter,
    visible: list[Room],
    **extra: Any,
) -> dict[str, Any]:
    sheet = data.sheet
    context = {
        "staff": staff,
        "month": sheet.month,
        "year": sheet.year,
        "sheet": sheet,
        "groups": group_by_building(visible, data.buildings),
        "buildings": sorted(data.buildings, key=lambda b: b.label.casefold()),
        "room_counts": building_room_counts(data.rooms),
        "room_filter": room_filter,
        "tenants": {
            room.id: active_tenant_name(room.id, data.contracts) or "-" for room in visible
        },
        "visible_count": len(visible),
        "complete_count": sum(1 for room in visible if sheet.is_complete(room.id)),
        "water": Utility.WATER,
        "electric": Utility.ELECTRIC,
    }
    context.update(extra)
    return context


async def _access_denied_page(
    request: Request,
    staff: StaffSession,
    client: BackendClient,
) -> HTMLResponse | None:
    """Identify or denied page when the gate says no, else None."""
    if not staff.is_logged_in and not staff.line_user_id:
        return templates.TemplateResponse(request, "meter/identify.html", {"staff": staff})

    access = await resolve_meter_access(staff, client)
    staff.save(request.session)
    if not access.allowed:
        return templates.TemplateResponse(
            request, "meter/denied.html", {"staff": staff}, status_code=403
        )
    return None


@router.get("/", response_class=HTMLResponse, response_model=None)
async def meter_sheet(
    request: Request,
    uid: str | None = None,
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=MIN_YEAR, le=MAX_YEAR),
    building: str | None = None,
    search: str = "",
    only_incomplete: bool = False,
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> HTMLResponse:
    """Display the meter sheet for a period."""
    if uid and uid.strip():
        staff.line_user_id = uid.strip()
        staff.save(request.session)

    denied = await _access_denied_page(request, staff, client)
    if denied is not None:
        return denied

    default_month, default_year = default_period(date.today())
    month = month or default_month
    year = year or default_year
    room_filter = RoomFilter(
        building_id=building or None, search=search, only_incomplete=only_incomplete
    )

    try:
        data = await load_sheet_data(client, month, year)
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("Meter sheet for %02d/%d failed to load: %s", month, year, e)
        return templates.TemplateResponse(
            request,
            "meter/sheet.html",
            {
                "staff": staff,
                "month": month,
                "year": year,
                "room_filter": room_filter,
                "groups": [],
                "buildings": [],
                "load_error": str(e) or "Failed to load rooms",
            },
            status_code=502,
        )

    visible = build_room_view(
        data.rooms, data.buildings, data.contracts, data.sheet.values, room_filter
    )
    return templates.TemplateResponse(
        request, "meter/sheet.html", _sheet_context(staff, data, room_filter, visible)
    )


@router.post("/line-id", response_model=None)
async def remember_line_id(
    request: Request,
    line_user_id: str = Form(...),
    staff: StaffSession = Depends(get_staff_session),
) -> RedirectResponse:
    """Remember a LINE user id entered by hand."""
    staff.line_user_id = line_user_id.strip() or None
    staff.save(request.session)
    return RedirectResponse("/meter/", status_code=303)


@router.post("/submit", response_class=HTMLResponse, response_model=None)
async def submit_meter_sheet(
    request: Request,
    background_tasks: BackgroundTasks,
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
    client_factory: ClientFactory = Depends(get_client_factory),
    journal: BatchJournal = Depends(get_journal),
) -> HTMLResponse | RedirectResponse:
    """Apply filters, or confirm and start a batch submission."""
    denied = await _access_denied_page(request, staff, client)
    if denied is not None:
        return denied

    form = await request.form()
    default_month, default_year = default_period(date.today())
    month = _form_int(form, "month", default_month)
    year = _form_int(form, "year", default_year)
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="Month must be between 1 and 12")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise HTTPException(
            status_code=400, detail=f"Year must be between {MIN_YEAR} and {MAX_YEAR}"
        )
    room_filter = RoomFilter(
        building_id=_form_str(form, "building") or None,
        search=_form_str(form, "search"),
        only_incomplete=_form_str(form, "only_incomplete") in ("on", "true", "1"),
    )

    try:
        data = await load_sheet_data(client, month, year)
    except (BackendError, httpx.HTTPError) as e:
        add_flash_message(request, f"Could not load rooms: {e}", "error")
        return RedirectResponse(f"/meter/?month={month}&year={year}", status_code=303)

    data.sheet = data.sheet.with_inputs(form)
    visible = build_room_view(
        data.rooms, data.buildings, data.contracts, data.sheet.values, room_filter
    )

    def render_sheet(status_code: int = 200, **extra: Any) -> HTMLResponse:
        return templates.TemplateResponse(
            request,
            "meter/sheet.html",
            _sheet_context(staff, data, room_filter, visible, **extra),
            status_code=status_code,
        )

    action = _form_str(form, "action", "submit")
    if action == "filter":
        return render_sheet()

    try:
        candidates = prepare_batch(visible, data.sheet.values, data.contracts)
    except NothingToSubmit as e:
        return render_sheet(status_code=400, error=str(e))

    answer = _form_str(form, "confirmed")
    if answer == "no":
        return render_sheet(info="Nothing was saved")
    confirmation = None
    if answer == "yes":
        confirmation = BatchConfirmation(
            expected_count=_form_int(form, "expected_count", -1), accepted=True
        )

    try:
        require_confirmation(candidates, confirmation)
    except ConfirmationRequired as e:
        hidden_fields = [
            (key, value)
            for key, value in form.multi_items()
            if key not in _CONTROL_FIELDS and isinstance(value, str)
        ]
        return templates.TemplateResponse(
            request,
            "meter/confirm.html",
            {
                "staff": staff,
                "month": month,
                "year": year,
                "count": e.count,
                "candidates": candidates,
                "hidden_fields": hidden_fields,
            },
        )

    submitted_by = staff.profile.username if staff.profile else staff.line_user_id
    run_id = journal.create_run(month, year, candidates, submitted_by=submitted_by)
    logger.info("Queued meter batch %d with %d rooms", run_id, len(candidates))
    background_tasks.add_task(
        execute_batch_run,
        run_id,
        candidates,
        month,
        year,
        partial(client_factory, staff.token),
        journal,
    )
    return RedirectResponse(f"/meter/batches/{run_id}", status_code=303)


@router.get("/batches/{run_id}", response_class=HTMLResponse, response_model=None)
async def batch_progress(
    request: Request,
    run_id: int,
    staff: StaffSession = Depends(get_staff_session),
    journal: BatchJournal = Depends(get_journal),
) -> HTMLResponse:
    """Progress page for a submitted batch."""
    run = journal.get_run(run_id)
    if run is None:
        return templates.TemplateResponse(
            request,
            "meter/batch.html",
            {"staff": staff, "run": None},
            status_code=404,
        )
    return templates.TemplateResponse(
        request,
        "meter/batch.html",
        {
            "staff": staff,
            "run": run,
            "poll_interval_ms": settings.BATCH_POLL_INTERVAL_MS,
        },
    )
