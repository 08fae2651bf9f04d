"""Invoice list web routes."""

import logging
from decimal import Decimal

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from dormdesk.schemas.invoices import Invoice
from dormdesk.services.backend_client import BackendClient, BackendError
from dormdesk.services.staff import StaffSession
from dormdesk.web.dependencies import get_backend_client, get_staff_session, login_redirect
from dormdesk.web.template_config import templates

logger = logging.getLogger(__name__)

router = APIRouter()


def _optional_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def _room_number(invoice: Invoice) -> str:
    if invoice.contract and invoice.contract.room:
        return invoice.contract.room.number
    return ""


@router.get("/", response_class=HTMLResponse, response_model=None)
async def list_invoices(
    request: Request,
    month: str = "",
    year: str = "",
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> HTMLResponse | RedirectResponse:
    """List invoices, optionally for one billing period."""
    if not staff.is_logged_in:
        return login_redirect(request)

    load_error = None
    try:
        invoices = await client.get_invoices()
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("Invoices unavailable: %s", e)
        invoices = []
        load_error = str(e) or "Failed to load invoices"

    period_month = _optional_int(month)
    period_year = _optional_int(year)
    if period_month:
        invoices = [i for i in invoices if i.month == period_month]
    if period_year:
        invoices = [i for i in invoices if i.year == period_year]
    invoices.sort(key=lambda i: (-(i.year or 0), -(i.month or 0), _room_number(i)))

    return templates.TemplateResponse(
        request,
        "invoices/list.html",
        {
            "staff": staff,
            "invoices": invoices,
            "month": period_month,
            "year": period_year,
            "grand_total": sum((i.total_amount for i in invoices), Decimal("0")),
            "room_number": _room_number,
            "load_error": load_error,
        },
    )
