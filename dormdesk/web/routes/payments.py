"""Payment slip web routes."""

import logging
from datetime import date

import httpx
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from dormdesk.models.enums import PaymentStatus
from dormdesk.schemas.invoices import SlipReview
from dormdesk.services.backend_client import BackendClient, BackendError
from dormdesk.services.payments import (
    InvalidReview,
    can_review,
    filter_payments,
    payment_building,
    payment_room_number,
    payment_tenant,
    review_decision,
    summarize_payments,
)
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


@router.get("/", response_class=HTMLResponse, response_model=None)
async def list_payments(
    request: Request,
    room: str = "",
    status: str = "",
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> HTMLResponse | RedirectResponse:
    """Payment history with slip review actions."""
    if not staff.is_logged_in:
        return login_redirect(request)

    try:
        selected_status = PaymentStatus(status) if status else None
    except ValueError:
        selected_status = None

    load_error = None
    try:
        payments = await client.get_payments(room=room.strip() or None, status=selected_status)
    except (BackendError, httpx.HTTPError) as e:
        logger.warning("Payments unavailable: %s", e)
        payments = []
        load_error = str(e) or "Failed to load payments"

    # The backend may ignore filters it does not know, so apply them here too
    payments = filter_payments(payments, room=room, status=selected_status)
    payments.sort(key=lambda p: p.paid_at.timestamp() if p.paid_at else 0, reverse=True)

    return templates.TemplateResponse(
        request,
        "payments/list.html",
        {
            "staff": staff,
            "payments": payments,
            "summary": summarize_payments(payments, date.today()),
            "statuses": list(PaymentStatus),
            "selected_status": selected_status,
            "room": room,
            "room_number": payment_room_number,
            "building": payment_building,
            "tenant": payment_tenant,
            "can_review": can_review,
            "load_error": load_error,
        },
    )


@router.post("/{payment_id}/status", response_model=None)
async def review_payment(
    request: Request,
    payment_id: str,
    status: str = Form(...),
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> RedirectResponse:
    """Verify or reject a slip."""
    if not staff.is_logged_in:
        return login_redirect(request)

    try:
        decision = review_decision(status)
    except InvalidReview as e:
        add_flash_message(request, str(e), "error")
        return RedirectResponse("/payments/", status_code=303)

    try:
        await client.review_slip(SlipReview(payment_id=payment_id, status=decision))
    except (BackendError, httpx.HTTPError) as e:
        add_flash_message(request, f"Could not update payment: {e}", "error")
    else:
        verb = "verified" if decision == PaymentStatus.VERIFIED else "rejected"
        logger.info("Payment %s %s", payment_id, verb)
        add_flash_message(request, f"Payment {verb}.", "success")
    return RedirectResponse("/payments/", status_code=303)
