"""Authentication web routes.

Credentials are checked by the backend; the dashboard only keeps the
issued bearer token and profile in its signed session cookie.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from dormdesk.services.backend_client import BackendClient, BackendError
from dormdesk.services.staff import StaffSession
from dormdesk.web.dependencies import add_flash_message, get_backend_client, get_staff_session
from dormdesk.web.template_config import templates

logger = logging.getLogger(__name__)

router = APIRouter()


def _safe_next(next_url: str | None) -> str:
    # Only same-site relative paths
    if not next_url or not next_url.startswith("/") or next_url.startswith("//"):
        return "/"
    return next_url


@router.get("/login", response_class=HTMLResponse, response_model=None)
async def login_page(
    request: Request,
    staff: StaffSession = Depends(get_staff_session),
) -> HTMLResponse | RedirectResponse:
    """Display login form."""
    if staff.is_logged_in:
        return RedirectResponse("/", status_code=303)
    return templates.TemplateResponse(
        request,
        "auth/login.html",
        {
            "next": _safe_next(request.query_params.get("next")),
            "line_user_id": staff.line_user_id,
        },
    )


@router.post("/login", response_class=HTMLResponse, response_model=None)
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    next_url: str = Form("/"),
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> HTMLResponse | RedirectResponse:
    """Process login form."""
    try:
        login_response = await client.login(username, password)
    except (BackendError, httpx.HTTPError) as e:
        logger.info("Login failed for %s: %s", username, e)
        return templates.TemplateResponse(
            request,
            "auth/login.html",
            {
                "error": str(e) or "Login failed",
                "next": _safe_next(next_url),
                "username": username,
                "line_user_id": staff.line_user_id,
            },
            status_code=400,
        )

    staff.sign_in(login_response)
    staff.save(request.session)
    add_flash_message(request, f"Welcome back, {login_response.user.display_name}!", "success")
    return RedirectResponse(_safe_next(next_url), status_code=303)


@router.post("/login/line", response_class=HTMLResponse, response_model=None)
async def login_line(
    request: Request,
    line_user_id: str = Form(...),
    next_url: str = Form("/"),
    staff: StaffSession = Depends(get_staff_session),
    client: BackendClient = Depends(get_backend_client),
) -> HTMLResponse | RedirectResponse:
    """Log in with a LINE user id mapped to a staff account."""
    line_user_id = line_user_id.strip()
    try:
        login_response = await client.login_line(line_user_id)
    except (BackendError, httpx.HTTPError) as e:
        logger.info("LINE login failed: %s", e)
        return templates.TemplateResponse(
            request,
            "auth/login.html",
            {
                "error": str(e) or "LINE login failed",
                "next": _safe_next(next_url),
                "line_user_id": line_user_id,
            },
            status_code=400,
        )

    staff.sign_in(login_response)
    if not staff.line_user_id:
        staff.line_user_id = line_user_id
    staff.save(request.session)
    add_flash_message(request, f"Welcome back, {login_response.user.display_name}!", "success")
    return RedirectResponse(_safe_next(next_url), status_code=303)


@router.get("/logout")
async def logout(
    request: Request,
    staff: StaffSession = Depends(get_staff_session),
) -> RedirectResponse:
    """Log out, keeping the remembered LINE id."""
    staff.sign_out()
    staff.save(request.session)
    add_flash_message(request, "You have been logged out.", "info")
    return RedirectResponse("/login", status_code=303)
