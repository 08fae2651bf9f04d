"""Web routes package."""

from fastapi import APIRouter

from dormdesk.web.routes import auth, dashboard, invoices, maintenance, meter, payments

web_router = APIRouter()

web_router.include_router(dashboard.router, tags=["web-dashboard"])
web_router.include_router(auth.router, tags=["web-auth"])
web_router.include_router(meter.router, prefix="/meter", tags=["web-meter"])
web_router.include_router(invoices.router, prefix="/invoices", tags=["web-invoices"])
web_router.include_router(payments.router, prefix="/payments", tags=["web-payments"])
web_router.include_router(maintenance.router, prefix="/maintenance", tags=["web-maintenance"])
