"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from dormdesk.api.routes import batches, health, notifications
from dormdesk.core.config import resolve_api_url, settings
from dormdesk.core.database import Base, engine
from dormdesk.core.logging import configure_logging

# Import models for Base.metadata.create_all
from dormdesk.models import batch  # noqa: F401
from dormdesk.services.backend_client import BackendError, ClientFactory
from dormdesk.services.notifications import NotificationFeed
from dormdesk.web.routes import web_router

logger = logging.getLogger(__name__)

# Static files directory
BASE_DIR = Path(__file__).resolve().parent


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    configure_logging(settings)
    # Startup: Create journal tables
    Base.metadata.create_all(bind=engine)

    scheduler = None
    app.state.notification_feed = None
    if settings.LIVE_REFRESH_ENABLED:
        scheduler = AsyncIOScheduler()
        factory = ClientFactory(resolve_api_url(settings), timeout=settings.API_TIMEOUT_SECONDS)
        app.state.notification_feed = NotificationFeed(
            factory, scheduler, settings.NOTIFICATION_REFRESH_SECONDS
        ).start()
        scheduler.start()

    logger.info("%s %s started", settings.PROJECT_NAME, settings.VERSION)
    yield

    # Shutdown: stop background refresh
    if app.state.notification_feed is not None:
        app.state.notification_feed.close()
    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Dormitory management staff dashboard",
    lifespan=lifespan,
)

# Session middleware for the staff session cookie
app.add_middleware(
    SessionMiddleware,  # type: ignore[arg-type]
    secret_key=settings.SECRET_KEY,
    session_cookie="dormdesk_session",
    max_age=86400 * 7,  # 7 days
    same_site="lax",
    https_only=not settings.DEBUG,
)


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    """Uncaught backend failures surface as a bad gateway."""
    logger.error("Backend error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=502,
        content={"detail": exc.message, "backend_status": exc.status_code},
    )


# Mount static files
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

# Include API routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(batches.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")

# Include web routes (Jinja2 frontend)
app.include_router(web_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dormdesk.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
