import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from pushfanout.api import health
from pushfanout.api.router import api_router
from pushfanout.config import Settings, get_settings
from pushfanout.notifications.models import PayloadDefaults
from pushfanout.notifications.push import (
    PushDispatcher,
    PushNotConfiguredError,
    WebPushSender,
)
from pushfanout.notifications.store import (
    InMemorySubscriptionStore,
    InvalidSubscription,
    SubscriptionStore,
)
from pushfanout.notifications.vapid import (
    VapidConfigError,
    load_vapid_credentials,
)

logger = structlog.get_logger()

load_dotenv()


class _SampleHealthAccess(logging.Filter):
    """Show only 1-in-N access log lines for /health checks."""

    def __init__(self, every: int = 60) -> None:
        super().__init__()
        self.every = every
        self._count = 0

    def filter(self, record: logging.LogRecord) -> bool:
        args = getattr(record, "args", None)
        if isinstance(args, tuple) and len(args) >= 3:
            path = args[2]
            if isinstance(path, str) and path.split("?", 1)[0] == "/health":
                self._count += 1
                return (self._count % self.every) == 0
        return True


def _install_access_log_filter() -> None:
    uv_logger = logging.getLogger("uvicorn.access")
    filt = _SampleHealthAccess(every=30)
    uv_logger.addFilter(filt)


def build_dispatcher(
    settings: Settings,
    store: SubscriptionStore,
) -> PushDispatcher:
    """Validate VAPID once and wire the dispatcher.

    Invalid credentials leave the dispatcher without a sender
    for the lifetime of the process.
    """
    try:
        credentials = load_vapid_credentials(
            settings.vapid_public_key,
            settings.vapid_private_key,
            settings.vapid_subject,
        )
        sender: WebPushSender | None = WebPushSender(
            credentials,
            ttl=settings.push_ttl,
            timeout=settings.push_timeout_s,
        )
        logger.info("push_notifications_enabled", subject=credentials.subject)
    except VapidConfigError as e:
        logger.warning("push_notifications_disabled", reason=str(e))
        sender = None
    except Exception:
        logger.exception("push_notifications_disabled")
        sender = None
    return PushDispatcher(
        store=store,
        sender=sender,
        defaults=PayloadDefaults.from_settings(settings),
        concurrency=settings.push_concurrency,
    )


@asynccontextmanager
async def lifespan(
    app: FastAPI,
) -> AsyncGenerator[None]:
    settings = get_settings()
    _install_access_log_filter()
    logger.info("starting_up", version=settings.app_version)

    store = InMemorySubscriptionStore()
    app.state.subscription_store = store
    app.state.push_dispatcher = build_dispatcher(settings, store)

    yield

    logger.info("shutting_down", subs=store.count())


async def _invalid_subscription(request: Request, exc: Exception) -> JSONResponse:
    logger.info("subscribe_rejected", reason=str(exc))
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": "invalid subscription"},
    )


async def _invalid_request(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": "invalid request body"},
    )


async def _not_configured(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=PushNotConfiguredError.status,
        content={
            "ok": False,
            "status": PushNotConfiguredError.status,
            "error": PushNotConfiguredError.message,
        },
    )


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_failed", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": str(exc)},
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    application.add_exception_handler(InvalidSubscription, _invalid_subscription)
    application.add_exception_handler(RequestValidationError, _invalid_request)
    application.add_exception_handler(PushNotConfiguredError, _not_configured)
    application.add_exception_handler(Exception, _unexpected)

    application.include_router(health.router, tags=["health"])
    application.include_router(api_router, prefix="/api")

    public_dir = Path(settings.public_dir) if settings.public_dir else None
    if public_dir is None or not (public_dir / "index.html").is_file():

        @application.get("/", response_class=PlainTextResponse)
        async def index() -> str:
            return f"{settings.app_name} OK"

    # Mounted last so API routes win over same-named files
    if public_dir is not None and public_dir.is_dir():
        application.mount(
            "/",
            StaticFiles(directory=str(public_dir), html=True),
            name="public",
        )
    return application


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
