from __future__ import annotations

from contextlib import asynccontextmanager
import time
from typing import AsyncIterator
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from statehub.apps.api.deps import build_services
from statehub.apps.api.errors import (
    http_exception_handler,
    statehub_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from statehub.apps.api.response import API_VERSION, REQUEST_ID_HEADER
from statehub.apps.api.routes.accounts import router as accounts_router
from statehub.apps.api.routes.health import router as health_router
from statehub.apps.api.routes.notifications import router as notifications_router
from statehub.apps.api.routes.sessions import router as sessions_router
from statehub.core.config import Settings, get_settings
from statehub.core.errors import StatehubError
from statehub.core.logging import configure_logging
from statehub.persistence.db import build_engine, build_sessionmaker
from statehub.persistence.repos.accounts import SqlAccountStore
from statehub.persistence.repos.base import AccountStore, NotificationStore, OverlayStore
from statehub.persistence.repos.notifications import SqlNotificationStore, SqlOverlayStore
from statehub.services.telemetry import record_request


def create_app(
    settings: Settings | None = None,
    *,
    account_store: AccountStore | None = None,
    notification_store: NotificationStore | None = None,
    overlay_store: OverlayStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = None
    if account_store is None or notification_store is None or overlay_store is None:
        # Build SQL-backed stores for whatever the caller did not inject.
        engine = build_engine(settings=settings)
        session_factory = build_sessionmaker(engine)
        account_store = account_store or SqlAccountStore(session_factory)
        notification_store = notification_store or SqlNotificationStore(session_factory)
        overlay_store = overlay_store or SqlOverlayStore(session_factory)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(title="statehub API", version=API_VERSION, lifespan=lifespan)
    app.state.services = build_services(
        settings,
        account_store=account_store,
        notification_store=notification_store,
        overlay_store=overlay_store,
        engine=engine,
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        start = time.monotonic()
        response = await call_next(request)
        # Key samples by route template so per-account paths share one series.
        route = request.scope.get("route")
        record_request(
            route=f"{request.method} {getattr(route, 'path', request.url.path)}",
            status_code=response.status_code,
            latency_ms=(time.monotonic() - start) * 1000.0,
        )
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response

    app.add_exception_handler(StatehubError, statehub_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router, prefix=f"/{API_VERSION}")
    app.include_router(sessions_router, prefix=f"/{API_VERSION}")
    app.include_router(accounts_router, prefix=f"/{API_VERSION}")
    app.include_router(notifications_router, prefix=f"/{API_VERSION}")

    return app
