"""Startup/shutdown lifecycle hooks and the FastAPI app factory for the usage API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from inkwell.api.db.usage import UsageRepository
from inkwell.core.constants import API_VERSION
from inkwell.core.exceptions import QuotaExceededError, UnknownFeatureError
from inkwell.core.logging import get_logger, setup_logging
from inkwell.data.db import close_engine, get_engine
from inkwell.saas.gate import UsageGate
from inkwell.saas.store import QuotaStore

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Hydrate counters from the DB on startup when persistence is on."""
    settings = get_settings()
    log.info("api_starting", quota_persistence=settings.inkwell_quota_persistence)

    if settings.inkwell_quota_persistence:
        repo = UsageRepository(await get_engine())
        app.state.usage_gate.store.restore(await repo.load_all())
        app.state.usage_repo = repo
    else:
        log.warning("quota_persistence_disabled", detail="usage resets on restart")

    yield

    if settings.inkwell_quota_persistence:
        await close_engine()
    log.info("api_shutdown")


async def _quota_exceeded_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": str(exc), "feature": exc.feature, "allowance": exc.allowance},
    )


async def _unknown_feature_handler(request: Request, exc: UnknownFeatureError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


def create_app(gate: UsageGate | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    setup_logging(settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Inkwell API",
        description="Subscription usage API for the Inkwell writing assistant",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.usage_gate = gate or UsageGate(QuotaStore())
    app.state.usage_repo = None

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(QuotaExceededError, _quota_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(UnknownFeatureError, _unknown_feature_handler)  # type: ignore[arg-type]

    # Register routers
    from inkwell.api.routes.health import router as health_router
    from inkwell.api.routes.usage import router as usage_router

    app.include_router(health_router, prefix="/api")
    app.include_router(usage_router, prefix="/api")

    return app


app = create_app()
