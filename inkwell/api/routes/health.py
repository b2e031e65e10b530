"""Health check endpoint — no auth required."""

from __future__ import annotations

from fastapi import APIRouter

from config.settings import get_settings
from inkwell.api.models.schemas import HealthResponse
from inkwell.core.constants import API_VERSION

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        version=API_VERSION,
        environment=settings.inkwell_env,
        quota_persistence=settings.inkwell_quota_persistence,
    )
