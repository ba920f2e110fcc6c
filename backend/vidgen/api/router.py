"""Master API router — mounts all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from vidgen.api.generate import router as generate_router
from vidgen.api.health import router as health_router
from vidgen.api.metrics import router as metrics_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(generate_router, tags=["Generation"])
api_router.include_router(health_router, tags=["System"])
api_router.include_router(metrics_router, prefix="/metrics", tags=["Metrics"])
