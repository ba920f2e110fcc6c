"""VidGen — FastAPI application entry point.

Mounts the API routes, configures CORS, serves the front-end and generated
videos as static files, and runs the video retention sweeper.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from vidgen import __version__
from vidgen.api.router import api_router
from vidgen.config import Settings, get_settings
from vidgen.services.cleanup import VideoSweeper
from vidgen.services.video_registry import VIDEO_REGISTRY

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _log_startup_banner(settings: Settings) -> None:
    """Log listen address and per-model readiness. Tokens are never printed."""
    token_state = {
        "veo-3.1-fast": ("HF_TOKEN_Veo3_1", settings.VEO31_TOKEN is not None),
        "sora-2": ("HF_TOKEN_Sora_2", settings.SORA2_TOKEN is not None),
    }
    logger.info("VidGen %s listening on http://%s:%d", __version__, settings.HOST, settings.PORT)
    for cap in VIDEO_REGISTRY.list_models():
        if not cap.requires_token:
            logger.info("  %-13s %s: ready (no token needed)", cap.model, cap.display_name)
            continue
        env_name, configured = token_state.get(cap.model, ("?", False))
        if configured:
            logger.info("  %-13s %s: ready (%s configured)", cap.model, cap.display_name, env_name)
        else:
            logger.warning(
                "  %-13s %s: disabled, add %s (get one at %s)",
                cap.model, cap.display_name, env_name, settings.HF_TOKEN_URL,
            )
    logger.info(
        "Local videos in %s are deleted after %ds",
        settings.VIDEOS_DIR, int(settings.VIDEO_MAX_AGE_SECONDS),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start the sweeper on startup, stop it on shutdown."""
    os.makedirs(settings.VIDEOS_DIR, exist_ok=True)
    _log_startup_banner(settings)

    sweeper = VideoSweeper(
        settings.VIDEOS_DIR,
        max_age_seconds=settings.VIDEO_MAX_AGE_SECONDS,
        interval_seconds=settings.CLEANUP_INTERVAL_SECONDS,
    )
    sweeper.start()

    yield

    await sweeper.stop()
    logger.info("VidGen shut down")


app = FastAPI(
    title="VidGen API",
    description="Text-to-video proxy for Nekolabs and Hugging Face providers",
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount API routes
app.include_router(api_router)

# Front-end and generated videos; must come after the API routes
os.makedirs(settings.VIDEOS_DIR, exist_ok=True)
os.makedirs(settings.PUBLIC_DIR, exist_ok=True)
app.mount(settings.VIDEOS_URL_PREFIX, StaticFiles(directory=settings.VIDEOS_DIR), name="videos")
app.mount("/", StaticFiles(directory=settings.PUBLIC_DIR, html=True), name="public")


def run() -> None:
    """Console entry point."""
    uvicorn.run("vidgen.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
