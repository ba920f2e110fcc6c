"""Health endpoint — static capability report per provider and model."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from vidgen import __version__
from vidgen.config import Settings, get_settings
from vidgen.services.video_registry import VIDEO_REGISTRY

router = APIRouter()


def build_health_report(settings: Settings) -> dict[str, Any]:
    """Describe which providers and models are usable with the current config."""
    token_flags = {
        "veo-3-fast": True,
        "veo-3.1-fast": settings.VEO31_TOKEN is not None,
        "sora-2": settings.SORA2_TOKEN is not None,
    }
    has_veo31 = token_flags["veo-3.1-fast"]
    has_sora2 = token_flags["sora-2"]

    models = []
    for cap in VIDEO_REGISTRY.list_models():
        ready = token_flags.get(cap.model, False) or not cap.requires_token
        models.append({
            "id": cap.model,
            "provider": cap.provider,
            "requiresToken": cap.requires_token,
            "status": "available" if ready else "needs_token",
        })

    return {
        "status": "ok",
        "message": "Server is running",
        "apis": {
            "nekolabs": {
                "status": "available",
                "model": "veo-3-fast",
                "requiresToken": False,
                "endpoint": settings.NEKOLABS_BASE_URL,
            },
            "huggingface_veo31": {
                "status": "available" if has_veo31 else "token_required",
                "model": "veo-3.1-fast",
                "requiresToken": True,
                "tokenConfigured": has_veo31,
                "tokenUrl": settings.HF_TOKEN_URL,
            },
            "huggingface_sora2": {
                "status": "available" if has_sora2 else "token_required",
                "model": "sora-2",
                "requiresToken": True,
                "tokenConfigured": has_sora2,
                "tokenUrl": settings.HF_TOKEN_URL,
            },
        },
        "models": models,
        "version": __version__,
    }


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    """Report per-provider availability and per-model readiness."""
    return build_health_report(settings)
