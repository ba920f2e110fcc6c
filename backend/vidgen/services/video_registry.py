"""Declarative video model capability registry.

Single source of truth for the models the proxy exposes: which provider
serves each one, whether it needs a token, and which durations and aspect
ratios it accepts.

Usage:
    from vidgen.services.video_registry import VIDEO_REGISTRY
    cap = VIDEO_REGISTRY.resolve("sora-2")
    VIDEO_REGISTRY.validate(cap, duration=8, aspect_ratio="9:16")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from vidgen.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "veo-3-fast"
DEFAULT_DURATION = 8
DEFAULT_ASPECT_RATIO = "16:9"

_DURATIONS = (5, 8, 10)
_ASPECT_RATIOS = ("16:9", "9:16", "1:1", "4:3")


@dataclass(frozen=True)
class VideoModelCapability:
    """Capability descriptor for a single video model."""
    model: str
    provider: str
    display_name: str
    requires_token: bool
    durations: tuple[int, ...] = _DURATIONS
    aspect_ratios: tuple[str, ...] = _ASPECT_RATIOS
    audio: bool = True


class VideoModelRegistry:
    """In-memory registry of all supported video models."""

    def __init__(self, default_model: str) -> None:
        self._models: dict[str, VideoModelCapability] = {}
        self._default_model = default_model

    def register(self, cap: VideoModelCapability) -> None:
        self._models[cap.model] = cap

    def get(self, model: str) -> VideoModelCapability | None:
        return self._models.get(model)

    def resolve(self, model: str | None) -> VideoModelCapability:
        """Return the capability for ``model``; unknown or unset ids fall back to the default."""
        return self._models.get(model or "") or self._models[self._default_model]

    def list_models(self) -> list[VideoModelCapability]:
        return list(self._models.values())

    def validate(
        self,
        cap: VideoModelCapability,
        *,
        duration: int,
        aspect_ratio: str,
    ) -> None:
        """Raise ValidationError if the parameters are outside the model's capabilities."""
        if duration not in cap.durations:
            allowed = ", ".join(str(d) for d in cap.durations)
            raise ValidationError(
                f"{cap.model} does not support duration={duration}s (allowed: {allowed})"
            )
        if aspect_ratio not in cap.aspect_ratios:
            allowed = ", ".join(cap.aspect_ratios)
            raise ValidationError(
                f"{cap.model} does not support ratio={aspect_ratio} (allowed: {allowed})"
            )

    def to_dict_list(self) -> list[dict[str, Any]]:
        """Serialize all models for API response."""
        return [
            {
                "id": cap.model,
                "provider": cap.provider,
                "requiresToken": cap.requires_token,
                "durations": list(cap.durations),
                "aspectRatios": list(cap.aspect_ratios),
                "audio": cap.audio,
            }
            for cap in self._models.values()
        ]


VIDEO_REGISTRY = VideoModelRegistry(DEFAULT_MODEL)

VIDEO_REGISTRY.register(VideoModelCapability(
    model="veo-3-fast",
    provider="nekolabs",
    display_name="Nekolabs",
    requires_token=False,
))

VIDEO_REGISTRY.register(VideoModelCapability(
    model="veo-3.1-fast",
    provider="huggingface",
    display_name="Hugging Face (VEO-3.1)",
    requires_token=True,
))

VIDEO_REGISTRY.register(VideoModelCapability(
    model="sora-2",
    provider="huggingface",
    display_name="Hugging Face (Sora-2)",
    requires_token=True,
))

logger.debug("Video registry initialized: %d models", len(VIDEO_REGISTRY.list_models()))
