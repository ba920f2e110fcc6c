"""Dispatch router — picks the provider adapter for a request.

Precondition checks (prompt, parameters, credential presence) all run here,
before any adapter is invoked, so callers get a structured error instead of
a failure discovered mid-generation.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from functools import lru_cache
from typing import Any

from vidgen.config import Settings, get_settings
from vidgen.errors import CredentialMissingError, ValidationError
from vidgen.schemas.generation import GenerationRequest, VideoResult
from vidgen.services.providers import (
    HuggingFaceVideoProvider,
    NekolabsVideoProvider,
    VideoProvider,
)
from vidgen.services.providers.base import ShouldAbort
from vidgen.services.providers.huggingface_video import SORA_2, VEO31_FAST
from vidgen.services.video_registry import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_DURATION,
    VIDEO_REGISTRY,
    VideoModelRegistry,
)

logger = logging.getLogger(__name__)


def _parse_duration(value: int | str | None) -> int:
    if value is None or value == "":
        return DEFAULT_DURATION
    try:
        return int(str(value).strip().rstrip("s"))
    except ValueError:
        raise ValidationError(f"Invalid duration: {value!r}") from None


class VideoDispatcher:
    """Routes generation requests to one of the registered providers."""

    def __init__(
        self,
        providers: dict[str, VideoProvider],
        *,
        registry: VideoModelRegistry = VIDEO_REGISTRY,
        token_url: str = "https://huggingface.co/settings/tokens",
    ) -> None:
        self._providers = providers
        self._registry = registry
        self._token_url = token_url

    @property
    def providers(self) -> list[VideoProvider]:
        return list(self._providers.values())

    def select(self, model: str | None) -> VideoProvider:
        """Return the adapter for ``model``; unknown or unset ids get the default."""
        return self._providers[self._registry.resolve(model).model]

    async def route(
        self,
        request: GenerationRequest,
        *,
        should_abort: ShouldAbort | None = None,
    ) -> VideoResult:
        prompt = (request.prompt or "").strip()
        if not prompt:
            raise ValidationError("Prompt is required")

        cap = self._registry.resolve(request.model)
        duration = _parse_duration(request.duration)
        ratio = request.ratio or DEFAULT_ASPECT_RATIO
        self._registry.validate(cap, duration=duration, aspect_ratio=ratio)

        provider = self._providers[cap.model]
        if not provider.has_credential:
            raise CredentialMissingError(
                cap.model, provider.token_env or "", self._token_url
            )

        logger.info(
            "New request: model=%s duration=%ds ratio=%s provider=%s prompt=%r",
            cap.model, duration, ratio, cap.display_name, prompt,
        )
        return await provider.generate(
            prompt, duration, ratio, should_abort=should_abort
        )

    def get_metrics(self) -> list[dict[str, Any]]:
        return [p.get_metrics() for p in self._providers.values()]


def build_dispatcher(settings: Settings) -> VideoDispatcher:
    """Wire up all providers from settings."""
    hf_options = dict(
        videos_dir=settings.VIDEOS_DIR,
        url_prefix=settings.VIDEOS_URL_PREFIX,
        hub_url=settings.HF_HUB_URL,
        router_url=settings.HF_ROUTER_URL,
        inference_provider=settings.HF_PROVIDER,
        request_timeout=settings.HF_REQUEST_TIMEOUT,
        queue_poll_interval=settings.HF_QUEUE_POLL_INTERVAL,
        token_url=settings.HF_TOKEN_URL,
    )
    providers: dict[str, VideoProvider] = {
        "veo-3-fast": NekolabsVideoProvider(
            base_url=settings.NEKOLABS_BASE_URL,
            poll_interval=settings.POLL_INTERVAL_SECONDS,
            max_attempts=settings.POLL_MAX_ATTEMPTS,
            url_grace_attempts=settings.POLL_URL_GRACE_ATTEMPTS,
            request_timeout=settings.POLL_REQUEST_TIMEOUT,
            verify_ssl=settings.NEKOLABS_VERIFY_SSL,
        ),
        "veo-3.1-fast": HuggingFaceVideoProvider(
            replace(VEO31_FAST, token=settings.VEO31_TOKEN),
            **hf_options,
        ),
        "sora-2": HuggingFaceVideoProvider(
            replace(SORA_2, token=settings.SORA2_TOKEN),
            **hf_options,
        ),
    }
    return VideoDispatcher(providers, token_url=settings.HF_TOKEN_URL)


@lru_cache
def get_dispatcher() -> VideoDispatcher:
    """Process-wide dispatcher; adapters are read-only after construction."""
    return build_dispatcher(get_settings())
