"""Hugging Face video generation provider (veo-3.1-fast, sora-2).

One parameterized adapter serves every Hugging Face hosted model; instances
differ only by HuggingFaceModelConfig.

Call pattern:
1. GET  {hub}/api/models/{id}?expand[]=inferenceProviderMapping → fal-ai model id
2. POST {router}/fal-ai/{provider_model_id}?_subdomain=queue → queued job
   (request_id, status, response_url)
3. GET  {router}/fal-ai/<job path>/status until COMPLETED, then GET the result
4. Download video.url (or take inline bytes), save it under the videos dir and
   return a /videos/<file> URL
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from urllib.parse import urlparse

import httpx

from vidgen.errors import (
    FALLBACK_MODEL,
    AuthError,
    CredentialMissingError,
    GenerationCancelledError,
    ProviderError,
    RateLimitError,
    UpstreamUnavailableError,
)
from vidgen.schemas.generation import VideoResult
from vidgen.services.providers.base import ShouldAbort, VideoProvider

logger = logging.getLogger(__name__)

# Routes the call through fal's job queue instead of a blocking request.
QUEUE_PARAMS = {"_subdomain": "queue"}

_QUEUE_FAILURE_STATUSES = ("FAILED", "ERROR", "CANCELLED")


@dataclass(frozen=True)
class HuggingFaceModelConfig:
    """Per-model settings for the Hugging Face adapter."""
    model_name: str
    hf_model_id: str
    token_env: str
    filename_prefix: str
    provider_tag: str
    token: str | None = field(default=None, repr=False)


VEO31_FAST = HuggingFaceModelConfig(
    model_name="veo-3.1-fast",
    hf_model_id="akhaliq/veo3.1-fast",
    token_env="HF_TOKEN_Veo3_1",
    filename_prefix="veo31",
    provider_tag="huggingface-veo31",
)

SORA_2 = HuggingFaceModelConfig(
    model_name="sora-2",
    hf_model_id="akhaliq/sora-2",
    token_env="HF_TOKEN_Sora_2",
    filename_prefix="sora2",
    provider_tag="huggingface-sora2",
)


def find_provider_model_id(mapping: Any, provider: str) -> str | None:
    """Pick the downstream model id from an inferenceProviderMapping payload.

    The Hub has returned this both as ``{provider: {...}}`` and as a list of
    ``{"provider": ..., "providerId": ...}`` entries.
    """
    entry: Any = None
    if isinstance(mapping, dict):
        entry = mapping.get(provider)
    elif isinstance(mapping, list):
        entry = next(
            (m for m in mapping if isinstance(m, dict) and m.get("provider") == provider),
            None,
        )
    if not isinstance(entry, dict) or entry.get("status") == "error":
        return None
    return entry.get("providerId") or None


def _extract_video_url(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    video = payload.get("video")
    if isinstance(video, dict) and video.get("url"):
        return video["url"]
    if isinstance(video, str) and video:
        return video
    videos = payload.get("videos")
    if isinstance(videos, list) and videos and isinstance(videos[0], dict):
        return videos[0].get("url") or None
    return payload.get("url") or None


class HuggingFaceVideoProvider(VideoProvider):
    """Call-based adapter: one queued text-to-video job per video."""

    def __init__(
        self,
        config: HuggingFaceModelConfig,
        *,
        videos_dir: str,
        url_prefix: str = "/videos",
        hub_url: str = "https://huggingface.co",
        router_url: str = "https://router.huggingface.co",
        inference_provider: str = "fal-ai",
        request_timeout: float = 600.0,
        queue_poll_interval: float = 1.0,
        token_url: str = "https://huggingface.co/settings/tokens",
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        super().__init__()
        self.config = config
        self.provider_name = config.provider_tag
        self.model_name = config.model_name
        self.token_env = config.token_env
        self._videos_dir = videos_dir
        self._url_prefix = url_prefix.rstrip("/")
        self._hub_url = hub_url.rstrip("/")
        self._router_url = router_url.rstrip("/")
        self._inference_provider = inference_provider
        self._request_timeout = request_timeout
        self._queue_poll_interval = queue_poll_interval
        self._token_url = token_url
        self._http_client = http_client
        self._sleep = sleep
        self._provider_model_id: str | None = None

    @property
    def has_credential(self) -> bool:
        return bool(self.config.token)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.token}"}

    async def _generate(
        self,
        prompt: str,
        duration: int,
        ratio: str,
        *,
        should_abort: ShouldAbort | None = None,
    ) -> VideoResult:
        if not self.config.token:
            raise CredentialMissingError(
                self.model_name, self.config.token_env, self._token_url
            )

        logger.info(
            "Calling Hugging Face for %s (prompt=%.50s...)", self.model_name, prompt
        )

        client = self._http_client or httpx.AsyncClient(timeout=60.0)
        own_client = self._http_client is None

        try:
            provider_model_id = await self._resolve_provider_model(client)
            video_bytes = await self._text_to_video(
                client, provider_model_id, prompt, duration, ratio, should_abort
            )
        except httpx.HTTPStatusError as e:
            raise self._map_status_error(e.response) from e
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"{self.model_name} error: request timed out. "
                f"Try using {FALLBACK_MODEL} which is always available."
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"{self.model_name} error: {e}. "
                f"Try using {FALLBACK_MODEL} which is always available."
            ) from e
        finally:
            if own_client:
                await client.aclose()

        filename = await asyncio.to_thread(self._save_video, video_bytes)
        video_url = f"{self._url_prefix}/{filename}"
        logger.info("Video saved: %s", video_url)

        return VideoResult(
            video_url=video_url,
            model=self.model_name,
            prompt=prompt,
            duration=duration,
            ratio=ratio,
            provider=self.provider_name,
            filename=filename,
        )

    async def _resolve_provider_model(self, client: httpx.AsyncClient) -> str:
        """Look up (once) which fal-ai model backs the Hugging Face model id."""
        if self._provider_model_id:
            return self._provider_model_id

        resp = await client.get(
            f"{self._hub_url}/api/models/{self.config.hf_model_id}",
            params={"expand[]": "inferenceProviderMapping"},
            headers=self._headers(),
        )
        resp.raise_for_status()
        data = self._json(resp)

        provider_model_id = find_provider_model_id(
            data.get("inferenceProviderMapping") if isinstance(data, dict) else None,
            self._inference_provider,
        )
        if not provider_model_id:
            raise UpstreamUnavailableError(
                f"{self.model_name} model is not served by {self._inference_provider} "
                f"right now. Please use {FALLBACK_MODEL} instead, or try again later."
            )

        logger.debug(
            "%s mapped to %s/%s",
            self.config.hf_model_id, self._inference_provider, provider_model_id,
        )
        self._provider_model_id = provider_model_id
        return provider_model_id

    async def _text_to_video(
        self,
        client: httpx.AsyncClient,
        provider_model_id: str,
        prompt: str,
        duration: int,
        ratio: str,
        should_abort: ShouldAbort | None,
    ) -> bytes:
        body = {
            "prompt": prompt,
            "duration": duration,
            "aspect_ratio": ratio,
        }
        resp = await client.post(
            f"{self._router_url}/{self._inference_provider}/{provider_model_id}",
            params=QUEUE_PARAMS,
            json=body,
            headers=self._headers(),
            timeout=self._request_timeout,
        )
        resp.raise_for_status()

        content_type = resp.headers.get("content-type", "")
        if content_type.startswith("video/") or "octet-stream" in content_type:
            video_bytes = resp.content
        else:
            payload = self._json(resp)
            if isinstance(payload, dict) and payload.get("request_id"):
                payload = await self._wait_for_result(
                    client, provider_model_id, payload, should_abort
                )
            video_url = _extract_video_url(payload)
            if not video_url:
                raise UpstreamUnavailableError(
                    f"{self.model_name} returned no video. "
                    f"Please use {FALLBACK_MODEL} instead, or try again later."
                )
            video_bytes = await self._download(client, video_url)

        if not video_bytes:
            raise ProviderError("No video data received from Hugging Face API")
        return video_bytes

    async def _wait_for_result(
        self,
        client: httpx.AsyncClient,
        provider_model_id: str,
        job: dict[str, Any],
        should_abort: ShouldAbort | None,
    ) -> Any:
        """Poll a queued fal-ai job through the router until COMPLETED, then fetch its result.

        The job's ``response_url`` points at fal directly; only its path is
        kept and re-rooted under the router so the bearer token still applies.
        """
        request_id = job["request_id"]
        job_path = urlparse(job.get("response_url") or "").path
        if not job_path:
            job_path = f"/{provider_model_id}/requests/{request_id}"
        job_url = f"{self._router_url}/{self._inference_provider}{job_path}"

        status = str(job.get("status") or "").upper()
        max_polls = max(1, int(self._request_timeout / self._queue_poll_interval))
        polls = 0
        while status != "COMPLETED":
            if status in _QUEUE_FAILURE_STATUSES:
                raise ProviderError(
                    f"{self.model_name} error: generation {status.lower()} upstream. "
                    f"Try using {FALLBACK_MODEL} which is always available."
                )
            if polls >= max_polls:
                raise ProviderError(
                    f"{self.model_name} error: request timed out. "
                    f"Try using {FALLBACK_MODEL} which is always available."
                )

            await self._sleep(self._queue_poll_interval)
            if should_abort is not None and await should_abort():
                logger.info("Client went away, abandoning job %s", request_id)
                raise GenerationCancelledError("Video generation cancelled by client")

            polls += 1
            resp = await client.get(
                f"{job_url}/status", params=QUEUE_PARAMS, headers=self._headers()
            )
            resp.raise_for_status()
            data = self._json(resp)
            status = str(data.get("status") or "").upper() if isinstance(data, dict) else ""
            if polls % 10 == 0:
                logger.debug("Job %s status after %d polls: %s", request_id, polls, status)

        resp = await client.get(
            job_url,
            params=QUEUE_PARAMS,
            headers=self._headers(),
            timeout=self._request_timeout,
        )
        resp.raise_for_status()
        return self._json(resp)

    async def _download(self, client: httpx.AsyncClient, url: str) -> bytes:
        try:
            resp = await client.get(url, timeout=self._request_timeout)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"{self.model_name} error: video download failed "
                f"({e.response.status_code}). "
                f"Try using {FALLBACK_MODEL} which is always available."
            ) from e
        return resp.content

    def _json(self, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                f"{self.model_name} model is currently unavailable or not accessible. "
                f"Please use {FALLBACK_MODEL} instead, or try again later."
            ) from e

    def _map_status_error(self, resp: httpx.Response) -> ProviderError:
        status_code = resp.status_code
        if status_code in (401, 403):
            return AuthError(
                f"Invalid Hugging Face token. Please check {self.config.token_env} is correct."
            )
        if status_code == 429:
            return RateLimitError(
                f"Hugging Face API rate limit exceeded. Please try {FALLBACK_MODEL} "
                "instead or wait a few minutes."
            )
        if status_code == 404:
            return UpstreamUnavailableError(
                f"{self.model_name} model not found on Hugging Face. "
                f"Please use {FALLBACK_MODEL} which is always available."
            )
        if status_code == 503:
            return UpstreamUnavailableError(
                f"{self.model_name} model is currently unavailable or not accessible. "
                f"Please use {FALLBACK_MODEL} instead, or try again later."
            )
        return ProviderError(
            f"{self.model_name} error: API returned {status_code}. "
            f"Try using {FALLBACK_MODEL} which is always available."
        )

    def _save_video(self, video_bytes: bytes) -> str:
        """Write bytes under a fresh unique name; the rename makes the file appear whole."""
        os.makedirs(self._videos_dir, exist_ok=True)

        filename = (
            f"{self.config.filename_prefix}_{int(time.time() * 1000)}"
            f"_{uuid.uuid4().hex[:8]}.mp4"
        )
        filepath = os.path.join(self._videos_dir, filename)
        tmp_path = f"{filepath}.part"

        try:
            with open(tmp_path, "wb") as f:
                f.write(video_bytes)
            os.replace(tmp_path, filepath)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        return filename
