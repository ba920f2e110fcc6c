"""Nekolabs video generation provider (veo-3-fast, no token required).

Async task pattern:
1. GET /ai/veo-3-fast/create → task id
2. GET /ai/veo-3-fast/get?id=… → poll until a terminal status
3. Return the upstream-hosted video URL (nothing is stored locally)
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from vidgen.errors import (
    GenerationCancelledError,
    GenerationFailedError,
    GenerationTimeoutError,
    TaskCreationError,
)
from vidgen.schemas.generation import VideoResult
from vidgen.services.providers.base import ShouldAbort, VideoProvider

logger = logging.getLogger(__name__)

# Upstream has shipped the result URL under each of these keys; first non-empty wins.
RESULT_URL_FIELDS = ("output", "videoUrl", "url", "video", "outputUrl")

_SUCCESS_STATUSES = ("succeeded", "completed")
_FAILURE_STATUSES = ("failed", "error")


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class VideoTask:
    """Remote task state as seen by the latest poll."""
    task_id: str
    status: TaskStatus = TaskStatus.PENDING
    raw_status: str | None = None
    result_url: str | None = None
    error: str | None = None


def parse_task(task_id: str, payload: Any) -> VideoTask:
    """Build a VideoTask from a poll response; unusable payloads count as pending."""
    task = VideoTask(task_id=task_id)
    if not isinstance(payload, dict) or not payload.get("success"):
        return task
    result = payload.get("result")
    if not isinstance(result, dict):
        return task

    raw_status = str(result.get("status") or "").lower()
    task.raw_status = raw_status
    if raw_status in _SUCCESS_STATUSES:
        task.status = TaskStatus.SUCCEEDED
        task.result_url = _extract_result_url(result)
    elif raw_status in _FAILURE_STATUSES:
        task.status = TaskStatus.FAILED
        error = result.get("error")
        task.error = str(error) if error else None
    return task


def _extract_result_url(result: dict[str, Any]) -> str | None:
    for field_name in RESULT_URL_FIELDS:
        value = result.get(field_name)
        if isinstance(value, str) and value:
            return value
    return None


def _format_budget(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds:g} seconds"


class NekolabsVideoProvider(VideoProvider):
    """Poll-based adapter for the Nekolabs veo-3-fast API."""

    provider_name = "nekolabs"
    model_name = "veo-3-fast"

    def __init__(
        self,
        *,
        base_url: str = "https://api.nekolabs.my.id",
        poll_interval: float = 2.0,
        max_attempts: int = 180,
        url_grace_attempts: int = 30,
        request_timeout: float = 10.0,
        verify_ssl: bool = True,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        super().__init__()
        self._base_url = base_url.rstrip("/")
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._url_grace_attempts = url_grace_attempts
        self._request_timeout = request_timeout
        self._verify_ssl = verify_ssl
        self._http_client = http_client
        self._sleep = sleep

    @property
    def poll_budget_seconds(self) -> float:
        return self._max_attempts * self._poll_interval

    async def _generate(
        self,
        prompt: str,
        duration: int,
        ratio: str,
        *,
        should_abort: ShouldAbort | None = None,
    ) -> VideoResult:
        client = self._http_client or httpx.AsyncClient(
            timeout=30.0, verify=self._verify_ssl
        )
        own_client = self._http_client is None

        try:
            task_id = await self._create_task(client, prompt, duration, ratio)
            task = await self._poll_task(client, task_id, should_abort)
        finally:
            if own_client:
                await client.aclose()

        logger.info("Nekolabs video ready: task=%s url=%s", task.task_id, task.result_url)
        return VideoResult(
            video_url=task.result_url,
            model=self.model_name,
            prompt=prompt,
            duration=duration,
            ratio=ratio,
            provider=self.provider_name,
            task_id=task.task_id,
        )

    async def _create_task(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        duration: int,
        ratio: str,
    ) -> str:
        create_url = f"{self._base_url}/ai/veo-3-fast/create"
        params = {
            "prompt": prompt,
            "ratio": ratio,
            "duration": str(duration),
            "audio": "true",
        }

        try:
            resp = await client.get(create_url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise TaskCreationError(
                f"Failed to create video task: API error {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TaskCreationError(f"Failed to create video task: {e}") from e
        except ValueError as e:
            raise TaskCreationError("Failed to create video task: malformed response") from e

        result = data.get("result") if isinstance(data, dict) else None
        task_id = result.get("id") if isinstance(result, dict) else None
        if not task_id or not data.get("success"):
            raise TaskCreationError("Failed to create video task")

        logger.info("Nekolabs task created: %s", task_id)
        return str(task_id)

    async def _poll_task(
        self,
        client: httpx.AsyncClient,
        task_id: str,
        should_abort: ShouldAbort | None,
    ) -> VideoTask:
        poll_url = f"{self._base_url}/ai/veo-3-fast/get"

        for attempt in range(1, self._max_attempts + 1):
            await self._sleep(self._poll_interval)

            if should_abort is not None and await should_abort():
                logger.info("Nekolabs task %s: caller disconnected, stop polling", task_id)
                raise GenerationCancelledError("Video generation cancelled by client")

            try:
                resp = await client.get(
                    poll_url,
                    params={"id": task_id},
                    timeout=self._request_timeout,
                )
                resp.raise_for_status()
                payload = resp.json()
            except httpx.TimeoutException:
                logger.warning(
                    "Nekolabs poll timeout (attempt %d/%d), retrying...",
                    attempt, self._max_attempts,
                )
                continue
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code >= 500:
                    logger.warning(
                        "Nekolabs API error %d (attempt %d/%d), retrying...",
                        status_code, attempt, self._max_attempts,
                    )
                    continue
                raise GenerationFailedError(f"Nekolabs API error: {status_code}") from e
            except httpx.HTTPError as e:
                raise GenerationFailedError(f"Nekolabs API error: {e}") from e
            except ValueError:
                payload = None

            task = parse_task(task_id, payload)

            if task.status is TaskStatus.SUCCEEDED:
                if task.result_url:
                    return task
                if attempt > self._url_grace_attempts:
                    waited = _format_budget(self._url_grace_attempts * self._poll_interval)
                    raise GenerationFailedError(
                        f"Video succeeded but no output URL after {waited}"
                    )
                logger.debug("Nekolabs task %s succeeded, output URL not populated yet", task_id)
            elif task.status is TaskStatus.FAILED:
                raise GenerationFailedError(task.error or "Video generation failed")

            if attempt % 5 == 0:
                logger.info(
                    "Still processing... (%ds) - status: %s",
                    int(attempt * self._poll_interval), task.raw_status,
                )

        raise GenerationTimeoutError(
            f"Video generation timeout ({_format_budget(self.poll_budget_seconds)})"
        )
