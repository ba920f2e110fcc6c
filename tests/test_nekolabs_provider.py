"""Tests for the Nekolabs poll-based provider."""

import httpx
import pytest

from conftest import RecordingHandler, SleepRecorder
from vidgen.errors import (
    GenerationCancelledError,
    GenerationFailedError,
    GenerationTimeoutError,
    TaskCreationError,
)
from vidgen.services.providers.nekolabs_video import (
    NekolabsVideoProvider,
    TaskStatus,
    parse_task,
)

BASE_URL = "https://nekolabs.test"


def _created(task_id: str = "task-1") -> httpx.Response:
    return httpx.Response(200, json={"success": True, "result": {"id": task_id}})


def _status(status: str, **fields) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "result": {"status": status, **fields}})


def _scripted(poll_responses):
    """Serve the create call, then one scripted item per poll (last one repeats).

    Items are responses, or exception classes raised as transport errors.
    """
    polls = list(poll_responses)
    state = {"poll": 0}

    def respond(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/create"):
            return _created()
        index = min(state["poll"], len(polls) - 1)
        state["poll"] += 1
        item = polls[index]
        if isinstance(item, type) and issubclass(item, Exception):
            raise item("boom", request=request)
        return item

    return RecordingHandler(respond)


def _provider(handler: RecordingHandler, sleep: SleepRecorder, **kwargs) -> NekolabsVideoProvider:
    return NekolabsVideoProvider(
        base_url=BASE_URL,
        http_client=handler.client(),
        sleep=sleep,
        **kwargs,
    )


def _poll_count(handler: RecordingHandler) -> int:
    return sum(1 for r in handler.requests if r.url.path.endswith("/get"))


class TestParseTask:
    def test_first_non_empty_url_field_wins(self):
        task = parse_task("t", {"success": True, "result": {
            "status": "succeeded", "output": "", "videoUrl": "https://a/v.mp4", "url": "https://b/v.mp4",
        }})
        assert task.status is TaskStatus.SUCCEEDED
        assert task.result_url == "https://a/v.mp4"

    def test_completed_counts_as_success(self):
        task = parse_task("t", {"success": True, "result": {"status": "completed", "outputUrl": "https://x"}})
        assert task.status is TaskStatus.SUCCEEDED
        assert task.result_url == "https://x"

    def test_unsuccessful_payload_is_pending(self):
        assert parse_task("t", {"success": False}).status is TaskStatus.PENDING
        assert parse_task("t", None).status is TaskStatus.PENDING

    def test_error_status_is_failure(self):
        task = parse_task("t", {"success": True, "result": {"status": "error", "error": "nsfw"}})
        assert task.status is TaskStatus.FAILED
        assert task.error == "nsfw"

    def test_structured_error_is_stringified(self):
        task = parse_task("t", {"success": True, "result": {
            "status": "failed", "error": {"code": 451, "reason": "blocked"},
        }})
        assert task.status is TaskStatus.FAILED
        assert isinstance(task.error, str)
        assert "blocked" in task.error


class TestNekolabsProvider:
    @pytest.mark.asyncio
    async def test_succeeds_after_exactly_k_polls(self, sleep_recorder):
        k = 4
        handler = _scripted([_status("processing")] * (k - 1) + [
            _status("succeeded", output="https://cdn.nekolabs.test/v.mp4"),
        ])
        provider = _provider(handler, sleep_recorder)

        result = await provider.generate("a cat playing", 8, "16:9")

        assert result.success is True
        assert result.video_url == "https://cdn.nekolabs.test/v.mp4"
        assert result.provider == "nekolabs"
        assert result.model == "veo-3-fast"
        assert result.task_id == "task-1"
        assert result.filename is None
        assert _poll_count(handler) == k
        assert len(handler.requests) == k + 1
        assert sleep_recorder.calls == [2.0] * k

    @pytest.mark.asyncio
    async def test_create_request_carries_parameters(self, sleep_recorder):
        handler = _scripted([_status("succeeded", url="https://x/v.mp4")])
        await _provider(handler, sleep_recorder).generate("sunset", 10, "9:16")

        create = handler.requests[0]
        assert create.url.path == "/ai/veo-3-fast/create"
        assert create.url.params["prompt"] == "sunset"
        assert create.url.params["duration"] == "10"
        assert create.url.params["ratio"] == "9:16"
        assert create.url.params["audio"] == "true"
        assert handler.requests[1].url.params["id"] == "task-1"

    @pytest.mark.asyncio
    async def test_always_pending_times_out_at_max_attempts(self, sleep_recorder):
        handler = _scripted([_status("pending")])
        provider = _provider(handler, sleep_recorder)

        with pytest.raises(GenerationTimeoutError) as exc_info:
            await provider.generate("a cat", 8, "16:9")

        assert _poll_count(handler) == 180
        assert len(sleep_recorder.calls) == 180
        assert "6 minutes" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_custom_attempt_budget_is_never_exceeded(self, sleep_recorder):
        handler = _scripted([_status("running")])
        provider = _provider(handler, sleep_recorder, max_attempts=7, poll_interval=0.5)

        with pytest.raises(GenerationTimeoutError):
            await provider.generate("a cat", 8, "16:9")

        assert _poll_count(handler) == 7

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self, sleep_recorder):
        handler = _scripted([
            httpx.Response(500),
            httpx.Response(502),
            _status("succeeded", video="https://x/v.mp4"),
        ])

        result = await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

        assert result.video_url == "https://x/v.mp4"
        assert _poll_count(handler) == 3

    @pytest.mark.asyncio
    async def test_request_timeouts_are_retried(self, sleep_recorder):
        handler = _scripted([
            httpx.ReadTimeout,
            _status("succeeded", videoUrl="https://x/v.mp4"),
        ])

        result = await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

        assert result.video_url == "https://x/v.mp4"
        assert _poll_count(handler) == 2

    @pytest.mark.asyncio
    async def test_transient_errors_consume_attempts(self, sleep_recorder):
        handler = _scripted([httpx.Response(503)])
        provider = _provider(handler, sleep_recorder, max_attempts=5)

        with pytest.raises(GenerationTimeoutError):
            await provider.generate("a cat", 8, "16:9")

        assert _poll_count(handler) == 5

    @pytest.mark.asyncio
    async def test_client_error_aborts_immediately(self, sleep_recorder):
        handler = _scripted([httpx.Response(403), _status("succeeded", url="https://x")])

        with pytest.raises(GenerationFailedError) as exc_info:
            await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

        assert "403" in exc_info.value.message
        assert _poll_count(handler) == 1

    @pytest.mark.asyncio
    async def test_connection_error_is_fatal(self, sleep_recorder):
        handler = _scripted([httpx.ConnectError])

        with pytest.raises(GenerationFailedError):
            await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

        assert _poll_count(handler) == 1

    @pytest.mark.asyncio
    async def test_failure_status_surfaces_upstream_message(self, sleep_recorder):
        handler = _scripted([_status("processing"), _status("failed", error="Prompt rejected")])

        with pytest.raises(GenerationFailedError) as exc_info:
            await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

        assert exc_info.value.message == "Prompt rejected"
        assert _poll_count(handler) == 2

    @pytest.mark.asyncio
    async def test_failure_status_without_message(self, sleep_recorder):
        handler = _scripted([_status("error")])

        with pytest.raises(GenerationFailedError) as exc_info:
            await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

        assert exc_info.value.message == "Video generation failed"

    @pytest.mark.asyncio
    async def test_missing_url_tolerated_during_grace_period(self, sleep_recorder):
        handler = _scripted([_status("succeeded")] * 3 + [_status("succeeded", output="https://x/v.mp4")])
        provider = _provider(handler, sleep_recorder, url_grace_attempts=5)

        result = await provider.generate("a cat", 8, "16:9")

        assert result.video_url == "https://x/v.mp4"
        assert _poll_count(handler) == 4

    @pytest.mark.asyncio
    async def test_missing_url_after_grace_period_is_fatal(self, sleep_recorder):
        handler = _scripted([_status("succeeded")])
        provider = _provider(handler, sleep_recorder, url_grace_attempts=3)

        with pytest.raises(GenerationFailedError) as exc_info:
            await provider.generate("a cat", 8, "16:9")

        assert "no output URL" in exc_info.value.message
        assert _poll_count(handler) == 4

    @pytest.mark.asyncio
    async def test_unsuccessful_poll_payload_keeps_polling(self, sleep_recorder):
        handler = _scripted([
            httpx.Response(200, json={"success": False}),
            httpx.Response(200, text="<html>busy</html>"),
            _status("succeeded", output="https://x/v.mp4"),
        ])

        result = await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

        assert result.video_url == "https://x/v.mp4"
        assert _poll_count(handler) == 3

    @pytest.mark.asyncio
    async def test_create_without_task_id_fails_fast(self, sleep_recorder):
        handler = RecordingHandler(
            lambda request: httpx.Response(200, json={"success": True, "result": {}})
        )

        with pytest.raises(TaskCreationError):
            await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

        assert len(handler.requests) == 1
        assert sleep_recorder.calls == []

    @pytest.mark.asyncio
    async def test_create_http_error_is_task_creation_error(self, sleep_recorder):
        handler = RecordingHandler(lambda request: httpx.Response(502))

        with pytest.raises(TaskCreationError):
            await _provider(handler, sleep_recorder).generate("a cat", 8, "16:9")

    @pytest.mark.asyncio
    async def test_abort_stops_polling(self, sleep_recorder):
        handler = _scripted([_status("pending")])

        async def disconnected() -> bool:
            return True

        with pytest.raises(GenerationCancelledError):
            await _provider(handler, sleep_recorder).generate(
                "a cat", 8, "16:9", should_abort=disconnected
            )

        assert _poll_count(handler) == 0

    @pytest.mark.asyncio
    async def test_metrics_count_calls_and_errors(self, sleep_recorder):
        handler = _scripted([_status("failed")])
        provider = _provider(handler, sleep_recorder)

        with pytest.raises(GenerationFailedError):
            await provider.generate("a cat", 8, "16:9")

        metrics = provider.get_metrics()
        assert metrics["service"] == "nekolabs"
        assert metrics["total_calls"] == 1
        assert metrics["total_errors"] == 1
