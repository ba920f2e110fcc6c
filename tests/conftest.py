"""Pytest configuration helpers.

This conftest ensures ``backend/`` is on `sys.path` so tests can import the
`vidgen` package regardless of how pytest is invoked, and points the app's
static directories at a scratch location before anything imports it.
"""
import os
import sys
import tempfile
from typing import Callable

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
BACKEND = os.path.join(ROOT, "backend")
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

_SCRATCH = tempfile.mkdtemp(prefix="vidgen-tests-")
os.environ["PUBLIC_DIR"] = os.path.join(_SCRATCH, "public")
os.environ["VIDEOS_DIR"] = os.path.join(_SCRATCH, "public", "videos")
os.environ["HF_TOKEN_Veo3_1"] = ""
os.environ["HF_TOKEN_Sora_2"] = ""

from vidgen.schemas.generation import VideoResult  # noqa: E402
from vidgen.services.dispatch import VideoDispatcher  # noqa: E402
from vidgen.services.providers.base import VideoProvider  # noqa: E402


class SleepRecorder:
    """Stand-in for asyncio.sleep that records the requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingHandler:
    """MockTransport handler that records requests and delegates to ``respond``."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.respond(request)
        # Scripted responses can be served more than once; hand out a copy.
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class StubProvider(VideoProvider):
    """Provider that records calls and returns a canned result."""

    def __init__(self, model: str, *, has_token: bool = True, token_env: str | None = None):
        super().__init__()
        self.model_name = model
        self.provider_name = f"stub-{model}"
        self.token_env = token_env
        self._has_token = has_token
        self.calls: list[tuple[str, int, str]] = []

    @property
    def has_credential(self) -> bool:
        return self._has_token

    async def _generate(self, prompt, duration, ratio, *, should_abort=None):
        self.calls.append((prompt, duration, ratio))
        return VideoResult(
            video_url=f"https://cdn.example.com/{self.model_name}.mp4",
            model=self.model_name,
            prompt=prompt,
            duration=duration,
            ratio=ratio,
            provider=self.provider_name,
        )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def stub_providers() -> dict[str, StubProvider]:
    return {
        "veo-3-fast": StubProvider("veo-3-fast"),
        "veo-3.1-fast": StubProvider("veo-3.1-fast", token_env="HF_TOKEN_Veo3_1"),
        "sora-2": StubProvider("sora-2", has_token=False, token_env="HF_TOKEN_Sora_2"),
    }


@pytest.fixture
def dispatcher(stub_providers: dict[str, StubProvider]) -> VideoDispatcher:
    return VideoDispatcher(stub_providers, token_url="https://huggingface.co/settings/tokens")
