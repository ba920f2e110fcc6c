"""Base video provider — uniform generate() contract plus usage metrics."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from vidgen.errors import FALLBACK_MODEL, ProviderError, VideoGenError
from vidgen.schemas.generation import VideoResult

logger = logging.getLogger(__name__)

ShouldAbort = Callable[[], Awaitable[bool]]


class VideoProvider(ABC):
    """Abstract base class for all provider adapters.

    Provides:
    - A single ``generate`` entry point shared by every adapter
    - Conversion of unexpected exceptions into ``ProviderError``
    - Call, error and latency counters for the metrics endpoint
    """

    provider_name: str = "unknown"
    model_name: str = "unknown"
    token_env: str | None = None

    def __init__(self) -> None:
        self._total_calls = 0
        self._total_errors = 0
        self._total_latency_ms = 0

    @property
    def has_credential(self) -> bool:
        """Whether the adapter can be invoked; token-free adapters always can."""
        return True

    async def generate(
        self,
        prompt: str,
        duration: int,
        ratio: str,
        *,
        should_abort: ShouldAbort | None = None,
    ) -> VideoResult:
        """Generate one video and return the normalized result."""
        self._total_calls += 1
        start = time.monotonic()
        try:
            result = await self._generate(
                prompt, duration, ratio, should_abort=should_abort
            )
        except VideoGenError as e:
            self._total_errors += 1
            logger.error("%s failed: %s", self.provider_name, e.message)
            raise
        except Exception as e:
            self._total_errors += 1
            logger.exception("%s failed unexpectedly", self.provider_name)
            raise ProviderError(
                f"{self.model_name} error: {e}. "
                f"Try using {FALLBACK_MODEL} which is always available."
            ) from e

        self._total_latency_ms += int((time.monotonic() - start) * 1000)
        return result

    @abstractmethod
    async def _generate(
        self,
        prompt: str,
        duration: int,
        ratio: str,
        *,
        should_abort: ShouldAbort | None = None,
    ) -> VideoResult:
        """Subclass implements the provider protocol."""
        ...

    def get_metrics(self) -> dict[str, Any]:
        """Return usage statistics for this provider."""
        succeeded = self._total_calls - self._total_errors
        return {
            "service": self.provider_name,
            "model": self.model_name,
            "total_calls": self._total_calls,
            "total_errors": self._total_errors,
            "error_rate": round(self._total_errors / max(self._total_calls, 1), 3),
            "avg_latency_ms": (
                round(self._total_latency_ms / succeeded) if succeeded > 0 else 0
            ),
        }
