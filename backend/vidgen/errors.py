"""Error taxonomy for video generation.

Adapters raise these; the request handler in ``vidgen.api.generate`` is the
only place that turns them into HTTP responses.
"""

from __future__ import annotations

from typing import Any

FALLBACK_MODEL = "veo-3-fast"


class VideoGenError(Exception):
    """Base class for every failure surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, "success": False}


class ValidationError(VideoGenError):
    """Bad or missing request input."""

    status_code = 400

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message}


class CredentialMissingError(VideoGenError):
    """The selected model needs a token that was not configured at startup."""

    status_code = 400

    def __init__(self, model: str, token_env: str, token_url: str) -> None:
        self.model = model
        self.token_env = token_env
        self.token_url = token_url
        super().__init__(
            f"{model} requires Hugging Face API token. Please add {token_env} "
            f"to .env file or use {FALLBACK_MODEL} (no token needed)."
        )

    def to_body(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "needsToken": True,
            "tokenUrl": self.token_url,
        }


# --- Poll-based adapter ---

class TaskCreationError(VideoGenError):
    """Remote task submission did not return a task id."""


class GenerationFailedError(VideoGenError):
    """Remote task reached a failure status or polling hit a fatal error."""


class GenerationTimeoutError(VideoGenError):
    """No terminal status within the polling budget."""


class GenerationCancelledError(VideoGenError):
    """Polling stopped because the caller went away."""


# --- Call-based adapters ---

class ProviderError(VideoGenError):
    """Generic upstream failure from a call-based provider."""


class AuthError(ProviderError):
    """Upstream rejected the configured token."""


class RateLimitError(ProviderError):
    """Upstream rate limit hit."""


class UpstreamUnavailableError(ProviderError):
    """Model missing, unmapped, or returning malformed responses."""
