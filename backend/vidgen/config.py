"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings

# Values shipped in the sample .env; treated as "no token configured".
_TOKEN_PLACEHOLDERS = frozenset({
    "your_veo3.1_token_here",
    "your_sora2_token_here",
})


def _clean_token(value: str) -> str | None:
    value = value.strip()
    if not value or value in _TOKEN_PLACEHOLDERS:
        return None
    return value


class Settings(BaseSettings):
    """VidGen application settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "VidGen"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: str = "*"

    # --- Local storage ---
    PUBLIC_DIR: str = "public"
    VIDEOS_DIR: str = "public/videos"
    VIDEOS_URL_PREFIX: str = "/videos"

    # --- Nekolabs (veo-3-fast, no token) ---
    NEKOLABS_BASE_URL: str = "https://api.nekolabs.my.id"
    NEKOLABS_VERIFY_SSL: bool = False  # upstream certificate chain is broken
    POLL_INTERVAL_SECONDS: float = 2.0
    POLL_MAX_ATTEMPTS: int = 180
    POLL_URL_GRACE_ATTEMPTS: int = 30
    POLL_REQUEST_TIMEOUT: float = 10.0

    # --- Hugging Face (veo-3.1-fast, sora-2) ---
    HF_TOKEN_Veo3_1: str = ""
    HF_TOKEN_Sora_2: str = ""
    HF_HUB_URL: str = "https://huggingface.co"
    HF_ROUTER_URL: str = "https://router.huggingface.co"
    HF_PROVIDER: str = "fal-ai"
    HF_REQUEST_TIMEOUT: float = 600.0
    HF_QUEUE_POLL_INTERVAL: float = 1.0
    HF_TOKEN_URL: str = "https://huggingface.co/settings/tokens"

    # --- Retention sweeper ---
    CLEANUP_INTERVAL_SECONDS: float = 3600.0
    VIDEO_MAX_AGE_SECONDS: float = 3600.0

    @property
    def VEO31_TOKEN(self) -> str | None:
        return _clean_token(self.HF_TOKEN_Veo3_1)

    @property
    def SORA2_TOKEN(self) -> str | None:
        return _clean_token(self.HF_TOKEN_Sora_2)

    @property
    def POLL_TIMEOUT_SECONDS(self) -> float:
        """Wall-clock polling budget implied by attempts × interval."""
        return self.POLL_MAX_ATTEMPTS * self.POLL_INTERVAL_SECONDS

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
