"""Pydantic v2 schemas for video generation requests and results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    """Body of ``POST /api/generate``.

    Every field is optional at the schema level so that a missing prompt is
    reported as a 400 by the dispatcher instead of a framework 422.
    """

    model: str | None = None
    prompt: str | None = None
    duration: int | str | None = None
    ratio: str | None = None
    audio: bool = True


class VideoResult(BaseModel):
    """Uniform adapter output, serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    video_url: str = Field(serialization_alias="videoUrl")
    model: str
    prompt: str
    duration: int
    ratio: str
    provider: str
    audio: bool = True
    filename: str | None = None
    task_id: str | None = Field(default=None, serialization_alias="taskId")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
