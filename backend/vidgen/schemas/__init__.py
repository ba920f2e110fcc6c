"""Pydantic v2 schemas package."""

from vidgen.schemas.generation import GenerationRequest, VideoResult

__all__ = ["GenerationRequest", "VideoResult"]
