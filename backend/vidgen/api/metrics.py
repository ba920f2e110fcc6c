"""Metrics API — provider usage statistics."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from vidgen.services.dispatch import VideoDispatcher, get_dispatcher

router = APIRouter()


@router.get("/generation")
async def generation_metrics(dispatcher: VideoDispatcher = Depends(get_dispatcher)):
    """Return usage statistics for every registered provider."""
    return {"services": dispatcher.get_metrics()}
