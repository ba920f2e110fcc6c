"""Video generation endpoint.

The only place where adapter errors become HTTP status codes and bodies.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from vidgen.errors import VideoGenError
from vidgen.schemas.generation import GenerationRequest
from vidgen.services.dispatch import VideoDispatcher, get_dispatcher

router = APIRouter()
logger = logging.getLogger(__name__)


def error_response(exc: VideoGenError) -> JSONResponse:
    """Map an error from the taxonomy to its wire response."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@router.post("/generate")
async def generate_video(
    request: Request,
    body: GenerationRequest | None = None,
    dispatcher: VideoDispatcher = Depends(get_dispatcher),
):
    """Generate a video with the requested model and return its URL."""
    body = (body or GenerationRequest()).model_copy(update={"audio": True})

    try:
        result = await dispatcher.route(body, should_abort=request.is_disconnected)
    except VideoGenError as exc:
        if exc.status_code >= 500:
            logger.error("Failed to generate video: %s", exc.message)
        return error_response(exc)
    except Exception as exc:
        logger.exception("Failed to generate video")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc) or "Failed to generate video", "success": False},
        )

    logger.info("Video generated: provider=%s url=%s", result.provider, result.video_url)
    return {"success": True, "data": result.to_wire()}
