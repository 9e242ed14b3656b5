"""Render API endpoint - synchronous caption overlay rendering."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from src.config import Settings, get_settings
from src.exceptions import InvalidFieldValueError, InvalidTimeRangeError, LimitExceededError
from src.render.pipeline import RenderPipeline
from src.render.text_renderer import Overlay
from src.schemas.render import RenderRequest, RenderResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def get_render_pipeline() -> RenderPipeline:
    return RenderPipeline()


RenderPipelineDep = Annotated[RenderPipeline, Depends(get_render_pipeline)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def validate_overlays(render_request: RenderRequest, settings: Settings) -> list[Overlay]:
    """Check limits and time windows, and convert to pipeline overlays.

    Raises:
        LimitExceededError: Too many overlays or a caption is too long
        InvalidTimeRangeError: An overlay window is negative or empty
        InvalidFieldValueError: videoUrl is not an http(s) URL
    """
    if not render_request.video_url.startswith(("http://", "https://")):
        raise InvalidFieldValueError(
            "videoUrl must be an http(s) URL", field="videoUrl"
        )

    if len(render_request.overlays) > settings.max_overlays:
        raise LimitExceededError(
            field="overlays",
            value=len(render_request.overlays),
            max_value=settings.max_overlays,
        )

    overlays: list[Overlay] = []
    for index, item in enumerate(render_request.overlays):
        if len(item.text) > settings.max_caption_length:
            raise LimitExceededError(
                f"Overlay {index} text is {len(item.text)} characters "
                f"(max: {settings.max_caption_length})",
                field="overlays",
            )
        if item.start < 0 or item.end <= item.start:
            raise InvalidTimeRangeError(item.start, item.end, index=index)
        overlays.append(Overlay(text=item.text, start=item.start, end=item.end))

    return overlays


@router.post(
    "/render",
    response_model=RenderResponse,
    status_code=status.HTTP_200_OK,
)
async def render_overlay(
    render_request: RenderRequest,
    pipeline: RenderPipelineDep,
    settings: SettingsDep,
) -> RenderResponse:
    """
    Burn timed captions into a video and publish the result.

    Renders synchronously and returns once the video is uploaded.
    """
    overlays = validate_overlays(render_request, settings)
    logger.info(f"Render requested: {len(overlays)} overlay(s) for {render_request.video_url}")

    job = await pipeline.render(render_request.video_url, overlays)

    return RenderResponse(
        url=job.output_url,
        run_id=job.run_id,
        style=job.style.name,
    )
