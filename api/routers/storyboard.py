"""Storyboard endpoints.

``/parse`` only runs the script parser.  ``/generate`` runs the whole
pipeline and returns the final run state; ``/stream`` emits one NDJSON line
per state transition so clients can show frames as they arrive.
"""

import logging
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import StreamingResponse

from api.config import Settings
from api.dependencies import get_script, get_settings_dependency, get_storyboard_service
from core.exceptions import ServiceUnavailableException
from core.models import (
    ParseResponse,
    RunStatus,
    SampleScriptResponse,
    StoryboardResponse,
)
from parsers.script import parse_script
from services.storyboard import StoryboardService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/sample",
    response_model=SampleScriptResponse,
    status_code=status.HTTP_200_OK,
    summary="Sample screenplay",
    description="Return the bundled example screenplay in the expected heading/annotation format.",
)
async def sample_script(
    settings: Settings = Depends(get_settings_dependency),
) -> SampleScriptResponse:
    """Return the bundled sample screenplay."""
    try:
        script = Path(settings.sample_script_path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Sample script unreadable: {e}")
        raise ServiceUnavailableException(
            "Sample script is not available",
            details={"path": settings.sample_script_path},
        )
    return SampleScriptResponse(script=script)


@router.post(
    "/parse",
    response_model=ParseResponse,
    status_code=status.HTTP_200_OK,
    summary="Parse a screenplay",
    description=(
        "Extract scenes (**N. ...** headings) and their [画面/特写/蒙太奇：...] "
        "descriptions without generating images."
    ),
)
async def parse(script: str = Depends(get_script)) -> ParseResponse:
    """Parse a script into scene descriptors."""
    scenes = parse_script(script)
    return ParseResponse(scenes=scenes, total_scenes=len(scenes))


@router.post(
    "/generate",
    response_model=StoryboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate a storyboard",
    description=(
        "Generate one image per scene, strictly in scene order. Returns 422 when the "
        "script contains no scenes with descriptions and 502 when the generative "
        "service fails; frames generated before a failure are still returned."
    ),
)
async def generate(
    http_response: Response,
    script: str = Depends(get_script),
    service: StoryboardService = Depends(get_storyboard_service),
) -> StoryboardResponse:
    """Run the storyboard pipeline to completion."""
    run = await service.run(script)

    if run.status == RunStatus.FAILED:
        if run.total_scenes == 0:
            http_response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        else:
            http_response.status_code = status.HTTP_502_BAD_GATEWAY

    return StoryboardResponse.from_run(run)


@router.post(
    "/stream",
    status_code=status.HTTP_200_OK,
    summary="Generate a storyboard with progress",
    description=(
        "Stream run snapshots as newline-delimited JSON. The last line carries "
        "status 'done' or 'failed'."
    ),
    response_class=StreamingResponse,
)
async def stream(
    script: str = Depends(get_script),
    service: StoryboardService = Depends(get_storyboard_service),
) -> StreamingResponse:
    """Stream progress snapshots of a storyboard run."""
    runs = service.iter_run(script)
    # Provider errors must surface before the response starts
    first = await anext(runs)

    async def _snapshots() -> AsyncIterator[str]:
        yield StoryboardResponse.from_run(first).model_dump_json() + "\n"
        async for run in runs:
            yield StoryboardResponse.from_run(run).model_dump_json() + "\n"

    return StreamingResponse(_snapshots(), media_type="application/x-ndjson")
