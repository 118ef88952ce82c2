import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from dependencies.settings import AppSettings, get_settings
from models.api_models import ErrorResponse, HealthResponse, TranscoderStatusResponse
from operators.gif_operator import GifError
from utils.transcoder import get_transcoder_version, transcoder_available

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)

PROCESS_STARTED_AT = time.monotonic()


@router.get("/health", response_model=HealthResponse)
async def health(settings: AppSettings = Depends(get_settings)):
    return HealthResponse(
        timestamp=datetime.now(timezone.utc),
        transcoder_available=transcoder_available(settings.ffmpeg_bin),
        uptime_seconds=time.monotonic() - PROCESS_STARTED_AT,
    )


@router.get(
    "/test-transcoder",
    response_model=TranscoderStatusResponse,
    responses={500: {"model": ErrorResponse}},
)
async def test_transcoder(settings: AppSettings = Depends(get_settings)):
    try:
        version = await get_transcoder_version(
            settings.ffmpeg_bin, timeout=settings.version_timeout_seconds
        )
    except RuntimeError as e:
        logger.error(f"Transcoder check failed: {e}")
        raise GifError("FFmpeg not working", details=str(e))

    return TranscoderStatusResponse(
        status="FFmpeg is working",
        version=version,
        path=settings.ffmpeg_bin,
    )
