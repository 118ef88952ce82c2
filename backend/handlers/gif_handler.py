import logging
import os

from fastapi import APIRouter, Depends, File, Form, UploadFile
from starlette.responses import FileResponse
from starlette.types import Receive, Scope, Send

from dependencies.settings import AppSettings, get_settings
from models.api_models import ErrorResponse, VideoInfoResponse
from operators.gif_operator import (
    convert_to_gif,
    create_gif_job,
    normalize_conversion_parameters,
    probe_video,
    receive_upload,
)
from utils.janitor import ResourceJanitor
from utils.video_utils import new_job_token

router = APIRouter(tags=["gif"])
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


class GifFileResponse(FileResponse):
    """Streams a job's output and releases the job's files afterwards.

    Cleanup runs once the body has been sent, or when sending fails or is
    cancelled. The file is gone after the first response, so byte ranges
    are not offered and ``Range`` headers are ignored.
    """

    media_type = "image/gif"

    def __init__(self, path: str | os.PathLike[str], janitor: ResourceJanitor, filename: str):
        super().__init__(
            path,
            media_type="image/gif",
            filename=filename,
            stat_result=os.stat(path),
        )
        if "accept-ranges" in self.headers:
            del self.headers["accept-ranges"]
        self.janitor = janitor

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        scope = dict(scope)
        scope["headers"] = [
            (name, value) for name, value in scope.get("headers", []) if name != b"range"
        ]
        try:
            await super().__call__(scope, receive, send)
        except Exception as exc:
            logger.error(f"File stream error: {exc}")
            raise
        finally:
            self.janitor.cleanup_once()


@router.post(
    "/gif",
    response_class=GifFileResponse,
    responses={200: {"content": {"image/gif": {}}}, **ERROR_RESPONSES},
)
async def create_gif(
    video: UploadFile | None = File(None),
    fps: str | None = Form(None),
    scale: str | None = Form(None),
    start_time: str | None = Form(None, alias="startTime"),
    duration: str | None = Form(None),
    settings: AppSettings = Depends(get_settings),
):
    janitor = ResourceJanitor("gif")
    streaming = False
    try:
        token = new_job_token()
        upload = await receive_upload(video, settings, "input", token, janitor)
        logger.info(f"Processing video: {upload.original_name}")

        params = normalize_conversion_parameters(fps, scale, start_time, duration)
        job = create_gif_job(upload, params, settings, token)
        janitor.track(job.output_path)

        outcome = await convert_to_gif(job)

        response = GifFileResponse(outcome.output_path, janitor=janitor, filename=job.download_name)
        streaming = True
        return response
    finally:
        if not streaming:
            janitor.cleanup_once()


@router.post("/video-info", response_model=VideoInfoResponse, responses=ERROR_RESPONSES)
async def video_info(
    video: UploadFile | None = File(None),
    settings: AppSettings = Depends(get_settings),
):
    janitor = ResourceJanitor("info")
    try:
        upload = await receive_upload(video, settings, "info", new_job_token(), janitor)
        metadata = await probe_video(upload, settings)
    finally:
        janitor.cleanup_once()

    return VideoInfoResponse(
        duration=metadata.duration_seconds,
        width=metadata.width,
        height=metadata.height,
        fps=metadata.fps,
        bitrate=metadata.bitrate_kbps,
        filename=metadata.filename,
        file_size=metadata.size_bytes,
    )
