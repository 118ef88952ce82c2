from __future__ import annotations

import logging
import math
from typing import Any

from fastapi import UploadFile

from dependencies.settings import AppSettings
from models.gif_models import (
    DEFAULT_DURATION,
    DEFAULT_FPS,
    DEFAULT_SCALE,
    DEFAULT_START_TIME,
    MAX_FPS,
    MAX_SCALE,
    MIN_FPS,
    MIN_SCALE,
    ConversionParameters,
    FailureReason,
    GifJob,
    JobOutcome,
    JobOutcomeKind,
    UploadHandle,
    VideoMetadata,
)
from utils.ffmpeg_builder import build_probe_args
from utils.janitor import ResourceJanitor
from utils.metadata_parser import NoDurationError, parse_video_metadata
from utils.path_safety import is_acceptable_video_name, video_extension
from utils.transcoder import run_gif_job, run_process
from utils.video_utils import job_temp_path, persist_upload

logger = logging.getLogger(__name__)


class GifError(Exception):
    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class UploadMissingError(GifError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("No video uploaded")


class InvalidVideoFormatError(GifError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Invalid video file format")


class EmptyUploadError(GifError):
    def __init__(self) -> None:
        super().__init__("Failed to save uploaded file or file is empty")


class TranscoderFailedError(GifError):
    MESSAGES = {
        FailureReason.INVALID_INPUT: "Invalid or corrupted video file",
        FailureReason.NOT_FOUND: "File not found or access denied",
        FailureReason.PERMISSION_DENIED: "Permission denied accessing file",
        FailureReason.GENERIC: "FFmpeg processing failed",
    }

    def __init__(self, reason: FailureReason, diagnostics: str):
        self.reason = reason
        super().__init__(self.MESSAGES[reason], details=diagnostics)


class TranscoderTimeoutError(GifError):
    pass


class OutputMissingError(GifError):
    def __init__(self) -> None:
        super().__init__("GIF generation failed - no output file created")


class OutputEmptyError(GifError):
    def __init__(self) -> None:
        super().__init__("GIF generation failed - empty output file")


class VideoInfoError(GifError):
    pass


# =============================================================================
# PARAMETERS
# =============================================================================


def _parse_number(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _clamp(value: float, low: float, high: float | None = None) -> float:
    value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def normalize_conversion_parameters(
    fps: Any = None,
    scale: Any = None,
    start_time: Any = None,
    duration: Any = None,
) -> ConversionParameters:
    """Turn untrusted form values into a valid parameter set. Never raises."""
    raw_fps = _parse_number(fps)
    raw_scale = _parse_number(scale)
    raw_start = _parse_number(start_time)
    raw_duration = _parse_number(duration)

    return ConversionParameters(
        fps=int(_clamp(int(raw_fps) if raw_fps is not None else DEFAULT_FPS, MIN_FPS, MAX_FPS)),
        scale=int(
            _clamp(int(raw_scale) if raw_scale is not None else DEFAULT_SCALE, MIN_SCALE, MAX_SCALE)
        ),
        start_time=_clamp(raw_start if raw_start is not None else DEFAULT_START_TIME, 0.0),
        duration=_clamp(raw_duration if raw_duration is not None else DEFAULT_DURATION, 0.0),
    )


# =============================================================================
# UPLOADS & JOBS
# =============================================================================


def validate_upload(upload: UploadFile | None) -> UploadFile:
    if upload is None or not upload.filename:
        raise UploadMissingError()
    if not is_acceptable_video_name(upload.filename):
        logger.warning(f"Rejected upload with unsupported format: {upload.filename}")
        raise InvalidVideoFormatError()
    return upload


async def receive_upload(
    upload: UploadFile | None,
    settings: AppSettings,
    prefix: str,
    token: str,
    janitor: ResourceJanitor,
) -> UploadHandle:
    """Validate the upload and copy it to a per-job temp path owned by ``janitor``."""
    upload = validate_upload(upload)

    stored_path = job_temp_path(
        settings.temp_dir, prefix, token, video_extension(upload.filename)
    )
    janitor.track(stored_path)
    size = await persist_upload(upload, stored_path, settings.max_upload_bytes)
    if size == 0:
        raise EmptyUploadError()

    return UploadHandle(
        original_name=upload.filename,
        size_bytes=size,
        stored_path=stored_path,
    )


def create_gif_job(
    upload: UploadHandle,
    parameters: ConversionParameters,
    settings: AppSettings,
    token: str,
) -> GifJob:
    return GifJob(
        token=token,
        input_path=upload.stored_path,
        output_path=job_temp_path(settings.temp_dir, "gif", token, ".gif"),
        parameters=parameters,
        timeout_seconds=settings.gif_timeout_seconds,
        ffmpeg_bin=settings.ffmpeg_bin,
    )


def raise_for_outcome(outcome: JobOutcome) -> None:
    if outcome.kind == JobOutcomeKind.SUCCESS:
        return
    if outcome.kind == JobOutcomeKind.TIMEOUT:
        raise TranscoderTimeoutError(
            "Processing timed out - video may be too large or complex"
        )
    if outcome.kind == JobOutcomeKind.OUTPUT_MISSING:
        raise OutputMissingError()
    if outcome.kind == JobOutcomeKind.OUTPUT_EMPTY:
        raise OutputEmptyError()
    raise TranscoderFailedError(outcome.reason or FailureReason.GENERIC, outcome.diagnostics)


async def convert_to_gif(job: GifJob) -> JobOutcome:
    params = job.parameters
    logger.info(
        f"Settings: {params.fps}fps, {params.scale}px, "
        f"start: {params.start_time}s, duration: {params.duration}s"
    )
    outcome = await run_gif_job(job)
    raise_for_outcome(outcome)
    return outcome


async def probe_video(upload: UploadHandle, settings: AppSettings) -> VideoMetadata:
    """Run the fixed probe invocation and parse its diagnostic output."""
    args = build_probe_args(settings.ffmpeg_bin, upload.stored_path)
    result = await run_process(args, timeout=settings.probe_timeout_seconds)

    if result.timed_out:
        raise VideoInfoError("Video info extraction timed out")

    # The probe has no output file, so a nonzero exit is expected; only the
    # diagnostic text matters.
    diagnostics = result.diagnostics
    if not diagnostics:
        logger.error("No FFmpeg output received")
        raise VideoInfoError("FFmpeg info extraction failed")

    try:
        return parse_video_metadata(diagnostics, upload.original_name, upload.size_bytes)
    except NoDurationError as exc:
        logger.error("Could not parse video duration from FFmpeg output")
        raise VideoInfoError("Could not extract video information", details=diagnostics) from exc
