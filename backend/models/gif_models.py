"""
Models for video-to-GIF jobs.

This module defines the schemas shared by the conversion pipeline:
- Conversion parameters and their allowed ranges
- Uploads and jobs (one per request, never reused)
- Job outcomes and failure reasons
- Video metadata extracted from transcoder diagnostics
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# PARAMETER RANGES
# =============================================================================


MIN_FPS = 5
MAX_FPS = 30
DEFAULT_FPS = 15

MIN_SCALE = 240
MAX_SCALE = 1920
DEFAULT_SCALE = 480

DEFAULT_START_TIME = 0.0
DEFAULT_DURATION = 0.0


# =============================================================================
# ENUMS
# =============================================================================


class JobOutcomeKind(str, Enum):
    """Terminal classification of one transcoder run."""

    SUCCESS = "success"
    PROCESS_FAILURE = "process_failure"  # Nonzero exit or spawn error
    TIMEOUT = "timeout"  # Killed after the deadline
    OUTPUT_MISSING = "output_missing"  # Exit 0 but no output file
    OUTPUT_EMPTY = "output_empty"  # Exit 0 but zero-byte output


class FailureReason(str, Enum):
    """Reason derived from the transcoder's diagnostic text."""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    GENERIC = "generic"


# =============================================================================
# PARAMETERS
# =============================================================================


class ConversionParameters(BaseModel):
    """Normalized GIF settings. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    fps: int = Field(default=DEFAULT_FPS, ge=MIN_FPS, le=MAX_FPS, description="Output frame rate")
    scale: int = Field(
        default=DEFAULT_SCALE,
        ge=MIN_SCALE,
        le=MAX_SCALE,
        description="Output width in pixels, height follows the aspect ratio",
    )
    start_time: float = Field(default=DEFAULT_START_TIME, ge=0, description="Seek offset in seconds")
    duration: float = Field(
        default=DEFAULT_DURATION,
        ge=0,
        description="Clip length in seconds (0 = until the end)",
    )


# =============================================================================
# UPLOADS & JOBS
# =============================================================================


@dataclass(frozen=True)
class UploadHandle:
    original_name: str
    size_bytes: int
    stored_path: Path


@dataclass(frozen=True)
class GifJob:
    token: str
    input_path: Path
    output_path: Path
    parameters: ConversionParameters
    timeout_seconds: float
    ffmpeg_bin: str

    @property
    def download_name(self) -> str:
        return f"converted-{self.token}.gif"


@dataclass(frozen=True)
class ProcessResult:
    """Raw result of one supervised subprocess."""

    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    launch_error: str | None = None

    @property
    def succeeded(self) -> bool:
        return not self.timed_out and self.launch_error is None and self.returncode == 0

    @property
    def diagnostics(self) -> str:
        return self.launch_error or self.stderr


@dataclass(frozen=True)
class JobOutcome:
    kind: JobOutcomeKind
    output_path: Path | None = None
    size_bytes: int = 0
    diagnostics: str = ""
    reason: FailureReason | None = None

    @property
    def ok(self) -> bool:
        return self.kind == JobOutcomeKind.SUCCESS

    @classmethod
    def success(cls, output_path: Path, size_bytes: int) -> JobOutcome:
        return cls(kind=JobOutcomeKind.SUCCESS, output_path=output_path, size_bytes=size_bytes)

    @classmethod
    def process_failure(cls, diagnostics: str, reason: FailureReason) -> JobOutcome:
        return cls(kind=JobOutcomeKind.PROCESS_FAILURE, diagnostics=diagnostics, reason=reason)

    @classmethod
    def timeout(cls) -> JobOutcome:
        return cls(kind=JobOutcomeKind.TIMEOUT)

    @classmethod
    def output_missing(cls, output_path: Path) -> JobOutcome:
        return cls(kind=JobOutcomeKind.OUTPUT_MISSING, output_path=output_path)

    @classmethod
    def output_empty(cls, output_path: Path) -> JobOutcome:
        return cls(kind=JobOutcomeKind.OUTPUT_EMPTY, output_path=output_path)


# =============================================================================
# METADATA
# =============================================================================


class VideoMetadata(BaseModel):
    """Fields parsed independently from diagnostic text; only duration is required."""

    duration_seconds: float
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    bitrate_kbps: int | None = None
    filename: str
    size_bytes: int
