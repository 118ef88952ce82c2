"""Supervised execution of the external transcoder."""
from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
from pathlib import Path

import imageio_ffmpeg

from models.gif_models import (
    FailureReason,
    GifJob,
    JobOutcome,
    ProcessResult,
)
from utils.ffmpeg_builder import build_gif_command, build_version_args

logger = logging.getLogger(__name__)

# Checked in order, first match wins. This is a substring heuristic: a
# filename that happens to contain one of these phrases is misclassified.
FAILURE_MARKERS: tuple[tuple[str, FailureReason], ...] = (
    ("Invalid data found", FailureReason.INVALID_INPUT),
    ("No such file", FailureReason.NOT_FOUND),
    ("Permission denied", FailureReason.PERMISSION_DENIED),
)

VERSION_PATTERN = re.compile(r"ffmpeg version (\S+)")


def resolve_ffmpeg_binary(override: str | None = None) -> str:
    if override:
        return override
    found = shutil.which("ffmpeg")
    if found:
        return found
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as exc:
        logger.warning(f"No bundled ffmpeg available: {exc}")
        return "ffmpeg"


def transcoder_available(ffmpeg_bin: str) -> bool:
    if os.path.isfile(ffmpeg_bin):
        return os.access(ffmpeg_bin, os.X_OK)
    return shutil.which(ffmpeg_bin) is not None


def classify_failure(diagnostics: str) -> FailureReason:
    for marker, reason in FAILURE_MARKERS:
        if marker in diagnostics:
            return reason
    return FailureReason.GENERIC


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


async def run_process(args: list[str], timeout: float) -> ProcessResult:
    """Run ``args`` without a shell and wait at most ``timeout`` seconds.

    On expiry the process is killed and reaped before returning. If the
    awaiting task is cancelled the process is killed too.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        logger.error(f"Failed to launch {args[0]}: {exc}")
        return ProcessResult(returncode=None, launch_error=str(exc))

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(process)
        logger.error(f"{Path(args[0]).name} timed out after {timeout}s")
        return ProcessResult(returncode=process.returncode, timed_out=True)
    except asyncio.CancelledError:
        await _kill(process)
        raise

    return ProcessResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


def inspect_output(output_path: Path) -> JobOutcome:
    try:
        size = output_path.stat().st_size
    except FileNotFoundError:
        logger.error("Output file not created")
        return JobOutcome.output_missing(output_path)
    if size == 0:
        logger.error("Output file is empty")
        return JobOutcome.output_empty(output_path)
    return JobOutcome.success(output_path, size)


def outcome_from_result(result: ProcessResult, output_path: Path) -> JobOutcome:
    if result.timed_out:
        return JobOutcome.timeout()
    if not result.succeeded:
        diagnostics = result.diagnostics
        reason = classify_failure(diagnostics)
        logger.error(
            f"FFmpeg failed (code {result.returncode}, reason {reason.value}): {diagnostics}"
        )
        return JobOutcome.process_failure(diagnostics, reason)
    return inspect_output(output_path)


async def run_gif_job(job: GifJob) -> JobOutcome:
    result = await run_process(build_gif_command(job), timeout=job.timeout_seconds)
    outcome = outcome_from_result(result, job.output_path)
    if outcome.ok:
        logger.info(
            f"GIF created: {job.output_path.name} ({outcome.size_bytes / 1024 / 1024:.2f}MB)"
        )
    return outcome


async def get_transcoder_version(ffmpeg_bin: str, timeout: float) -> str:
    """Return the transcoder's version string.

    Raises RuntimeError with the diagnostics when the binary cannot run.
    """
    result = await run_process(build_version_args(ffmpeg_bin), timeout=timeout)
    if result.timed_out:
        raise RuntimeError(f"{ffmpeg_bin} -version timed out after {timeout}s")
    if not result.succeeded:
        raise RuntimeError(result.diagnostics or f"{ffmpeg_bin} exited with code {result.returncode}")
    match = VERSION_PATTERN.search(result.stdout)
    return match.group(1) if match else "Unknown"
