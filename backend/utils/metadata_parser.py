from __future__ import annotations

import re

from models.gif_models import VideoMetadata

DURATION_PATTERN = re.compile(r"Duration: (\d{2}):(\d{2}):(\d{2})\.(\d{2})")
RESOLUTION_PATTERN = re.compile(r"(\d{3,4})x(\d{3,4})")
FPS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*fps")
BITRATE_PATTERN = re.compile(r"bitrate: (\d+)\s*kb/s")


class NoDurationError(ValueError):
    def __init__(self) -> None:
        super().__init__("No duration found in transcoder output")


def parse_duration(text: str) -> float | None:
    match = DURATION_PATTERN.search(text)
    if not match:
        return None
    hours, minutes, seconds, hundredths = (int(group) for group in match.groups())
    return hours * 3600 + minutes * 60 + seconds + hundredths / 100


def parse_video_metadata(text: str, filename: str, size_bytes: int) -> VideoMetadata:
    """Extract metadata from ffmpeg's diagnostic output.

    Every field is matched on its own. Only the duration is mandatory:
    without it the probe is treated as having produced nothing usable.
    """
    duration = parse_duration(text)
    if duration is None:
        raise NoDurationError()

    resolution = RESOLUTION_PATTERN.search(text)
    fps = FPS_PATTERN.search(text)
    bitrate = BITRATE_PATTERN.search(text)

    return VideoMetadata(
        duration_seconds=duration,
        width=int(resolution.group(1)) if resolution else None,
        height=int(resolution.group(2)) if resolution else None,
        fps=float(fps.group(1)) if fps else None,
        bitrate_kbps=int(bitrate.group(1)) if bitrate else None,
        filename=filename,
        size_bytes=size_bytes,
    )
