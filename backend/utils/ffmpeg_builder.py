from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from models.gif_models import ConversionParameters, GifJob
from utils.path_safety import escape_for_shell

logger = logging.getLogger(__name__)

PALETTE_MAX_COLORS = 256
SCALE_FLAGS = "lanczos"
DITHER = "floyd_steinberg"


@dataclass
class FFmpegCommand:
    binary: str
    input_options: list[str]
    input_file: str
    output_options: list[str]
    filter_complex: str
    output_file: str


def format_seconds(value: float) -> str:
    """Render seconds in plain decimal notation; ffmpeg rejects exponents."""
    numeric = float(value)
    if numeric.is_integer():
        return str(int(numeric))
    return f"{numeric:.6f}".rstrip("0").rstrip(".")


class GifCommandBuilder:
    def __init__(
        self,
        ffmpeg_bin: str,
        input_path: str | os.PathLike[str],
        output_path: str | os.PathLike[str],
        parameters: ConversionParameters,
    ):
        self.ffmpeg_bin = ffmpeg_bin
        self.input_path = os.fspath(input_path)
        self.output_path = os.fspath(output_path)
        self.parameters = parameters

    def build(self) -> FFmpegCommand:
        input_options: list[str] = []
        if self.parameters.start_time > 0:
            input_options.extend(["-ss", format_seconds(self.parameters.start_time)])

        output_options: list[str] = []
        if self.parameters.duration > 0:
            output_options.extend(["-t", format_seconds(self.parameters.duration)])

        return FFmpegCommand(
            binary=self.ffmpeg_bin,
            input_options=input_options,
            input_file=self.input_path,
            output_options=output_options,
            filter_complex=self._build_filter_graph(),
            output_file=self.output_path,
        )

    def build_args(self) -> list[str]:
        cmd = self.build()
        return [
            cmd.binary,
            *cmd.input_options,
            "-i",
            cmd.input_file,
            *cmd.output_options,
            "-filter_complex",
            cmd.filter_complex,
            "-y",
            cmd.output_file,
        ]

    def build_command_string(self) -> str:
        cmd = self.build()

        parts = [escape_for_shell(cmd.binary)]
        parts.extend(cmd.input_options)
        parts.append(f"-i {escape_for_shell(cmd.input_file)}")
        parts.extend(cmd.output_options)
        parts.append(f"-filter_complex {escape_for_shell(cmd.filter_complex)}")
        parts.append("-y")
        parts.append(escape_for_shell(cmd.output_file))

        return " ".join(parts)

    def _build_filter_graph(self) -> str:
        # Single palette computed over the whole clip.
        prepare = (
            f"fps={self.parameters.fps},"
            f"scale={self.parameters.scale}:-1:flags={SCALE_FLAGS},"
            "split[s0][s1]"
        )
        palettegen = (
            f"[s0]palettegen=max_colors={PALETTE_MAX_COLORS}"
            ":reserve_transparent=0:stats_mode=full[p]"
        )
        paletteuse = f"[s1][p]paletteuse=dither={DITHER}:diff_mode=rectangle"
        return ";".join([prepare, palettegen, paletteuse])


def build_gif_command(job: GifJob) -> list[str]:
    builder = GifCommandBuilder(
        job.ffmpeg_bin, job.input_path, job.output_path, job.parameters
    )
    logger.info(f"FFmpeg command: {builder.build_command_string()}")
    return builder.build_args()


def build_probe_args(ffmpeg_bin: str, input_path: str | Path) -> list[str]:
    return [
        ffmpeg_bin,
        "-hide_banner",
        "-i",
        os.fspath(input_path),
        "-f",
        "null",
        "-",
    ]


def build_version_args(ffmpeg_bin: str) -> list[str]:
    return [ffmpeg_bin, "-version"]
