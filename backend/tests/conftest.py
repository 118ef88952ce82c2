import stat
import sys
from pathlib import Path

import pytest

from dependencies.settings import AppSettings
from utils.path_safety import escape_for_shell

TESTS_DIR = Path(__file__).resolve().parent
FAKE_FFMPEG_SCRIPT = TESTS_DIR / "fake_ffmpeg.py"


@pytest.fixture
def fake_ffmpeg(tmp_path: Path) -> str:
    """Executable wrapper that runs fake_ffmpeg.py with the current interpreter."""
    wrapper = tmp_path / "bin" / "ffmpeg"
    wrapper.parent.mkdir()
    wrapper.write_text(
        "#!/bin/sh\n"
        f"exec {escape_for_shell(sys.executable)} {escape_for_shell(FAKE_FFMPEG_SCRIPT)} \"$@\"\n"
    )
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(wrapper)


@pytest.fixture
def job_dir(tmp_path: Path) -> Path:
    path = tmp_path / "jobs"
    path.mkdir()
    return path


@pytest.fixture
def settings(fake_ffmpeg: str, job_dir: Path) -> AppSettings:
    return AppSettings(
        ffmpeg_bin=fake_ffmpeg,
        temp_dir=job_dir,
        app_env="development",
        gif_timeout_seconds=10.0,
        probe_timeout_seconds=10.0,
        version_timeout_seconds=10.0,
    )


@pytest.fixture
def ffmpeg_mode(monkeypatch):
    def _set(mode: str) -> None:
        monkeypatch.setenv("FAKE_FFMPEG_MODE", mode)

    return _set


@pytest.fixture
def recorded_args(monkeypatch, tmp_path: Path) -> Path:
    path = tmp_path / "ffmpeg_args.json"
    monkeypatch.setenv("FAKE_FFMPEG_ARGS_FILE", str(path))
    return path
