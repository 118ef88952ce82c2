import os
import tempfile
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from utils.transcoder import resolve_ffmpeg_binary

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
UPLOAD_LIMIT_MESSAGE = (
    "File size limit exceeded. Please upload videos under 10MB (~30 seconds)."
)


@dataclass(frozen=True)
class AppSettings:
    ffmpeg_bin: str
    temp_dir: Path
    app_env: str = "production"
    host: str = "0.0.0.0"
    port: int = 3001
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    gif_timeout_seconds: float = 120.0
    probe_timeout_seconds: float = 30.0
    version_timeout_seconds: float = 10.0
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @property
    def expose_error_details(self) -> bool:
        return self.app_env.strip().lower() != "production"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings() -> AppSettings:
    origins = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]
    temp_dir = os.getenv("GIF_TEMP_DIR", "").strip() or tempfile.gettempdir()

    return AppSettings(
        ffmpeg_bin=resolve_ffmpeg_binary(os.getenv("FFMPEG_BIN", "").strip() or None),
        temp_dir=Path(temp_dir),
        app_env=os.getenv("APP_ENV", "production").strip() or "production",
        host=os.getenv("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3001),
        max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        gif_timeout_seconds=_env_float("GIF_TIMEOUT_SECONDS", 120.0),
        probe_timeout_seconds=_env_float("PROBE_TIMEOUT_SECONDS", 30.0),
        version_timeout_seconds=_env_float("VERSION_TIMEOUT_SECONDS", 10.0),
        cors_origins=origins or ["*"],
    )


@lru_cache
def get_settings() -> AppSettings:
    return load_settings()
