import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from dependencies.settings import UPLOAD_LIMIT_MESSAGE, AppSettings, get_settings
from handlers.gif_handler import router as gif_router
from handlers.health_handler import router as health_router
from operators.gif_operator import GifError
from utils.transcoder import get_transcoder_version
from utils.video_utils import UploadTooLargeError

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(ROOT_DIR / ".env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("gif-studio")


def _attach_file_handler(
    logger_name: str,
    log_file_path: Path,
    level_name: str | None = None,
) -> None:
    logger_level = (level_name or LOG_LEVEL).upper()
    logger_level_value = getattr(logging, logger_level, logging.INFO)

    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setLevel(logger_level_value)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )

    target_logger = logging.getLogger(logger_name)
    if not any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == str(log_file_path)
        for handler in target_logger.handlers
    ):
        target_logger.addHandler(file_handler)
    target_logger.setLevel(logger_level_value)


GIF_JOBS_LOG_FILE = os.getenv("GIF_JOBS_LOG_FILE", "").strip()
GIF_JOBS_LOG_LEVEL = os.getenv("GIF_JOBS_LOG_LEVEL", "INFO").strip()
if GIF_JOBS_LOG_FILE:
    jobs_log_path = Path(GIF_JOBS_LOG_FILE)
    if not jobs_log_path.is_absolute():
        jobs_log_path = ROOT_DIR / jobs_log_path
    _attach_file_handler("handlers.gif_handler", jobs_log_path, level_name=GIF_JOBS_LOG_LEVEL)
    _attach_file_handler("operators.gif_operator", jobs_log_path, level_name=GIF_JOBS_LOG_LEVEL)
    _attach_file_handler("utils.transcoder", jobs_log_path, level_name=GIF_JOBS_LOG_LEVEL)
    _attach_file_handler("utils.janitor", jobs_log_path, level_name=GIF_JOBS_LOG_LEVEL)

ENDPOINTS = [
    ("POST", "/gif", "Convert video to GIF"),
    ("POST", "/video-info", "Get video metadata"),
    ("GET", "/health", "Health check"),
    ("GET", "/test-transcoder", "Test FFmpeg installation"),
]


def resolve_settings(app: FastAPI) -> AppSettings:
    provider = app.dependency_overrides.get(get_settings, get_settings)
    return provider()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = resolve_settings(app)
    logger.info(f"GIF Studio API running on port {settings.port} ({settings.app_env})")
    logger.info("Available endpoints:")
    for method, path, description in ENDPOINTS:
        logger.info(f"   {method} {path} - {description}")

    try:
        version = await get_transcoder_version(
            settings.ffmpeg_bin, timeout=settings.version_timeout_seconds
        )
        logger.info(f"FFmpeg ready: {version} ({settings.ffmpeg_bin})")
    except RuntimeError as e:
        logger.warning(f"FFmpeg not found or not working properly: {e}")

    yield


class UploadLimitMiddleware:
    """Rejects requests whose declared body size is over the upload cap."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            content_length = None
            for name, value in scope.get("headers", []):
                if name == b"content-length":
                    content_length = value
                    break
            if content_length is not None:
                settings = resolve_settings(scope["app"])
                try:
                    too_large = int(content_length) > settings.max_upload_bytes
                except ValueError:
                    too_large = False
                if too_large:
                    response = PlainTextResponse(UPLOAD_LIMIT_MESSAGE, status_code=413)
                    await response(scope, receive, send)
                    return
        await self.app(scope, receive, send)


def _error_body(request: Request, error: str, details: str | None = None) -> dict:
    body = {"error": error}
    if details and resolve_settings(request.app).expose_error_details:
        body["details"] = details
    return body


app = FastAPI(title="GIF Studio API", lifespan=lifespan)

app.include_router(health_router)
app.include_router(gif_router)

app.add_middleware(UploadLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


@app.exception_handler(GifError)
async def gif_error_handler(request: Request, exc: GifError):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.message, exc.details),
    )


@app.exception_handler(UploadTooLargeError)
async def upload_too_large_handler(request: Request, exc: UploadTooLargeError):
    return PlainTextResponse(UPLOAD_LIMIT_MESSAGE, status_code=413)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content={"error": "Endpoint not found"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=_error_body(request, "Invalid request", str(exc.errors())),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content=_error_body(request, "Internal server error", str(exc)),
    )


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
