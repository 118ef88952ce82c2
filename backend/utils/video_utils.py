"""Utilities for job temp files and upload persistence."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024


class UploadTooLargeError(Exception):
    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(f"Upload exceeds {max_bytes} bytes")


def new_job_token() -> str:
    """Millisecond timestamp plus random suffix; unique per job."""
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}"


def job_temp_path(temp_dir: Path, prefix: str, token: str, extension: str) -> Path:
    """
    Build a per-job temp path such as ``/tmp/input-<token>.mp4``.

    Only the extension of the uploaded name is reused, so client-supplied
    names never influence the directory or the rest of the file name.
    """
    return temp_dir / f"{prefix}-{token}{extension}"


async def persist_upload(upload: UploadFile, dest: Path, max_bytes: int) -> int:
    """
    Copy an uploaded file to ``dest`` in chunks.

    Args:
        upload: The multipart file handed over by FastAPI
        dest: Target path (created or truncated)
        max_bytes: Upper bound on the number of bytes accepted

    Returns:
        Number of bytes written

    Raises:
        UploadTooLargeError: if the upload is larger than ``max_bytes``.
        The partially written file is left in place for the caller's cleanup.
    """
    await upload.seek(0)
    total = 0
    with dest.open("wb") as buffer:
        while True:
            chunk = await upload.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > max_bytes:
                logger.warning(f"Upload exceeded max size: {upload.filename}")
                raise UploadTooLargeError(max_bytes)
            buffer.write(chunk)
    return total
