from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


class VideoInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    duration: float
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    bitrate: int | None = None
    filename: str
    file_size: int = Field(alias="fileSize")


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "OK"
    timestamp: datetime
    transcoder_available: bool = Field(alias="transcoderAvailable")
    uptime_seconds: float = Field(alias="uptimeSeconds")


class TranscoderStatusResponse(BaseModel):
    status: str
    version: str
    path: str
