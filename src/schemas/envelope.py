from datetime import datetime

from pydantic import BaseModel, Field


class ResponseMeta(BaseModel):
    api_version: str = "1.0"
    processing_time_ms: int
    timestamp: datetime
    warnings: list[str] = Field(default_factory=list)


class ErrorLocation(BaseModel):
    field: str | None = None
    index: int | None = None


class ErrorInfo(BaseModel):
    code: str
    message: str
    location: ErrorLocation | None = None
    retryable: bool = False
    suggested_fix: str | None = None  # Human-readable fix suggestion


class ErrorResponse(BaseModel):
    """Single failure shape returned for every rejected or failed render."""

    request_id: str
    error: str
    detail: ErrorInfo
    meta: ResponseMeta
