"""Custom exceptions for the overlay renderer.

Every failure a render can hit maps onto one of these classes, so the HTTP
layer can turn any of them into a single error response with a stable,
machine-readable code.
"""

from typing import Any

from src.constants.error_codes import get_error_spec, is_retryable
from src.schemas.envelope import ErrorInfo, ErrorLocation


class OverlayError(Exception):
    """Base exception for all overlay renderer errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        location: ErrorLocation | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.location = location
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for API response."""
        spec = get_error_spec(self.code)
        return ErrorInfo(
            code=self.code,
            message=self.message,
            location=self.location,
            retryable=is_retryable(self.code),
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
        )


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(OverlayError):
    """Base class for request validation errors.

    Raised before any workspace is allocated or any external call is made.
    """

    code = "VALIDATION_ERROR"
    status_code = 400
    message = "Invalid render request"


class MissingRequiredFieldError(ValidationError):
    """Required field is missing."""

    code = "MISSING_REQUIRED_FIELD"
    message = "Required field is missing"

    def __init__(self, field: str | None = None):
        message = f"Required field is missing: {field}" if field else self.message
        location = ErrorLocation(field=field) if field else None
        super().__init__(message, location=location)


class InvalidFieldValueError(ValidationError):
    """Field value is invalid."""

    code = "INVALID_FIELD_VALUE"
    message = "Invalid field value"

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        index: int | None = None,
        value: Any = None,
    ):
        msg = message or self.message
        if message is None and field and value is not None:
            msg = f"Invalid value for field '{field}': {value}"
        location = ErrorLocation(field=field, index=index) if field or index is not None else None
        super().__init__(msg, location=location)


class InvalidTimeRangeError(ValidationError):
    """Overlay time window is empty or negative."""

    code = "INVALID_TIME_RANGE"
    message = "Invalid time range"

    def __init__(
        self,
        start: float | None = None,
        end: float | None = None,
        *,
        index: int | None = None,
    ):
        msg = self.message
        if start is not None and end is not None:
            msg = f"Invalid time range: {start}s to {end}s"
        location = ErrorLocation(field="overlays", index=index) if index is not None else None
        super().__init__(msg, location=location)


class LimitExceededError(ValidationError):
    """Request exceeds a configured resource limit."""

    code = "LIMIT_EXCEEDED"
    message = "Request exceeds a configured limit"

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: int | None = None,
        max_value: int | None = None,
    ):
        msg = message or self.message
        if message is None and value is not None and max_value is not None:
            msg = f"{field or 'value'} is {value} (max: {max_value})"
        location = ErrorLocation(field=field) if field else None
        super().__init__(msg, location=location)


# =============================================================================
# Render Stage Errors (500/502)
# =============================================================================


class FetchError(OverlayError):
    """Source video download failed (network, non-2xx, timeout, too large)."""

    code = "FETCH_FAILED"
    status_code = 502
    message = "Failed to download source video"


class GraphBuildError(OverlayError):
    """Filter graph could not be built from the overlays."""

    code = "GRAPH_BUILD_FAILED"
    status_code = 500
    message = "Failed to build filter graph"


class ProcessingError(OverlayError):
    """ffmpeg exited non-zero or could not be started."""

    code = "PROCESSING_FAILED"
    status_code = 500
    message = "FFmpeg processing failed"

    def __init__(self, message: str | None = None, *, returncode: int | None = None):
        self.returncode = returncode
        super().__init__(message)


class PublishError(OverlayError):
    """Artifact store rejected the upload."""

    code = "PUBLISH_FAILED"
    status_code = 502
    message = "Failed to publish rendered video"


# =============================================================================
# System Errors (500)
# =============================================================================


class InternalError(OverlayError):
    """Internal server error."""

    code = "INTERNAL_ERROR"
    status_code = 500
    message = "Internal server error"
