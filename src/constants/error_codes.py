"""Error codes dictionary for the render API.

Single source of truth for all error codes, their retryability, and the fix
suggested to the caller. Used by exception handlers to build error responses.
Renders are never retried, so every entry is non-retryable.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Request validation
    # ==========================================================================
    "VALIDATION_ERROR": {
        "retryable": False,
        "suggested_fix": "Send a JSON body with 'videoUrl' (string) and 'overlays' (array)",
    },
    "MISSING_REQUIRED_FIELD": {
        "retryable": False,
        "suggested_fix": "Payload must include videoUrl and overlays array",
    },
    "INVALID_FIELD_VALUE": {
        "retryable": False,
    },
    "INVALID_TIME_RANGE": {
        "retryable": False,
        "suggested_fix": "Each overlay needs 0 <= start < end (seconds)",
    },
    "LIMIT_EXCEEDED": {
        "retryable": False,
        "suggested_fix": "Reduce the number of overlays or the caption length",
    },
    # ==========================================================================
    # Render stages
    # ==========================================================================
    "FETCH_FAILED": {
        "retryable": False,
        "suggested_fix": "Check that videoUrl is publicly reachable and returns 2xx",
    },
    "GRAPH_BUILD_FAILED": {
        "retryable": False,
    },
    "PROCESSING_FAILED": {
        "retryable": False,
        "suggested_fix": "Check that the source is a video ffmpeg can decode",
    },
    "PUBLISH_FAILED": {
        "retryable": False,
    },
    # ==========================================================================
    # System
    # ==========================================================================
    "NOT_FOUND": {
        "retryable": False,
    },
    "HTTP_ERROR": {
        "retryable": False,
    },
    "INTERNAL_ERROR": {
        "retryable": False,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and suggested fix
    """
    return ERROR_CODES.get(code, {"retryable": False})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    spec = get_error_spec(code)
    return spec.get("retryable", False)
