import uuid as _uuid_mod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

from fastapi import Request

from src.schemas.envelope import ResponseMeta

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestContext:
    request_id: str
    start_time: float
    warnings: list[str] = field(default_factory=list)


def _incoming_request_id(request: Request | None) -> str | None:
    """Reuse the caller's request id when it is a valid UUID."""
    if request is None:
        return None
    value = request.headers.get(REQUEST_ID_HEADER)
    if not value:
        return None
    try:
        return str(_uuid_mod.UUID(value))
    except ValueError:
        return None


def create_request_context(request: Request | None = None) -> RequestContext:
    return RequestContext(
        request_id=_incoming_request_id(request) or str(uuid4()),
        start_time=perf_counter(),
    )


def build_meta(context: RequestContext, api_version: str = "1.0") -> ResponseMeta:
    processing_time_ms = int((perf_counter() - context.start_time) * 1000)
    return ResponseMeta(
        api_version=api_version,
        processing_time_ms=processing_time_ms,
        timestamp=datetime.now(timezone.utc),
        warnings=context.warnings,
    )
