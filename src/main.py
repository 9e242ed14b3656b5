import logging
import os
import shutil
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api import render, storage
from src.config import get_settings
from src.constants.error_codes import get_error_spec
from src.exceptions import InternalError, MissingRequiredFieldError, OverlayError
from src.middleware.request_context import (
    REQUEST_ID_HEADER,
    build_meta,
    create_request_context,
)
from src.schemas.envelope import ErrorInfo, ErrorLocation, ErrorResponse

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: the font and ffmpeg are resolved once and shared by every job
    if not os.path.isfile(settings.font_path):
        logger.warning(f"Font file not found: {settings.font_path}")
    if shutil.which(settings.ffmpeg_path) is None:
        logger.warning(f"FFmpeg binary not found: {settings.ffmpeg_path}")
    logger.info(
        f"{settings.app_name} {settings.app_version} starting "
        f"(bucket={settings.gcs_bucket_name}, local_storage={settings.use_local_storage})"
    )
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def attach_request_context(request: Request, call_next):
    """Start the request clock and assign the request id at entry."""
    context = create_request_context(request)
    request.state.request_context = context
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = context.request_id
    return response


def _error_response(request: Request, error: ErrorInfo, status_code: int) -> JSONResponse:
    context = getattr(request.state, "request_context", None) or create_request_context(request)
    body = ErrorResponse(
        request_id=context.request_id,
        error=error.message,
        detail=error,
        meta=build_meta(context),
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Reject malformed payloads with 400 before any render work starts."""
    errors = exc.errors()
    code = "VALIDATION_ERROR"
    location = None
    if errors:
        first_error = errors[0]
        loc = [str(x) for x in first_error.get("loc", []) if x != "body"]
        if first_error.get("type") == "missing":
            missing = MissingRequiredFieldError(".".join(loc) if loc else None)
            return _error_response(request, missing.to_error_info(), missing.status_code)
        msg = first_error.get("msg", "Validation error")
        message = f"{' -> '.join(loc)}: {msg}" if loc else msg
        if loc:
            location = ErrorLocation(field=loc[0])
    else:
        message = "Request validation failed"

    spec = get_error_spec(code)
    error = ErrorInfo(
        code=code,
        message=message,
        location=location,
        retryable=spec.get("retryable", False),
        suggested_fix=spec.get("suggested_fix"),
    )
    return _error_response(request, error, 400)


@app.exception_handler(OverlayError)
async def overlay_exception_handler(request: Request, exc: OverlayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"Render failed: {exc.code}: {exc.message}")
    return _error_response(request, exc.to_error_info(), exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    spec = get_error_spec(code)
    error = ErrorInfo(
        code=code,
        message=str(exc.detail),
        retryable=spec.get("retryable", False),
        suggested_fix=spec.get("suggested_fix"),
    )
    return _error_response(request, error, exc.status_code)


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    internal = InternalError()
    return _error_response(request, internal.to_error_info(), internal.status_code)


# Routers
app.include_router(render.router, prefix="/api", tags=["render"])
app.include_router(storage.router, prefix="/api/storage", tags=["storage"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.app_version, "git_hash": settings.git_hash}


@app.get("/api/version")
async def get_version() -> dict[str, str]:
    """Return the backend version info."""
    return {"version": settings.app_version, "git_hash": settings.git_hash}
