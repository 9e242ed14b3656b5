"""Local storage endpoint for serving rendered videos in development."""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from src.config import get_settings
from src.services.storage_service import storage_service

settings = get_settings()
router = APIRouter()


@router.get("/files/{storage_key:path}")
async def get_file(storage_key: str):
    """Serve rendered files from local storage."""
    if not settings.use_local_storage:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Local storage not enabled",
        )

    if ".." in storage_key.split("/") or not storage_service.file_exists(storage_key):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    file_path = storage_service.get_file_path(storage_key)
    return FileResponse(
        path=str(file_path),
        media_type="video/mp4" if file_path.suffix.lower() == ".mp4" else "application/octet-stream",
        filename=file_path.name,
    )
