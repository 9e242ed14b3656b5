import asyncio
import shutil
from pathlib import Path
from typing import Optional

from src.config import get_settings

settings = get_settings()


class LocalStorageService:
    """Local file storage for development without GCS."""

    def __init__(self, base_path: Optional[str] = None) -> None:
        self.base_path = Path(base_path or settings.local_storage_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, storage_key: str) -> Path:
        full_path = self.base_path / storage_key
        full_path.parent.mkdir(parents=True, exist_ok=True)
        return full_path

    def get_public_url(self, storage_key: str) -> str:
        """Get URL for accessing the file."""
        return f"http://localhost:8000/api/storage/files/{storage_key}"

    async def upload_file(self, local_path: str, storage_key: str, content_type: str | None = None) -> str:
        """Upload from local path."""
        full_path = self._get_full_path(storage_key)
        shutil.copy(local_path, str(full_path))
        return self.get_public_url(storage_key)

    def file_exists(self, storage_key: str) -> bool:
        """Check if file exists."""
        return (self.base_path / storage_key).exists()

    def get_file_path(self, storage_key: str) -> Path:
        """Get the actual file path for serving."""
        return self._get_full_path(storage_key)


class GCSStorageService:
    """Google Cloud Storage service for production."""

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        project_id: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ) -> None:
        self.bucket_name = bucket_name or settings.gcs_bucket_name
        self.project_id = project_id or settings.gcs_project_id
        self.public_base_url = (public_base_url or settings.storage_public_base_url).rstrip("/")
        self._client = None
        self._bucket = None

    @property
    def client(self):
        if self._client is None:
            from google.cloud import storage

            if self.project_id:
                self._client = storage.Client(project=self.project_id)
            else:
                self._client = storage.Client()
        return self._client

    @property
    def bucket(self):
        if self._bucket is None:
            self._bucket = self.client.bucket(self.bucket_name)
        return self._bucket

    def get_public_url(self, storage_key: str) -> str:
        """Get the public URL for a stored file."""
        return f"{self.public_base_url}/{self.bucket_name}/{storage_key}"

    async def upload_file(self, local_path: str, storage_key: str, content_type: str | None = None) -> str:
        """Upload a local file to GCS."""
        blob = self.bucket.blob(storage_key)
        # Blocking client call; keep it off the event loop
        if content_type:
            await asyncio.to_thread(blob.upload_from_filename, local_path, content_type=content_type)
        else:
            await asyncio.to_thread(blob.upload_from_filename, local_path)
        return self.get_public_url(storage_key)


# Use LocalStorageService or GCSStorageService based on config
StorageService = LocalStorageService if settings.use_local_storage else GCSStorageService


# Singleton instance
storage_service = StorageService()


def get_storage_service() -> LocalStorageService | GCSStorageService:
    return storage_service
