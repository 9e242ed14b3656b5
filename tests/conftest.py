"""
Pytest fixtures for overlay renderer tests.

No test needs a real FFmpeg binary or network access: FFmpeg is patched at
``subprocess.run`` and downloads go through ``httpx.MockTransport``.
"""

import tempfile
from pathlib import Path

import pytest

from src.render.text_renderer import Overlay, TextRenderer
from src.render.workspace import RenderWorkspace


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="overlay_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def workspace(temp_output_dir):
    """A run workspace rooted in the test's temp directory."""
    ws = RenderWorkspace("testrun", base_dir=str(temp_output_dir))
    yield ws
    ws.release()


@pytest.fixture
def text_renderer():
    """Renderer with a fixed POSIX font path and the default 25-column wrap."""
    return TextRenderer(font_path="/fonts/Roboto-Bold.ttf", wrap_width=25, line_spacing=20)


@pytest.fixture
def sample_overlays() -> list[Overlay]:
    return [
        Overlay(text="You noticed it first", start=0, end=2.5),
        Overlay(text="Then everyone else did", start=2.5, end=5),
        Overlay(text="And nobody said a word", start=5, end=8),
    ]


class FakeStorage:
    """Records uploads and returns GCS-style public URLs."""

    def __init__(self, fail: bool = False, bucket_name: str = "test-bucket"):
        self.fail = fail
        self.bucket_name = bucket_name
        self.uploads: list[tuple[str, str]] = []

    async def upload_file(self, local_path: str, storage_key: str, content_type: str | None = None) -> str:
        if self.fail:
            raise RuntimeError("bucket rejected the upload")
        assert Path(local_path).exists()
        self.uploads.append((local_path, storage_key))
        return f"https://storage.googleapis.com/{self.bucket_name}/{storage_key}"


class FakeFetcher:
    """Writes fixed bytes instead of downloading, or raises a given error."""

    def __init__(self, data: bytes = b"\x00\x00\x00\x18ftypmp42", error: Exception | None = None):
        self.data = data
        self.error = error
        self.urls: list[str] = []

    async def fetch(self, url: str, dest: Path) -> Path:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        Path(dest).write_bytes(self.data)
        return dest
