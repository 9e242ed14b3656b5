"""Tests for the complete rendering pipeline.

Features:
- Fetch -> graph -> FFmpeg -> publish happy path
- Failure at every stage leaves no temporary files behind
- Passthrough command for jobs without overlays
- FFmpeg command construction
"""

import random
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.exceptions import FetchError, GraphBuildError, ProcessingError, PublishError
from src.render.pipeline import RenderJob, RenderPipeline, RenderStatus
from src.render.styles import TEXT_STYLES
from src.render.text_renderer import FilterGraph, Overlay

from tests.conftest import FakeFetcher, FakeStorage


def _ffmpeg_success(cmd, **kwargs):
    """Stand-in for subprocess.run that writes the output file."""
    Path(cmd[-1]).write_bytes(b"rendered")
    return MagicMock(returncode=0, stdout="", stderr="")


def _make_pipeline(temp_output_dir, text_renderer, fetcher=None, storage=None, seed=42):
    return RenderPipeline(
        fetcher=fetcher or FakeFetcher(),
        storage=storage or FakeStorage(),
        text_renderer=text_renderer,
        rng=random.Random(seed),
        ffmpeg_path="ffmpeg",
        work_dir=str(temp_output_dir),
    )


def _leftovers(temp_output_dir: Path) -> list[Path]:
    return list(temp_output_dir.rglob("*"))


class TestRenderJob:
    """Tests for RenderJob dataclass."""

    def test_job_defaults(self):
        job = RenderJob(run_id="abc", source_url="https://x/v.mp4", overlays=[])
        assert job.status == RenderStatus.START
        assert job.output_url is None
        assert job.completed_at is None

    def test_job_to_dict(self):
        job = RenderJob(
            run_id="abc",
            source_url="https://x/v.mp4",
            overlays=[Overlay(text="hi", start=0, end=1)],
            style=TEXT_STYLES[0],
        )
        data = job.to_dict()
        assert data["run_id"] == "abc"
        assert data["overlay_count"] == 1
        assert data["status"] == "start"
        assert data["style"] == TEXT_STYLES[0].name
        assert data["completed_at"] is None


class TestCreateJob:
    def test_run_ids_are_unique(self, temp_output_dir, text_renderer):
        pipeline = _make_pipeline(temp_output_dir, text_renderer)
        ids = {pipeline.create_job("https://x/v.mp4", []).run_id for _ in range(50)}
        assert len(ids) == 50


class TestBuildCommand:
    """Tests for FFmpeg command construction."""

    def test_filter_command(self, temp_output_dir, text_renderer):
        pipeline = _make_pipeline(temp_output_dir, text_renderer)
        graph = FilterGraph(
            stages=["[0:v]drawtext=text='a'[v0]", "[v0]drawtext=text='b'[v1]"],
            output_label="[v1]",
        )
        cmd = pipeline.build_command(Path("/w/in.mp4"), graph, Path("/w/out.mp4"))

        assert cmd[:4] == ["ffmpeg", "-y", "-i", "/w/in.mp4"]
        assert cmd[cmd.index("-filter_complex") + 1] == graph.expression
        maps = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-map"]
        assert maps == ["[v1]", "0:a?"]
        assert cmd[cmd.index("-c:v") + 1] == "libx264"
        assert cmd[cmd.index("-c:a") + 1] == "copy"
        assert cmd[-1] == "/w/out.mp4"

    def test_passthrough_command(self, temp_output_dir, text_renderer):
        pipeline = _make_pipeline(temp_output_dir, text_renderer)
        cmd = pipeline.build_command(Path("/w/in.mp4"), FilterGraph(), Path("/w/out.mp4"))

        assert "-filter_complex" not in cmd
        assert cmd[cmd.index("-c") + 1] == "copy"
        maps = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-map"]
        assert maps == ["0:v", "0:a?"]
        assert cmd[-1] == "/w/out.mp4"


class TestRenderPipeline:
    """Tests for RenderPipeline.render."""

    @pytest.mark.asyncio
    async def test_render_success(self, temp_output_dir, text_renderer, sample_overlays):
        fetcher = FakeFetcher()
        storage = FakeStorage()
        pipeline = _make_pipeline(temp_output_dir, text_renderer, fetcher=fetcher, storage=storage)

        with patch("src.render.pipeline.subprocess.run", side_effect=_ffmpeg_success) as mock_run:
            job = await pipeline.render("https://cdn.example.com/v.mp4", sample_overlays)

        assert job.status == RenderStatus.DONE
        assert job.style in TEXT_STYLES
        assert job.destination == f"overlay_{job.run_id}.mp4"
        assert job.output_url == (
            f"https://storage.googleapis.com/test-bucket/overlay_{job.run_id}.mp4"
        )
        assert job.completed_at is not None
        assert fetcher.urls == ["https://cdn.example.com/v.mp4"]
        assert [key for _, key in storage.uploads] == [job.destination]

        cmd = mock_run.call_args.args[0]
        assert cmd[cmd.index("-filter_complex") + 1].count("drawtext=") == 3
        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_style_is_seeded(self, temp_output_dir, text_renderer, sample_overlays):
        expected = random.Random(5).choice(TEXT_STYLES)
        pipeline = _make_pipeline(temp_output_dir, text_renderer, seed=5)

        with patch("src.render.pipeline.subprocess.run", side_effect=_ffmpeg_success):
            job = await pipeline.render("https://x/v.mp4", sample_overlays)

        assert job.style is expected

    @pytest.mark.asyncio
    async def test_render_without_overlays_copies_streams(self, temp_output_dir, text_renderer):
        pipeline = _make_pipeline(temp_output_dir, text_renderer)

        with patch("src.render.pipeline.subprocess.run", side_effect=_ffmpeg_success) as mock_run:
            job = await pipeline.render("https://x/v.mp4", [])

        cmd = mock_run.call_args.args[0]
        assert "-filter_complex" not in cmd
        assert "-c" in cmd
        assert job.status == RenderStatus.DONE
        assert job.output_url is not None
        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_fetch_failure_cleans_up(self, temp_output_dir, text_renderer, sample_overlays):
        fetcher = FakeFetcher(error=FetchError("Source download failed: HTTP 404"))
        storage = FakeStorage()
        pipeline = _make_pipeline(temp_output_dir, text_renderer, fetcher=fetcher, storage=storage)

        with patch("src.render.pipeline.subprocess.run") as mock_run:
            with pytest.raises(FetchError, match="HTTP 404"):
                await pipeline.render("https://x/missing.mp4", sample_overlays)

        mock_run.assert_not_called()
        assert storage.uploads == []
        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_fetch_write_error_becomes_fetch_error(
        self, temp_output_dir, text_renderer, sample_overlays
    ):
        fetcher = FakeFetcher(error=PermissionError("read-only filesystem"))
        pipeline = _make_pipeline(temp_output_dir, text_renderer, fetcher=fetcher)

        with pytest.raises(FetchError, match="read-only"):
            await pipeline.render("https://x/v.mp4", sample_overlays)

        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_invalid_overlay_fails_graph_build(self, temp_output_dir, text_renderer):
        pipeline = _make_pipeline(temp_output_dir, text_renderer)
        overlays = [
            Overlay(text="fine", start=0, end=1),
            Overlay(text="backwards", start=3, end=2),
        ]

        with patch("src.render.pipeline.subprocess.run") as mock_run:
            with pytest.raises(GraphBuildError):
                await pipeline.render("https://x/v.mp4", overlays)

        mock_run.assert_not_called()
        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_ffmpeg_failure_cleans_up(self, temp_output_dir, text_renderer, sample_overlays):
        storage = FakeStorage()
        pipeline = _make_pipeline(temp_output_dir, text_renderer, storage=storage)
        stderr = "x" * 2000 + "Error initializing filter 'drawtext'"

        with patch(
            "src.render.pipeline.subprocess.run",
            return_value=MagicMock(returncode=1, stdout="", stderr=stderr),
        ):
            with pytest.raises(ProcessingError) as exc_info:
                await pipeline.render("https://x/v.mp4", sample_overlays)

        assert exc_info.value.returncode == 1
        assert "Error initializing filter" in exc_info.value.message
        assert len(exc_info.value.message) < 700
        assert storage.uploads == []
        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_ffmpeg_missing(self, temp_output_dir, text_renderer, sample_overlays):
        pipeline = _make_pipeline(temp_output_dir, text_renderer)

        with patch("src.render.pipeline.subprocess.run", side_effect=FileNotFoundError("ffmpeg")):
            with pytest.raises(ProcessingError, match="not found"):
                await pipeline.render("https://x/v.mp4", sample_overlays)

        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_ffmpeg_timeout(self, temp_output_dir, text_renderer, sample_overlays):
        pipeline = _make_pipeline(temp_output_dir, text_renderer)

        with patch(
            "src.render.pipeline.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=5),
        ):
            with pytest.raises(ProcessingError, match="timed out"):
                await pipeline.render("https://x/v.mp4", sample_overlays)

        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_publish_failure_cleans_up(self, temp_output_dir, text_renderer, sample_overlays):
        pipeline = _make_pipeline(
            temp_output_dir, text_renderer, storage=FakeStorage(fail=True)
        )

        with patch("src.render.pipeline.subprocess.run", side_effect=_ffmpeg_success):
            with pytest.raises(PublishError, match="bucket rejected"):
                await pipeline.render("https://x/v.mp4", sample_overlays)

        assert _leftovers(temp_output_dir) == []

    @pytest.mark.asyncio
    async def test_failed_job_status(self, temp_output_dir, text_renderer, sample_overlays):
        pipeline = _make_pipeline(temp_output_dir, text_renderer)
        job = pipeline.create_job("https://x/v.mp4", sample_overlays)

        pipeline._fail(job, ProcessingError("FFmpeg exited with code 1"))

        assert job.status == RenderStatus.FAILED
        assert job.error_message == "FFmpeg exited with code 1"
        assert job.completed_at is not None
