"""
Render pipeline for burning timed captions into a video.

This module orchestrates one render job end to end:
1. Download the source video into a run-scoped workspace
2. Pick a caption style and build the drawtext filter graph
3. Run FFmpeg (blocking, in a worker thread)
4. Upload the result to storage
5. Release every temporary file, whatever happened above

State machine (linear, no retries):
    START -> FETCHING -> GRAPH_BUILT -> PROCESSING -> PUBLISHING -> DONE
Any state can move to FAILED; the workspace is released before the error
reaches the caller.
"""

import asyncio
import logging
import random
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence
from uuid import uuid4

from src.config import get_settings
from src.exceptions import (
    FetchError,
    GraphBuildError,
    ProcessingError,
    PublishError,
)
from src.render.styles import TextStyle, pick_style
from src.render.text_renderer import AUDIO_PASSTHROUGH, FilterGraph, Overlay, TextRenderer
from src.render.workspace import ArtifactKind, RenderWorkspace
from src.services.source_fetcher import SourceFetcher
from src.services.storage_service import get_storage_service

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 500


# ============================================================================
# Enums
# ============================================================================


class RenderStatus(Enum):
    """Render job state."""

    START = "start"
    FETCHING = "fetching"
    GRAPH_BUILT = "graph_built"
    PROCESSING = "processing"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


# ============================================================================
# Dataclasses
# ============================================================================


@dataclass
class RenderJob:
    """State of a single render invocation."""

    run_id: str
    source_url: str
    overlays: list[Overlay]
    status: RenderStatus = RenderStatus.START
    style: Optional[TextStyle] = None
    destination: Optional[str] = None
    output_url: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "run_id": self.run_id,
            "source_url": self.source_url,
            "overlay_count": len(self.overlays),
            "status": self.status.value,
            "style": self.style.name if self.style else None,
            "destination": self.destination,
            "output_url": self.output_url,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class RenderPipeline:
    """
    Caption overlay render pipeline.

    Collaborators are injectable so tests can swap the network, storage and
    randomness; by default they come from settings.
    """

    def __init__(
        self,
        fetcher: Optional[SourceFetcher] = None,
        storage: Any = None,
        text_renderer: Optional[TextRenderer] = None,
        rng: Optional[random.Random] = None,
        ffmpeg_path: Optional[str] = None,
        work_dir: Optional[str] = None,
    ):
        settings = get_settings()
        self.fetcher = fetcher or SourceFetcher()
        self.storage = storage or get_storage_service()
        self.text_renderer = text_renderer or TextRenderer()
        self.rng = rng
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.work_dir = work_dir or settings.work_dir
        self.video_codec = settings.render_video_codec
        self.ffmpeg_timeout_s = settings.ffmpeg_timeout_s

    def create_job(self, video_url: str, overlays: Sequence[Overlay]) -> RenderJob:
        """Create a new job with a unique run id."""
        return RenderJob(
            run_id=uuid4().hex,
            source_url=video_url,
            overlays=list(overlays),
        )

    def _set_status(self, job: RenderJob, status: RenderStatus) -> None:
        logger.info(f"[RENDER] [run {job.run_id}] {job.status.value} -> {status.value}")
        job.status = status

    async def render(self, video_url: str, overlays: Sequence[Overlay]) -> RenderJob:
        """
        Execute the full render pipeline.

        Args:
            video_url: Source video URL
            overlays: Captions in draw order (may be empty)

        Returns:
            The finished job, with ``output_url`` set

        Raises:
            FetchError, GraphBuildError, ProcessingError, PublishError
        """
        job = self.create_job(video_url, overlays)
        job.style = pick_style(self.rng)
        logger.info(f"[RENDER] [run {job.run_id}] Selected style: {job.style.name}")

        try:
            with RenderWorkspace(job.run_id, base_dir=self.work_dir) as workspace:
                input_path = workspace.allocate(ArtifactKind.INPUT)
                output_path = workspace.allocate(ArtifactKind.OUTPUT)

                # Step 1: Download source
                self._set_status(job, RenderStatus.FETCHING)
                await self._fetch(job, input_path)

                # Step 2: Build filter graph
                graph = self._build_graph(job, workspace)
                self._set_status(job, RenderStatus.GRAPH_BUILT)

                # Step 3: Run FFmpeg
                self._set_status(job, RenderStatus.PROCESSING)
                cmd = self.build_command(input_path, graph, output_path)
                await self._run_ffmpeg(job, cmd)

                # Step 4: Publish
                self._set_status(job, RenderStatus.PUBLISHING)
                job.output_url = await self._publish(job, output_path)
        except Exception as e:
            self._fail(job, e)
            raise

        job.completed_at = datetime.now(timezone.utc)
        self._set_status(job, RenderStatus.DONE)
        logger.debug(f"[RENDER] [run {job.run_id}] Job: {job.to_dict()}")
        return job

    def _fail(self, job: RenderJob, error: Exception) -> None:
        failed_in = job.status.value
        job.status = RenderStatus.FAILED
        job.error_message = str(error)
        job.completed_at = datetime.now(timezone.utc)
        logger.error(f"[RENDER] [run {job.run_id}] Failed during {failed_in}: {error}")

    async def _fetch(self, job: RenderJob, input_path: Path) -> None:
        try:
            await self.fetcher.fetch(job.source_url, input_path)
        except FetchError:
            raise
        except OSError as e:
            raise FetchError(f"Could not write source video: {e}") from e

    def _build_graph(self, job: RenderJob, workspace: RenderWorkspace) -> FilterGraph:
        try:
            return self.text_renderer.build_filter_graph(job.overlays, job.style, workspace)
        except GraphBuildError:
            raise
        except OSError as e:
            raise GraphBuildError(f"Could not write caption file: {e}") from e

    def build_command(self, input_path: Path, graph: FilterGraph, output_path: Path) -> list[str]:
        """Build the FFmpeg command without executing it.

        With no drawtext stages the streams are copied unchanged.
        """
        cmd = [self.ffmpeg_path, "-y", "-i", str(input_path)]

        if graph.is_passthrough:
            cmd.extend([
                "-map", "0:v",
                "-map", AUDIO_PASSTHROUGH,
                "-c", "copy",
            ])
        else:
            cmd.extend([
                "-filter_complex", graph.expression,
                "-map", graph.output_label,
                "-map", AUDIO_PASSTHROUGH,
                "-c:v", self.video_codec,
                "-c:a", "copy",
            ])

        cmd.append(str(output_path))
        return cmd

    async def _run_ffmpeg(self, job: RenderJob, cmd: list[str]) -> None:
        """Run FFmpeg to completion; any non-zero exit fails the job."""
        logger.info(f"[RENDER] [run {job.run_id}] FFmpeg command: {' '.join(cmd)}")

        try:
            # Use asyncio.to_thread to avoid blocking the event loop
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self.ffmpeg_timeout_s,
            )
        except FileNotFoundError as e:
            raise ProcessingError(f"FFmpeg not found at {self.ffmpeg_path}") from e
        except subprocess.TimeoutExpired as e:
            raise ProcessingError(f"FFmpeg timed out after {self.ffmpeg_timeout_s}s") from e
        except OSError as e:
            raise ProcessingError(f"Could not start FFmpeg: {e}") from e

        if result.returncode != 0:
            stderr_tail = (result.stderr or "")[-STDERR_TAIL_CHARS:]
            logger.error(f"[RENDER] [run {job.run_id}] FFmpeg stderr: {stderr_tail}")
            raise ProcessingError(
                f"FFmpeg exited with code {result.returncode}: {stderr_tail}",
                returncode=result.returncode,
            )

    async def _publish(self, job: RenderJob, output_path: Path) -> str:
        job.destination = f"overlay_{job.run_id}.mp4"
        logger.info(f"[RENDER] [run {job.run_id}] Uploading {job.destination}")
        try:
            return await self.storage.upload_file(
                str(output_path), job.destination, content_type="video/mp4"
            )
        except Exception as e:
            raise PublishError(f"Upload of {job.destination} failed: {e}") from e
