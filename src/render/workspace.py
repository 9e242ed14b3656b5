"""Per-run temporary workspace for render artifacts."""

import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Optional

logger = logging.getLogger(__name__)


class ArtifactKind(Enum):
    """Kinds of temporary files a render job creates."""

    INPUT = "input"
    OUTPUT = "output"
    CAPTION = "caption"


class RenderWorkspace:
    """
    Run-scoped directory that tracks every file allocated for one render.

    All paths are namespaced by the run id, so concurrent jobs never collide.
    ``release()`` removes every tracked path plus the directory itself and is
    safe to call on any exit path; use the workspace as a context manager to
    get that guarantee for free:

        with RenderWorkspace(run_id) as workspace:
            input_path = workspace.allocate(ArtifactKind.INPUT)
            ...
    """

    def __init__(self, run_id: str, base_dir: Optional[str] = None):
        self.run_id = run_id
        self.root = Path(tempfile.mkdtemp(prefix=f"overlay_{run_id}_", dir=base_dir))
        self._paths: list[Path] = []
        self._released = False

    def __enter__(self) -> "RenderWorkspace":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()

    @property
    def paths(self) -> tuple[Path, ...]:
        """Every path allocated so far, in allocation order."""
        return tuple(self._paths)

    @property
    def released(self) -> bool:
        return self._released

    def allocate(self, kind: ArtifactKind, index: Optional[int] = None) -> Path:
        """Allocate and track a fresh path for an artifact.

        Args:
            kind: Which artifact the path is for
            index: Overlay index (required for CAPTION)

        Returns:
            Absolute path inside the run directory (the file is not created)
        """
        if self._released:
            raise RuntimeError(f"Workspace for run {self.run_id} was already released")

        if kind == ArtifactKind.INPUT:
            name = f"input_video_{self.run_id}.mp4"
        elif kind == ArtifactKind.OUTPUT:
            name = f"output_{self.run_id}.mp4"
        elif kind == ArtifactKind.CAPTION:
            if index is None or index < 0:
                raise ValueError("Caption files need a non-negative overlay index")
            name = f"text_{self.run_id}_{index}.txt"
        else:
            raise ValueError(f"Unknown artifact kind: {kind}")

        path = self.root / name
        if path in self._paths:
            raise ValueError(f"Path already allocated: {path}")
        self._paths.append(path)
        return path

    def release(self) -> None:
        """Delete every tracked path that exists, then the run directory.

        Missing files are ignored. Only the first call does any work.
        """
        if self._released:
            return
        self._released = True

        removed = 0
        for path in self._paths:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"[WORKSPACE] Could not remove {path}: {e}")

        try:
            os.rmdir(self.root)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[WORKSPACE] Could not remove {self.root}: {e}")

        logger.info(f"[WORKSPACE] [run {self.run_id}] Released {removed} file(s)")
