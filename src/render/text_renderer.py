"""Drawtext filter graph construction for caption overlays.

Builds one ``-filter_complex`` expression that chains a drawtext stage per
overlay:

    [0:v]drawtext=...[v0];[v0]drawtext=...[v1];...;[vN-2]drawtext=...[vN-1]

Caption text never goes inline into the graph. Each overlay's wrapped text is
written to its own file and referenced with ``textfile=``, which keeps quotes,
commas and semicolons in captions away from the graph parser.
"""

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from src.config import get_settings
from src.exceptions import GraphBuildError
from src.render.styles import Border, ColorExpression, Shadow, SolidColor, TextStyle
from src.render.workspace import ArtifactKind, RenderWorkspace
from src.utils.text_wrap import wrap_text

logger = logging.getLogger(__name__)

BASE_VIDEO_LABEL = "[0:v]"
AUDIO_PASSTHROUGH = "0:a?"


@dataclass(frozen=True)
class Overlay:
    """One timed caption, visible for ``start <= t < end`` (seconds)."""

    text: str
    start: float
    end: float


@dataclass
class FilterGraph:
    """Chained drawtext stages plus the caption files they reference."""

    stages: list[str] = field(default_factory=list)
    output_label: str = BASE_VIDEO_LABEL
    text_files: list[Path] = field(default_factory=list)

    @property
    def expression(self) -> str:
        return ";".join(self.stages)

    @property
    def is_passthrough(self) -> bool:
        """True when there is nothing to draw and the input can be copied."""
        return not self.stages


def escape_filter_path(path: str | Path) -> str:
    """Escape a filesystem path for use as a filter option value.

    Backslashes become forward slashes and every colon is escaped, since a
    bare colon separates drawtext options (``C:/fonts`` would otherwise split
    into two options).
    """
    return str(path).replace("\\", "/").replace(":", "\\:")


def escape_option_value(value: str) -> str:
    """Escape backslashes and colons so the value survives option splitting."""
    return value.replace("\\", "\\\\").replace(":", "\\:")


def clean_caption_text(text: str) -> str:
    """Remove square brackets, which delimit stream labels in the graph."""
    return text.replace("[", "").replace("]", "")


def _format_seconds(value: float) -> str:
    """Plain decimal seconds, no exponent (1.5, 4, 3600.25)."""
    return f"{value:.6f}".rstrip("0").rstrip(".")


class TextRenderer:
    """Builds drawtext filter graphs for a job's overlays."""

    def __init__(
        self,
        font_path: Optional[str] = None,
        wrap_width: Optional[int] = None,
        line_spacing: Optional[int] = None,
        emit_kerning: Optional[bool] = None,
    ):
        settings = get_settings()
        self.font_path = font_path or settings.font_path
        self.wrap_width = wrap_width or settings.caption_wrap_width
        self.line_spacing = line_spacing if line_spacing is not None else settings.caption_line_spacing
        self.emit_kerning = (
            emit_kerning if emit_kerning is not None else settings.drawtext_kerning
        )

    def build_filter_graph(
        self,
        overlays: Sequence[Overlay],
        style: TextStyle,
        workspace: RenderWorkspace,
    ) -> FilterGraph:
        """Build the chained drawtext graph and write its caption files.

        Args:
            overlays: Captions in draw order
            style: Style applied to every overlay
            workspace: Run workspace that allocates and tracks caption files

        Returns:
            FilterGraph; empty (passthrough) when overlays is empty

        Raises:
            GraphBuildError: If an overlay has an invalid time window
        """
        graph = FilterGraph()
        escaped_font = escape_filter_path(self.font_path)

        for index, overlay in enumerate(overlays):
            if (
                not (math.isfinite(overlay.start) and math.isfinite(overlay.end))
                or overlay.start < 0
                or overlay.end <= overlay.start
            ):
                raise GraphBuildError(
                    f"Overlay {index} has invalid time range: {overlay.start}s to {overlay.end}s"
                )

            wrapped = wrap_text(clean_caption_text(overlay.text), self.wrap_width)
            text_file = workspace.allocate(ArtifactKind.CAPTION, index)
            text_file.write_text(wrapped, encoding="utf-8")
            graph.text_files.append(text_file)

            input_label = BASE_VIDEO_LABEL if index == 0 else f"[v{index - 1}]"
            output_label = f"[v{index}]"
            params = self._build_drawtext_params(escaped_font, text_file, style, overlay)
            graph.stages.append(f"{input_label}drawtext={':'.join(params)}{output_label}")
            graph.output_label = output_label

        logger.info(
            f"[TEXT] Built {len(graph.stages)} drawtext stage(s) with style '{style.name}'"
        )
        return graph

    def _build_drawtext_params(
        self,
        escaped_font: str,
        text_file: Path,
        style: TextStyle,
        overlay: Overlay,
    ) -> list[str]:
        """Build drawtext option list for a single overlay."""
        start = _format_seconds(overlay.start)
        end = _format_seconds(overlay.end)

        # Caption files are drawn literally; % and \ are not sequences
        params = [
            f"fontfile='{escaped_font}'",
            f"textfile='{escape_filter_path(text_file)}'",
            "expansion=none",
            f"fontsize={style.font_size}",
        ]
        if self.emit_kerning:
            params.append(f"kerning={style.kerning}")
        params.extend([
            f"line_spacing={self.line_spacing}",
            f"x={style.x}",
            f"y={style.y}",
            f"enable='gte(t,{start})*lt(t,{end})'",
        ])

        if isinstance(style.color, ColorExpression):
            params.append(f"fontcolor_expr='{escape_option_value(style.color.expr)}'")
        elif isinstance(style.color, SolidColor):
            params.append(f"fontcolor={style.color.value}")

        decoration = style.decoration
        if isinstance(decoration, Shadow):
            params.extend([
                f"shadowx={decoration.x}",
                f"shadowy={decoration.y}",
                f"shadowcolor={decoration.color}",
            ])
        elif isinstance(decoration, Border):
            params.extend([
                f"borderw={decoration.width}",
                f"bordercolor={decoration.color}",
            ])

        return params
