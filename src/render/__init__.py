from src.render.pipeline import RenderJob, RenderPipeline, RenderStatus
from src.render.styles import TEXT_STYLES, TextStyle, pick_style
from src.render.text_renderer import FilterGraph, Overlay, TextRenderer, escape_filter_path
from src.render.workspace import ArtifactKind, RenderWorkspace

__all__ = [
    "RenderPipeline",
    "RenderJob",
    "RenderStatus",
    "TEXT_STYLES",
    "TextStyle",
    "pick_style",
    "FilterGraph",
    "Overlay",
    "TextRenderer",
    "escape_filter_path",
    "ArtifactKind",
    "RenderWorkspace",
]
