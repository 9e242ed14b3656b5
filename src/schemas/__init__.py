from src.schemas.envelope import ErrorInfo, ErrorLocation, ErrorResponse, ResponseMeta
from src.schemas.render import OverlayRequest, RenderRequest, RenderResponse

__all__ = [
    "ErrorInfo",
    "ErrorLocation",
    "ErrorResponse",
    "ResponseMeta",
    "OverlayRequest",
    "RenderRequest",
    "RenderResponse",
]
