from pydantic import BaseModel, ConfigDict, Field


class OverlayRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    text: str
    start: float  # seconds
    end: float  # seconds


class RenderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_url: str = Field(alias="videoUrl", min_length=1)
    overlays: list[OverlayRequest]


class RenderResponse(BaseModel):
    status: str = "completed"
    url: str
    run_id: str
    style: str
