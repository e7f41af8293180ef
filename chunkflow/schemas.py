from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from chunkflow.configs import settings


class GenericParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DurationRequest(GenericParams):
    video: Optional[str] = Field(None, description="URL or local path of the video to inspect.")
    chunk_size: float = Field(
        default_factory=lambda: settings.default_chunk_size,
        gt=0,
        alias="chunkSize",
        description="Segment duration in seconds used to compute the expected chunk count.",
    )


class ChunkRequest(GenericParams):
    video: Optional[str] = Field(None, description="URL, base64 payload (optionally a data URI) or local path.")
    chunk_size: float = Field(
        default_factory=lambda: settings.default_chunk_size,
        gt=0,
        alias="chunkSize",
        description="Segment duration in seconds.",
    )
    video_encoding: Optional[Literal["base64"]] = Field(
        None,
        alias="videoEncoding",
        description="Declare the video field as a base64 payload instead of relying on detection.",
    )


class StitchRequest(GenericParams):
    chunks: Optional[list[str]] = Field(
        None, description="Ordered list of chunk URLs or local paths. Order is preserved exactly."
    )
