"""
Pydantic models for audio handled during a request
"""

from typing import Optional
from pydantic import BaseModel, Field


class UploadedAudio(BaseModel):
    """An upload persisted to the scratch directory for the request's lifetime"""
    path: str = Field(description="Path of the persisted upload")
    filename: str = Field(description="Original filename as sent by the client")
    size: int = Field(description="Size in bytes")
    content_type: Optional[str] = Field(default=None, description="Content type sent by the client")


class Chunk(BaseModel):
    """A contiguous byte range of an upload, materialized as its own file"""
    index: int = Field(description="Zero-based position of the chunk")
    start: int = Field(description="First byte offset (inclusive)")
    end: int = Field(description="Last byte offset (exclusive)")
    path: str = Field(description="Path of the temporary chunk file")

    @property
    def size(self) -> int:
        return self.end - self.start
