"""
Pydantic models for API responses and pipeline results
"""

from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, Field


class TranscriptFragment(BaseModel):
    """Transcript of a single transcription unit"""
    index: int = Field(description="Position of the unit within the upload")
    text: str = Field(description="Transcribed text")


class TranscriptionResult(BaseModel):
    """Complete transcription of an upload"""
    text: str = Field(description="Fragments joined in unit order")
    fragments: List[TranscriptFragment] = Field(
        default=[],
        description="Per-unit transcripts, in unit order"
    )
    unit_count: int = Field(description="Number of transcription API calls made")
    chunked: bool = Field(default=False, description="Whether the upload was split into chunks")
    duration: Optional[float] = Field(default=None, description="Audio duration in seconds, if known")


class HealthCheckResponse(BaseModel):
    """Health Check Response"""
    status: str = Field(description="Service status (healthy/unhealthy)")
    timestamp: datetime = Field(description="Check time")
    version: str = Field(description="Service version")
    uptime_seconds: int = Field(description="Uptime in seconds")

    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Detailed health information"
    )


class ErrorResponse(BaseModel):
    """Error body returned for every failed request"""
    error: str = Field(description="Human readable error message")
    code: Optional[str] = Field(default=None, description="Stable error code")


class RateLimitResponse(BaseModel):
    """Rate Limit Exceeded Response"""
    error: str = Field(description="Rate limit error message")
    code: str = Field(default="rate_limit_exceeded")
    retry_after: int = Field(description="Seconds until the next attempt")
    limit: int = Field(description="Request limit")
    window: int = Field(description="Window in seconds")
