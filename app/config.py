"""
Central configuration for the Audio Transcript Service
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator
from enum import Enum


MB = 1024 * 1024


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class STTModel(str, Enum):
    WHISPER_1 = "whisper-1"
    GPT_4O_TRANSCRIBE = "gpt-4o-transcribe"
    GPT_4O_MINI_TRANSCRIBE = "gpt-4o-mini-transcribe"


class Settings(BaseSettings):
    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_title: str = Field(default="Audio Transcript API")
    api_description: str = Field(default="Audio transcription to PDF document service")
    api_version: str = Field(default="1.0.0")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3001)

    # External Service APIs
    openai_api_key: str = Field(default="")
    openai_base_url: Optional[str] = Field(default=None)

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_requests: int = Field(default=10)
    rate_limit_window: int = Field(default=60)  # seconds

    # Audio Processing Limits
    max_direct_size_mb: int = Field(default=25)  # OpenAI upload cap
    chunk_size_mb: int = Field(default=20)
    supported_audio_extensions: List[str] = Field(
        default=[".flac", ".m4a", ".mp3", ".mp4", ".mpeg", ".mpga", ".oga", ".ogg", ".wav", ".webm"]
    )
    scratch_dir: Optional[str] = Field(default=None)  # None -> system temp dir

    # STT Configuration
    stt_model: STTModel = Field(default=STTModel.WHISPER_1)
    stt_language: str = Field(default="es")
    stt_temperature: float = Field(default=0.0)
    stt_timeout: int = Field(default=300)  # seconds, per API call

    # Timeouts and Retries
    stt_max_attempts: int = Field(default=3)
    stt_retry_delay_seconds: float = Field(default=2.0)

    # CORS Configuration
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:8080",
        ]
    )
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: List[str] = Field(default=["GET", "POST"])
    cors_allow_headers: List[str] = Field(default=["*"])

    # Monitoring
    enable_metrics: bool = Field(default=True)
    metrics_path: str = Field(default="/metrics")

    # Audit Logging
    audit_log_enabled: bool = Field(default=True)

    @property
    def max_direct_size_bytes(self) -> int:
        return self.max_direct_size_mb * MB

    @property
    def chunk_size_bytes(self) -> int:
        return self.chunk_size_mb * MB

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def strip_api_key(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def check_chunk_size(self) -> "Settings":
        if self.chunk_size_mb <= 0:
            raise ValueError("chunk_size_mb must be positive")
        if self.chunk_size_mb >= self.max_direct_size_mb:
            raise ValueError(
                f"chunk_size_mb ({self.chunk_size_mb}) must be smaller than "
                f"max_direct_size_mb ({self.max_direct_size_mb})"
            )
        if self.stt_max_attempts < 1:
            raise ValueError("stt_max_attempts must be at least 1")
        return self

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
