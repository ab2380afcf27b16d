"""
Structured logging setup for the Audio Transcript Service
"""

import logging
import structlog
from datetime import datetime
from typing import Optional
from app.config import settings


def setup_logging():
    """Configure structured logging"""

    timestamper = structlog.processors.TimeStamper(fmt="ISO")

    processors = [
        structlog.processors.add_log_level,
        timestamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.environment == "development":
        # Development: colored console output
        processors.extend([
            structlog.dev.ConsoleRenderer(colors=True)
        ])
    else:
        # Production: JSON output
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None):
    """Return a configured logger"""
    return structlog.get_logger(name or __name__)


class AuditLogger:
    """Dedicated logger for audit events"""

    def __init__(self, enabled: bool = True):
        self.logger = get_logger("audit")
        self.enabled = enabled

    def log_api_request(
        self,
        request_id: str,
        endpoint: str,
        method: str,
        user_agent: str = None,
        ip_address: str = None,
        **kwargs
    ):
        """Log incoming API requests"""
        if not self.enabled:
            return
        self.logger.info(
            "api_request",
            request_id=request_id,
            endpoint=endpoint,
            method=method,
            user_agent=user_agent,
            ip_address=ip_address,
            timestamp=datetime.utcnow().isoformat(),
            **kwargs
        )

    def log_transcription_request(
        self,
        request_id: Optional[str],
        provider: str,
        model: str,
        language: str,
        audio_size_bytes: int,
        unit_index: int,
        unit_count: int,
        **kwargs
    ):
        """Log a single call to the speech-to-text provider"""
        if not self.enabled:
            return
        self.logger.info(
            "transcription_request",
            request_id=request_id,
            provider=provider,
            model=model,
            language=language,
            audio_size_bytes=audio_size_bytes,
            unit_index=unit_index,
            unit_count=unit_count,
            timestamp=datetime.utcnow().isoformat(),
            **kwargs
        )

    def log_audio_processing(
        self,
        request_id: Optional[str],
        audio_duration: float,
        audio_size_bytes: int,
        chunked: bool,
        unit_count: int,
        processing_time_ms: int,
        **kwargs
    ):
        """Log a completed transcription pipeline run"""
        if not self.enabled:
            return
        self.logger.info(
            "audio_processing",
            request_id=request_id,
            audio_duration=audio_duration,
            audio_size_bytes=audio_size_bytes,
            chunked=chunked,
            unit_count=unit_count,
            processing_time_ms=processing_time_ms,
            timestamp=datetime.utcnow().isoformat(),
            **kwargs
        )

    def log_error(
        self,
        request_id: Optional[str],
        error_type: str,
        error_message: str,
        **kwargs
    ):
        """Log error events"""
        if not self.enabled:
            return
        self.logger.error(
            "error_event",
            request_id=request_id,
            error_type=error_type,
            error_message=error_message,
            timestamp=datetime.utcnow().isoformat(),
            **kwargs
        )


# Global audit logger instance
audit_logger = AuditLogger(enabled=settings.audit_log_enabled)
