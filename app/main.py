"""
Audio Transcript Service - FastAPI Main Application
"""

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status, UploadFile, File
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from app.config import settings
from app.core.errors import TranscriptionServiceError, NoFileProvided
from app.core.logging import setup_logging, get_logger, audit_logger
from app.core.security import security_manager
from app.core.tempfiles import ScratchFiles
from app.models.responses import HealthCheckResponse, ErrorResponse, RateLimitResponse
from app.services.audio_processor import AudioProcessor
from app.services.document_renderer import render_transcript_pdf, attachment_filename
from app.services.stt_service import STTService, build_openai_client
from app.services.transcription_pipeline import TranscriptionPipeline

# Initialize logging
setup_logging()
logger = get_logger(__name__)

# Prometheus metrics
request_count = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
request_duration = Histogram('http_request_duration_seconds', 'HTTP request duration')
transcription_units = Counter('transcription_units_total', 'Transcription API calls per path', ['path'])
transcription_failures = Counter('transcription_failures_total', 'Failed transcriptions', ['code'])
pipeline_duration = Histogram('transcription_pipeline_duration_seconds', 'Transcription pipeline duration')

# Rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

# Service instances
audio_processor = AudioProcessor()

started_at = time.time()


def build_pipeline() -> TranscriptionPipeline:
    """Wire the pipeline around a freshly constructed OpenAI client."""
    stt_service = STTService(client=build_openai_client(settings))
    return TranscriptionPipeline(stt_service=stt_service, audio_processor=audio_processor)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Audio Transcript Service starting...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"API Version: {settings.api_version}")
    if security_manager.is_valid_api_key_format(settings.openai_api_key):
        app.state.pipeline = build_pipeline()
    else:
        logger.warning("OpenAI API key missing or malformed; transcription requests will be rejected.")

    yield

    # Shutdown
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is not None:
        await pipeline.stt_service.client.close()
    logger.info("Audio Transcript Service shutting down...")


# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Rate limiting
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


# Middleware for security headers
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    if "X-Content-Type-Options" not in response.headers:
        response.headers["X-Content-Type-Options"] = "nosniff"
    if "X-Frame-Options" not in response.headers:
        response.headers["X-Frame-Options"] = "DENY"
    if "Content-Security-Policy" not in response.headers:
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
    return response


# Middleware for request tracking and metrics
@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Request tracking and Prometheus metrics"""

    start_time = time.time()
    request_id = security_manager.generate_request_id()

    request.state.request_id = request_id
    request.state.start_time = start_time

    try:
        response = await call_next(request)

        duration = time.time() - start_time
        request_count.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        request_duration.observe(duration)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time"] = f"{duration:.3f}s"

        return response

    except Exception as e:
        request_count.labels(
            method=request.method,
            endpoint=request.url.path,
            status=500
        ).inc()

        logger.error(f"Request {request_id} failed: {e}")

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="An internal error occurred", code="internal_server_error").model_dump(),
            headers={"X-Request-ID": request_id}
        )


def get_pipeline(request: Request) -> TranscriptionPipeline:
    """Return the process-wide transcription pipeline, building it on first use."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        # Lifespan did not run or the key was unusable at startup
        pipeline = build_pipeline()
        request.app.state.pipeline = pipeline
    return pipeline


# Health check endpoint
@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Service health check"""

    return HealthCheckResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=settings.api_version,
        uptime_seconds=int(time.time() - started_at)
    )


@app.get("/ready")
async def readiness_check():
    """
    Checks if the service is ready to accept transcription requests.
    Returns 200 OK if the OpenAI credential is usable, otherwise 503.
    """
    try:
        security_manager.check_api_credential(settings.openai_api_key)
        details = {"openai_credential": {"status": "ok", "message": "OpenAI API key configured."}}
        all_ok = True
    except TranscriptionServiceError as e:
        details = {"openai_credential": {"status": "error", "message": e.message}}
        all_ok = False

    response_data = {
        "status": "ready" if all_ok else "unavailable",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.api_version,
        "details": details
    }

    if all_ok:
        return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)
    logger.warning(f"Readiness check failed: {details}")
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=response_data)


# Prometheus metrics endpoint
@app.get(settings.metrics_path)
async def metrics():
    """Prometheus metrics"""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Main endpoint for audio transcription
@app.post(
    "/api/transcribe",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "Transcript as PDF document"},
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    }
)
@limiter.limit(f"{settings.rate_limit_requests}/{settings.rate_limit_window} seconds")
async def transcribe_audio(
    request: Request,
    audio: Optional[UploadFile] = File(None),
):
    """
    Receives an audio file, transcribes it and returns the transcript as a
    PDF attachment. The upload and every chunk file are deleted before the
    response is sent.
    """
    request_id = request.state.request_id
    audit_logger.log_api_request(
        request_id=request_id,
        endpoint=request.url.path,
        method=request.method,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_remote_address(request),
    )

    security_manager.check_api_credential(settings.openai_api_key)
    pipeline = get_pipeline(request)

    with ScratchFiles(pipeline.scratch_dir) as scratch:
        upload = await audio_processor.save_upload(audio, scratch)

        started = time.time()
        result = await pipeline.run(
            file_path=upload.path,
            file_size=upload.size,
            original_name=upload.filename,
            request_id=request_id,
        )
        pipeline_duration.observe(time.time() - started)
        transcription_units.labels(path="chunked" if result.chunked else "direct").inc(result.unit_count)

    logger.info(f"[{request_id}] Generating PDF...")
    pdf_bytes = render_transcript_pdf(upload.filename, result.text)

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{attachment_filename(upload.filename)}"'},
    )


@app.exception_handler(TranscriptionServiceError)
async def transcription_error_handler(request: Request, exc: TranscriptionServiceError):
    """Turn pipeline errors into the JSON error body"""

    request_id = getattr(request.state, 'request_id', 'unknown')
    transcription_failures.labels(code=exc.code).inc()
    audit_logger.log_error(
        request_id=request_id,
        error_type=type(exc).__name__,
        error_message=exc.message,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message, code=exc.code).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed form data with the JSON error body"""

    errors = exc.errors()
    if any(tuple(error.get("loc", ()))[:2] == ("body", "audio") for error in errors):
        # A text value in place of the audio file counts as no file at all
        return await transcription_error_handler(
            request, NoFileProvided("The 'audio' field must contain an audio file")
        )

    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"Invalid request: {location}: {first.get('msg', 'validation failed')}" if location else "Invalid request"
    logger.warning(f"Request validation failed: {errors}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=message, code="invalid_request").model_dump(),
    )


# Override rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Custom rate limit error handler"""

    retry_after = settings.rate_limit_window
    response = RateLimitResponse(
        error="Too many requests. Please try again later.",
        retry_after=retry_after,
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window,
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=response.model_dump(),
        headers={"Retry-After": str(retry_after)}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""

    request_id = getattr(request.state, 'request_id', 'unknown')

    logger.error(f"Unhandled error in request {request_id}: {exc}")
    logger.error(f"Stacktrace: {traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="An unexpected error occurred", code="internal_server_error").model_dump(),
        headers={"X-Request-ID": request_id}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
        timeout_keep_alive=settings.stt_timeout,
    )
