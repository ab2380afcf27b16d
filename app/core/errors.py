"""
Error taxonomy for the transcription pipeline.

Every error is terminal for the request that raised it. Each class carries
the HTTP status and the stable error code used in the JSON error body.
"""

from fastapi import status


class TranscriptionServiceError(Exception):
    """Base class for all errors surfaced to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def with_prefix(self, prefix: str) -> "TranscriptionServiceError":
        """Return a copy of this error whose message starts with `prefix`."""
        return type(self)(f"{prefix}{self.message}")


class FormatUnsupported(TranscriptionServiceError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    code = "format_unsupported"


class MissingCredential(TranscriptionServiceError):
    code = "missing_credential"


class InvalidCredentialFormat(TranscriptionServiceError):
    code = "invalid_credential_format"


class NoFileProvided(TranscriptionServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "no_file_provided"


class AuthenticationFailed(TranscriptionServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "authentication_failed"


class RateLimited(TranscriptionServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"


class PayloadTooLarge(TranscriptionServiceError):
    status_code = 413
    code = "payload_too_large"


class TransientConnectionFailure(TranscriptionServiceError):
    """Network-level failure that outlived the local retry budget."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "transient_connection_failure"


class EmptyTranscriptionResult(TranscriptionServiceError):
    status_code = 422
    code = "empty_transcription_result"


class UpstreamUnknownError(TranscriptionServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_error"
