"""
Speech-to-Text Service
Uses the OpenAI transcription API with deterministic decoding.
"""

import asyncio
import os
from typing import Awaitable, Callable, Optional
import openai
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, stop_after_attempt, wait_incrementing, retry_if_exception_type

from app.config import settings, Settings
from app.core.errors import (
    AuthenticationFailed,
    RateLimited,
    PayloadTooLarge,
    TransientConnectionFailure,
    UpstreamUnknownError,
)
from app.core.logging import get_logger, audit_logger

logger = get_logger(__name__)

# Connection errors and timeouts are the only failures worth another attempt
RETRYABLE_EXCEPTIONS = (openai.APIConnectionError,)


def build_openai_client(config: Settings = settings) -> AsyncOpenAI:
    """
    Build the process-wide OpenAI client.
    SDK-level retries are disabled; STTService owns the retry policy.
    """
    logger.info(f"Configuring OpenAI client (base URL: {config.openai_base_url or 'default'})")
    return AsyncOpenAI(
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        timeout=config.stt_timeout,
        max_retries=0,
    )


class STTService:
    """Service for Speech-to-Text transcription using OpenAI."""

    provider = "openai"

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = settings.stt_model.value,
        language: str = settings.stt_language,
        temperature: float = settings.stt_temperature,
        max_attempts: int = settings.stt_max_attempts,
        retry_delay: float = settings.stt_retry_delay_seconds,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.model = model
        self.language = language
        self.temperature = temperature
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def transcribe(
        self,
        file_path: str,
        request_id: Optional[str] = None,
        unit_index: int = 0,
        unit_count: int = 1,
    ) -> str:
        """
        Transcribe one audio file (a whole upload or a single chunk).
        Connection failures are retried with a linearly growing wait; every
        other failure is classified and raised immediately.
        """
        audit_logger.log_transcription_request(
            request_id=request_id,
            provider=self.provider,
            model=self.model,
            language=self.language,
            audio_size_bytes=os.path.getsize(file_path),
            unit_index=unit_index,
            unit_count=unit_count,
        )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=lambda retry_state: logger.warning(
                f"Connection to OpenAI failed, retrying (attempt {retry_state.attempt_number}/{self.max_attempts})..."
            ),
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._request(file_path)
        except openai.AuthenticationError as e:
            logger.error(f"OpenAI rejected the API key: {e}")
            raise AuthenticationFailed("Authentication with the OpenAI API failed; check the API key") from e
        except openai.RateLimitError as e:
            logger.error(f"OpenAI rate limit reached: {e}")
            raise RateLimited("OpenAI rate limit reached; please try again later") from e
        except openai.APIConnectionError as e:
            logger.error(f"Could not reach OpenAI after {self.max_attempts} attempts: {e}")
            raise TransientConnectionFailure(
                f"Could not connect to the OpenAI API after {self.max_attempts} attempts"
            ) from e
        except openai.APIStatusError as e:
            if e.status_code == 413:
                logger.error(f"OpenAI rejected the audio as too large: {e}")
                raise PayloadTooLarge("The audio file exceeds the OpenAI upload limit") from e
            logger.error(f"OpenAI transcription failed: {e}", exc_info=True)
            raise UpstreamUnknownError(e.message) from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI transcription failed: {e}", exc_info=True)
            raise UpstreamUnknownError(str(e)) from e

    async def _request(self, file_path: str) -> str:
        with open(file_path, "rb") as audio_file:
            transcription = await self.client.audio.transcriptions.create(
                file=audio_file,
                model=self.model,
                response_format="text",
                language=self.language,
                temperature=self.temperature,
            )
        text = transcription if isinstance(transcription, str) else getattr(transcription, "text", "")
        logger.info(f"OpenAI transcription successful: {len(text)} characters")
        return text
