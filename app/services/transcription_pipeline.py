"""
Transcription pipeline: validate, split if needed, transcribe sequentially.
"""

import time
from typing import List, Optional
from app.config import settings
from app.core.errors import EmptyTranscriptionResult, TranscriptionServiceError
from app.core.logging import get_logger, audit_logger
from app.core.tempfiles import ScratchFiles
from app.models.responses import TranscriptFragment, TranscriptionResult
from app.services.audio_processor import AudioProcessor
from app.services.chunker import split_into_chunks
from app.services.stt_service import STTService

logger = get_logger(__name__)

FRAGMENT_SEPARATOR = "\n\n"


class TranscriptionPipeline:
    """Drives one upload from validation to the joined transcript."""

    def __init__(
        self,
        stt_service: STTService,
        audio_processor: Optional[AudioProcessor] = None,
        max_direct_size: int = settings.max_direct_size_bytes,
        chunk_size: int = settings.chunk_size_bytes,
        scratch_dir: Optional[str] = settings.scratch_dir,
    ):
        self.stt_service = stt_service
        self.audio_processor = audio_processor or AudioProcessor()
        self.max_direct_size = max_direct_size
        self.chunk_size = chunk_size
        self.scratch_dir = scratch_dir

    async def run(
        self,
        file_path: str,
        file_size: int,
        original_name: str,
        request_id: Optional[str] = None,
    ) -> TranscriptionResult:
        """
        Transcribe the audio at `file_path`.

        Files up to `max_direct_size` bytes go to the API in one call. Larger
        files are split into `chunk_size` byte ranges and transcribed in
        ascending order, one call at a time. Any failure aborts the run and
        discards fragments already obtained. Chunk files never outlive the
        call.
        """
        self.audio_processor.validate_format(original_name)
        start_time = time.time()
        logger.info(f"[{request_id}] Processing {original_name} ({file_size} bytes)")

        fragments: List[TranscriptFragment] = []
        chunked = file_size > self.max_direct_size

        with ScratchFiles(self.scratch_dir) as scratch:
            if not chunked:
                logger.info(f"[{request_id}] File within the upload limit, transcribing directly...")
                text = await self.stt_service.transcribe(file_path, request_id=request_id)
                fragments.append(TranscriptFragment(index=0, text=text))
            else:
                logger.info(
                    f"[{request_id}] File exceeds {self.max_direct_size} bytes, splitting into chunks..."
                )
                chunks = split_into_chunks(file_path, file_size, self.chunk_size, scratch)
                total = len(chunks)
                for chunk in chunks:
                    logger.info(f"[{request_id}] Transcribing chunk {chunk.index + 1}/{total}...")
                    try:
                        text = await self.stt_service.transcribe(
                            chunk.path,
                            request_id=request_id,
                            unit_index=chunk.index,
                            unit_count=total,
                        )
                    except TranscriptionServiceError as e:
                        logger.error(f"[{request_id}] Chunk {chunk.index + 1}/{total} failed: {e.message}")
                        raise e.with_prefix(
                            f"Transcription of chunk {chunk.index + 1}/{total} failed, processing stopped: "
                        ) from e
                    finally:
                        scratch.release(chunk.path)
                    fragments.append(TranscriptFragment(index=chunk.index, text=text))
                    logger.info(f"[{request_id}] Chunk {chunk.index + 1}/{total} completed")

        full_text = FRAGMENT_SEPARATOR.join(fragment.text for fragment in fragments)
        if not full_text.strip():
            raise EmptyTranscriptionResult("No transcription could be obtained from the audio")

        duration = self.audio_processor.extract_duration(file_path)
        audit_logger.log_audio_processing(
            request_id=request_id,
            audio_duration=duration,
            audio_size_bytes=file_size,
            chunked=chunked,
            unit_count=len(fragments),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        logger.info(f"[{request_id}] Transcription completed: {len(full_text)} characters")

        return TranscriptionResult(
            text=full_text,
            fragments=fragments,
            unit_count=len(fragments),
            chunked=chunked,
            duration=duration or None,
        )
