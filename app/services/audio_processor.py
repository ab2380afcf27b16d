"""
Audio upload ingress and format validation
"""

import os
from typing import List, Optional
from mutagen import File as MutagenFile
from fastapi import UploadFile
from app.config import settings
from app.core.errors import FormatUnsupported, NoFileProvided
from app.core.logging import get_logger
from app.core.tempfiles import ScratchFiles
from app.models.audio import UploadedAudio

logger = get_logger(__name__)


class AudioProcessor:
    """Upload persistence and validation"""

    def __init__(self, supported_extensions: Optional[List[str]] = None):
        extensions = supported_extensions or settings.supported_audio_extensions
        self.supported_extensions = [ext.lower() for ext in extensions]

    def validate_format(self, filename: str) -> None:
        """Reject filenames whose extension is not in the allow-list."""
        _, ext = os.path.splitext(filename or "")
        ext = ext.lower()
        if ext not in self.supported_extensions:
            logger.warning(
                f"Unsupported audio format: {ext or '(none)'}. Supported: {self.supported_extensions}"
            )
            raise FormatUnsupported(
                f"Format {ext or '(no extension)'} is not supported. "
                f"Please convert your audio to MP3 first (supported: {', '.join(self.supported_extensions)})."
            )

    async def save_upload(self, file: Optional[UploadFile], scratch: ScratchFiles) -> UploadedAudio:
        """
        Persist the uploaded audio to the request's scratch directory.
        The file is registered with `scratch`, so it is removed when the
        request ends.
        """
        if file is None or not file.filename:
            raise NoFileProvided("No audio file found in the request")

        audio_data = await file.read()
        if not audio_data:
            raise NoFileProvided("The uploaded audio file is empty")

        logger.info(f"Received {file.filename} ({len(audio_data)} bytes)")

        _, ext = os.path.splitext(file.filename)
        path = scratch.create(audio_data, prefix="upload_", suffix=ext.lower())
        logger.info(f"Upload saved temporarily to {path}")

        return UploadedAudio(
            path=path,
            filename=file.filename,
            size=len(audio_data),
            content_type=file.content_type,
        )

    def extract_duration(self, file_path: str) -> float:
        """Best-effort audio duration in seconds using mutagen; 0.0 if unknown."""
        try:
            audio = MutagenFile(file_path)
            if audio is None or not hasattr(audio.info, "length"):
                return 0.0
            return float(audio.info.length)
        except Exception as e:
            logger.warning(f"Could not extract metadata using mutagen: {e}")
            return 0.0
