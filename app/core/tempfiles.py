"""
Request-scoped scratch files.

Every temporary file is registered in a release list the moment it is
created. Leaving the `ScratchFiles` block deletes everything still
registered, whichever way the block is left.
"""

import os
import tempfile
from typing import List, Optional
from app.core.logging import get_logger

logger = get_logger(__name__)


class ScratchFiles:
    """Release list of temporary files owned by one request or pipeline run."""

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory
        self._paths: List[str] = []

    def __enter__(self) -> "ScratchFiles":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release_all()

    @property
    def paths(self) -> List[str]:
        return list(self._paths)

    def create(self, data: bytes, prefix: str = "scratch_", suffix: str = "") -> str:
        """Write `data` to a new uniquely named file and register it."""
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=self.directory)
        self._paths.append(path)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        return path

    def release(self, path: str) -> None:
        """Delete one registered file ahead of the block's end."""
        if path in self._paths:
            self._paths.remove(path)
        self._unlink(path)

    def release_all(self) -> None:
        while self._paths:
            self._unlink(self._paths.pop())

    def _unlink(self, path: str) -> None:
        try:
            os.unlink(path)
            logger.debug(f"Cleaned up temporary file: {path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error cleaning up file {path}: {e}")
