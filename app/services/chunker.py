"""
Fixed-size byte-range splitting of large uploads
"""

import math
import os
from typing import List, Tuple
from app.core.logging import get_logger
from app.core.tempfiles import ScratchFiles
from app.models.audio import Chunk

logger = get_logger(__name__)


def chunk_ranges(size: int, chunk_size: int) -> List[Tuple[int, int]]:
    """Half-open byte ranges covering `[0, size)` in `chunk_size` steps."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    count = math.ceil(size / chunk_size)
    return [(i * chunk_size, min((i + 1) * chunk_size, size)) for i in range(count)]


def split_into_chunks(file_path: str, file_size: int, chunk_size: int, scratch: ScratchFiles) -> List[Chunk]:
    """
    Write each byte range of `file_path` to its own temporary file.
    Chunk files keep the source extension and are registered with `scratch`
    as soon as they exist. Boundaries ignore audio frames.
    """
    ranges = chunk_ranges(file_size, chunk_size)
    extension = os.path.splitext(file_path)[1]
    logger.info(f"Splitting {file_path} into {len(ranges)} chunks of up to {chunk_size} bytes")

    chunks = []
    with open(file_path, "rb") as source:
        for index, (start, end) in enumerate(ranges):
            source.seek(start)
            data = source.read(end - start)
            path = scratch.create(data, prefix=f"chunk_{index}_", suffix=extension)
            chunks.append(Chunk(index=index, start=start, end=end, path=path))
            logger.info(f"Chunk {index + 1}/{len(ranges)}: {len(data)} bytes")

    return chunks
