import math
import os
from pathlib import Path

import pytest

from app.core.tempfiles import ScratchFiles
from app.services.chunker import chunk_ranges, split_into_chunks


@pytest.mark.parametrize(
    "size,chunk_size",
    [(1, 1), (10, 3), (39, 20), (40, 20), (41, 20), (5, 100), (1000, 7)],
)
def test_chunk_ranges_cover_the_file_contiguously(size: int, chunk_size: int) -> None:
    ranges = chunk_ranges(size, chunk_size)

    assert len(ranges) == math.ceil(size / chunk_size)
    assert ranges[0][0] == 0
    assert ranges[-1][1] == size
    for (_, prev_end), (next_start, _) in zip(ranges, ranges[1:]):
        assert prev_end == next_start
    assert all(0 < end - start <= chunk_size for start, end in ranges)


def test_chunk_ranges_of_empty_file() -> None:
    assert chunk_ranges(0, 20) == []


def test_chunk_ranges_rejects_non_positive_chunk_size() -> None:
    with pytest.raises(ValueError):
        chunk_ranges(10, 0)


def test_split_reconstructs_original_bytes(tmp_path) -> None:
    source = tmp_path / "talk.mp3"
    payload = bytes(range(256)) * 40 + b"tail"
    source.write_bytes(payload)

    with ScratchFiles(str(tmp_path)) as scratch:
        chunks = split_into_chunks(str(source), len(payload), 1000, scratch)

        assert [chunk.index for chunk in chunks] == list(range(len(chunks)))
        assert len(chunks) == math.ceil(len(payload) / 1000)
        assert all(chunk.path.endswith(".mp3") for chunk in chunks)
        assert len({chunk.path for chunk in chunks}) == len(chunks)
        rebuilt = b"".join(Path(chunk.path).read_bytes() for chunk in chunks)
        assert rebuilt == payload
        assert sorted(scratch.paths) == sorted(chunk.path for chunk in chunks)

    assert not any(os.path.exists(chunk.path) for chunk in chunks)


def test_split_39_units_with_chunk_size_20(tmp_path) -> None:
    source = tmp_path / "big.wav"
    source.write_bytes(b"a" * 20 + b"b" * 19)

    with ScratchFiles(str(tmp_path)) as scratch:
        chunks = split_into_chunks(str(source), 39, 20, scratch)

        assert [(c.start, c.end) for c in chunks] == [(0, 20), (20, 39)]
        assert [c.size for c in chunks] == [20, 19]
        assert Path(chunks[1].path).read_bytes() == b"b" * 19
