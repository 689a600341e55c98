from __future__ import annotations

import math
from collections.abc import Iterator
from pathlib import Path


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def file_size(path: str | Path) -> int | None:
    path = Path(path)
    if not path.is_file():
        return None
    return path.stat().st_size


def byte_bucket_bounds(size: int, sample_count: int) -> list[tuple[int, int]]:
    """Contiguous ``[start, end)`` byte ranges of ``size / sample_count`` bytes each."""
    per_bucket = size / sample_count
    bounds: list[tuple[int, int]] = []
    for i in range(sample_count):
        start = min(round_half_up(i * per_bucket), size)
        end = min(round_half_up((i + 1) * per_bucket), size)
        bounds.append((start, max(start, end)))
    return bounds


def iter_byte_buckets(
    path: str | Path,
    size: int,
    sample_count: int,
    streamed: bool,
) -> Iterator[bytes]:
    bounds = byte_bucket_bounds(size, sample_count)
    if not streamed:
        data = Path(path).read_bytes()
        for start, end in bounds:
            yield data[start:end]
        return

    # Only one bucket is held in memory at a time.
    with Path(path).open("rb") as handle:
        for start, end in bounds:
            if end <= start:
                yield b""
                continue
            handle.seek(start)
            yield handle.read(end - start)
