from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np

from audio_analyzer.config import WaveformConfig
from audio_analyzer.constants import (
    BYTE_CENTER,
    BYTE_PEAK_WEIGHT,
    BYTE_RMS_WEIGHT,
    DEFAULT_SAMPLE_COUNT,
    WaveformSource,
)
from audio_analyzer.errors import ErrorCode
from audio_analyzer.io.decoder import Decoder
from audio_analyzer.io.reader import file_size, iter_byte_buckets
from audio_analyzer.models import DecodeFailure, ExtractionOutcome, PCMBuffer

logger = logging.getLogger("audio_analyzer.waveform")


class WaveformExtractor:
    """Fixed-length energy envelope of an audio file.

    Sources are tried in order: decoded PCM, a heuristic over the raw file
    bytes, then a size-derived placeholder. ``extract`` never raises for I/O
    or decode problems and always returns ``sample_count`` values in [0, 1].
    """

    def __init__(
        self,
        decoder: Decoder | None = None,
        config: WaveformConfig | None = None,
    ) -> None:
        self.decoder = decoder
        self.config = config or WaveformConfig()

    def extract(self, path: str | Path, sample_count: int = DEFAULT_SAMPLE_COUNT) -> np.ndarray:
        return self.extract_with_source(path, sample_count).waveform

    def extract_with_source(
        self,
        path: str | Path,
        sample_count: int = DEFAULT_SAMPLE_COUNT,
    ) -> ExtractionOutcome:
        _check_sample_count(sample_count)
        path = Path(path)

        try:
            size = file_size(path)
        except OSError:
            size = None
        if size is None:
            logger.info("waveform_file_missing", extra={"path": str(path)})
            return _outcome(np.zeros(sample_count), WaveformSource.MISSING, None)

        decode_failure: DecodeFailure | None = None
        if self.decoder is not None:
            levels, decode_failure = self._from_decoder(path, sample_count)
            if levels is not None:
                return _outcome(levels, WaveformSource.PCM, size)

        streamed = size > self.config.large_file_threshold_bytes
        try:
            levels = waveform_from_bytes(path, size, sample_count, streamed=streamed)
        except OSError as exc:
            logger.warning(
                "waveform_byte_read_failed",
                extra={"path": str(path), "reason": type(exc).__name__},
            )
            return _outcome(
                placeholder_waveform(size, sample_count),
                WaveformSource.PLACEHOLDER,
                size,
                decode_failure,
            )
        source = WaveformSource.BYTES_STREAMED if streamed else WaveformSource.BYTES
        return _outcome(levels, source, size, decode_failure)

    def _from_decoder(
        self,
        path: Path,
        sample_count: int,
    ) -> tuple[np.ndarray | None, DecodeFailure | None]:
        try:
            result = self.decoder.decode(path)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "decoder_raised",
                extra={"path": str(path), "reason": type(exc).__name__, "detail": str(exc)},
            )
            return None, DecodeFailure(
                code=ErrorCode.DECODER_RAISED,
                message=str(exc),
                details={"exception_type": type(exc).__name__},
            )
        if isinstance(result, DecodeFailure):
            logger.info(
                "pcm_decode_failed",
                extra={"path": str(path), "code": result.code, "detail": result.message},
            )
            return None, result

        levels = pcm_bucket_levels(result, sample_count)
        if not np.any(levels > self.config.silence_epsilon):
            logger.info("pcm_rejected_silent", extra={"path": str(path)})
            return None, DecodeFailure(
                code=ErrorCode.PCM_SILENT, message="Decoded PCM carried no energy"
            )
        return normalize(levels), None


def pcm_bucket_levels(buffer: PCMBuffer, sample_count: int) -> np.ndarray:
    """Per-bucket RMS of normalized samples, before peak normalization."""
    _check_sample_count(sample_count)
    frames = buffer.frames().astype(np.float64) / buffer.full_scale
    total = frames.size
    levels = np.zeros(sample_count, dtype=np.float64)
    if total == 0:
        return levels
    bucket = math.ceil(total / sample_count)
    for i in range(sample_count):
        start = i * bucket
        if start >= total:
            break
        chunk = frames[start : min(start + bucket, total)]
        levels[i] = math.sqrt(float(np.mean(chunk * chunk)))
    return levels


def waveform_from_pcm(buffer: PCMBuffer, sample_count: int = DEFAULT_SAMPLE_COUNT) -> np.ndarray:
    return normalize(pcm_bucket_levels(buffer, sample_count))


def byte_amplitude(segment: bytes) -> float:
    if not segment:
        return 0.0
    centered = np.abs(np.frombuffer(segment, dtype=np.uint8).astype(np.float64) - BYTE_CENTER)
    rms = math.sqrt(float(np.mean(centered * centered)))
    peak = float(centered.max())
    combined = rms * BYTE_RMS_WEIGHT + peak * BYTE_PEAK_WEIGHT
    return min(max(combined / BYTE_CENTER, 0.0), 1.0)


def waveform_from_bytes(
    path: str | Path,
    size: int,
    sample_count: int,
    streamed: bool = False,
) -> np.ndarray:
    _check_sample_count(sample_count)
    levels = np.zeros(sample_count, dtype=np.float64)
    if size <= 0:
        return levels
    for i, segment in enumerate(iter_byte_buckets(path, size, sample_count, streamed)):
        levels[i] = byte_amplitude(segment)
    return normalize(levels)


def placeholder_waveform(size: int, sample_count: int) -> np.ndarray:
    """Deterministic stand-in shaped by file size; carries no signal information."""
    _check_sample_count(sample_count)
    base = (size % 1000) / 1000.0
    index = np.arange(sample_count, dtype=np.float64)
    levels = base + (index / sample_count) * 0.3 + (index % 10) / 30.0
    return normalize(np.clip(levels, 0.0, 1.0))


def normalize(levels: np.ndarray) -> np.ndarray:
    levels = np.asarray(levels, dtype=np.float64)
    peak = float(levels.max()) if levels.size else 0.0
    if peak > 0:
        levels = levels / peak
    return np.clip(levels, 0.0, 1.0)


def _outcome(
    levels: np.ndarray,
    source: str,
    size: int | None,
    decode_failure: DecodeFailure | None = None,
) -> ExtractionOutcome:
    waveform = np.array(levels, dtype=np.float64)
    waveform.setflags(write=False)
    logger.debug(
        "waveform_extracted",
        extra={"source": source, "file_size": size, "sample_count": int(waveform.size)},
    )
    return ExtractionOutcome(
        waveform=waveform,
        source=source,
        file_size=size,
        decode_failure=decode_failure,
    )


def _check_sample_count(sample_count: int) -> None:
    if int(sample_count) != sample_count or sample_count <= 0:
        raise ValueError(f"sample_count must be a positive integer, got {sample_count!r}")
