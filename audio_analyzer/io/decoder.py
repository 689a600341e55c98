from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

import numpy as np

from audio_analyzer.constants import DEFAULT_DECODE_CHANNELS, DEFAULT_DECODE_SAMPLE_RATE
from audio_analyzer.errors import ErrorCode
from audio_analyzer.models import DecodeFailure, PCMBuffer

try:
    import soundfile
except (ImportError, OSError):  # pragma: no cover - libsndfile missing on host
    soundfile = None

logger = logging.getLogger("audio_analyzer.io.decoder")

DecodeResult = PCMBuffer | DecodeFailure


class Decoder:
    """Turns an audio container into 16-bit PCM or returns a ``DecodeFailure``."""

    name: str

    def decode(self, path: str | Path) -> DecodeResult:
        raise NotImplementedError


class SoundFileDecoder(Decoder):
    name = "soundfile"

    def decode(self, path: str | Path) -> DecodeResult:
        if soundfile is None:
            return DecodeFailure(
                code=ErrorCode.DECODER_UNAVAILABLE,
                message="soundfile/libsndfile is not available",
                details={"decoder": self.name},
            )
        try:
            data, sample_rate = soundfile.read(str(path), dtype="int16", always_2d=True)
        except (RuntimeError, OSError, ValueError) as exc:
            return DecodeFailure(
                code=ErrorCode.UNSUPPORTED_FORMAT,
                message=str(exc) or "libsndfile could not open the file",
                details={"decoder": self.name, "path": str(path), "reason": type(exc).__name__},
            )
        channels = int(data.shape[1]) if data.ndim == 2 else 1
        samples = np.ascontiguousarray(data, dtype=np.int16).reshape(-1)
        return PCMBuffer(samples=samples, sample_rate=int(sample_rate), channels=channels)


class FfmpegDecoder(Decoder):
    """Platform decoder backed by the ``ffmpeg`` binary, emitting s16le on stdout."""

    name = "ffmpeg"

    def __init__(
        self,
        binary: str = "ffmpeg",
        sample_rate: int = DEFAULT_DECODE_SAMPLE_RATE,
        channels: int = DEFAULT_DECODE_CHANNELS,
        timeout_seconds: float | None = 120.0,
    ) -> None:
        self.binary = binary
        self.sample_rate = sample_rate
        self.channels = channels
        self.timeout_seconds = timeout_seconds

    def build_command(self, executable: str, path: str | Path) -> list[str]:
        return [
            executable,
            "-nostdin",
            "-v",
            "error",
            "-i",
            str(path),
            "-vn",
            "-f",
            "s16le",
            "-acodec",
            "pcm_s16le",
            "-ac",
            str(self.channels),
            "-ar",
            str(self.sample_rate),
            "-",
        ]

    def decode(self, path: str | Path) -> DecodeResult:
        executable = shutil.which(self.binary)
        if executable is None:
            return DecodeFailure(
                code=ErrorCode.DECODER_UNAVAILABLE,
                message=f"{self.binary} not found on PATH",
                details={"decoder": self.name},
            )
        try:
            completed = subprocess.run(
                self.build_command(executable, path),
                capture_output=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return DecodeFailure(
                code=ErrorCode.DECODE_TIMEOUT,
                message="ffmpeg did not finish in time",
                details={"decoder": self.name, "timeout_seconds": self.timeout_seconds},
            )
        except OSError as exc:
            return DecodeFailure(
                code=ErrorCode.DECODER_UNAVAILABLE,
                message=str(exc),
                details={"decoder": self.name, "reason": type(exc).__name__},
            )
        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace")[-400:]
            return DecodeFailure(
                code=ErrorCode.DECODE_FAILED,
                message="ffmpeg exited with an error",
                details={
                    "decoder": self.name,
                    "returncode": completed.returncode,
                    "stderr": stderr,
                },
            )
        if not completed.stdout:
            return DecodeFailure(
                code=ErrorCode.DECODE_EMPTY,
                message="ffmpeg produced no audio",
                details={"decoder": self.name},
            )
        return PCMBuffer.from_bytes(completed.stdout, self.sample_rate, self.channels)


class CascadeDecoder(Decoder):
    name = "cascade"

    def __init__(self, decoders: list[Decoder]) -> None:
        self.decoders = list(decoders)

    def decode(self, path: str | Path) -> DecodeResult:
        failures: list[dict[str, object]] = []
        for decoder in self.decoders:
            result = decoder.decode(path)
            if isinstance(result, PCMBuffer):
                logger.debug("decode_succeeded", extra={"decoder": decoder.name, "path": str(path)})
                return result
            failures.append({"decoder": decoder.name, "code": result.code, "message": result.message})
        return DecodeFailure(
            code=ErrorCode.NO_DECODER,
            message="No decoder could handle the file",
            details={"failures": failures},
        )


class StaticDecoder(Decoder):
    """Deterministic decoder returning a fixed buffer or a forced failure."""

    name = "static"

    def __init__(self, result: DecodeResult | None = None) -> None:
        self.result = result or DecodeFailure(code=ErrorCode.FORCED, message="forced decode failure")
        self.calls: list[str] = []

    def decode(self, path: str | Path) -> DecodeResult:
        self.calls.append(str(path))
        return self.result


def build_decoder(
    backend: str = "auto",
    *,
    ffmpeg_binary: str = "ffmpeg",
    sample_rate: int = DEFAULT_DECODE_SAMPLE_RATE,
    channels: int = DEFAULT_DECODE_CHANNELS,
    timeout_seconds: float | None = 120.0,
) -> Decoder | None:
    backend = backend.strip().lower()
    if backend == "none":
        return None
    ffmpeg = FfmpegDecoder(
        binary=ffmpeg_binary,
        sample_rate=sample_rate,
        channels=channels,
        timeout_seconds=timeout_seconds,
    )
    if backend == "soundfile":
        return SoundFileDecoder()
    if backend == "ffmpeg":
        return ffmpeg
    if backend == "auto":
        return CascadeDecoder([SoundFileDecoder(), ffmpeg])
    raise ValueError(f"Unknown decoder backend: {backend}")
