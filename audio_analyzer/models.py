from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from audio_analyzer.constants import PCM16_BIT_DEPTH, PCM16_DTYPE


class AnomalyCategory:
    UNKNOWN = "unknown"
    SNORING = "snoring"
    TEETH_GRINDING = "teethGrinding"
    NIGHT_WAKING = "nightWaking"
    COUGHING = "coughing"
    TALKING = "talking"

    ALL = (UNKNOWN, SNORING, TEETH_GRINDING, NIGHT_WAKING, COUGHING, TALKING)

    DISPLAY_NAMES = {
        UNKNOWN: "Unusual sound",
        SNORING: "Snoring",
        TEETH_GRINDING: "Teeth grinding",
        NIGHT_WAKING: "Night waking",
        COUGHING: "Coughing",
        TALKING: "Sleep talking",
    }

    @classmethod
    def parse(cls, value: str | None) -> str:
        """Map a stored type name to a category, accepting ``AnomalyType.x`` legacy names."""
        if not value:
            return cls.UNKNOWN
        name = str(value).rsplit(".", 1)[-1]
        return name if name in cls.ALL else cls.UNKNOWN

    @classmethod
    def display_name(cls, category: str) -> str:
        return cls.DISPLAY_NAMES.get(category, cls.DISPLAY_NAMES[cls.UNKNOWN])


@dataclass(frozen=True)
class PCMBuffer:
    samples: np.ndarray
    sample_rate: int
    channels: int
    bit_depth: int = PCM16_BIT_DEPTH

    @classmethod
    def from_bytes(cls, data: bytes, sample_rate: int, channels: int) -> PCMBuffer:
        usable = len(data) - (len(data) % 2)
        samples = np.frombuffer(data[:usable], dtype=PCM16_DTYPE).astype(np.int16)
        return cls(samples=samples, sample_rate=sample_rate, channels=channels)

    @property
    def frame_count(self) -> int:
        if self.channels <= 0:
            return 0
        return int(self.samples.size // self.channels)

    def frames(self) -> np.ndarray:
        """One value per audio frame: the first channel of each interleaved frame."""
        count = self.frame_count
        if count == 0:
            return np.zeros(0, dtype=np.int16)
        return self.samples[: count * self.channels : self.channels]

    @property
    def full_scale(self) -> float:
        return float(2 ** (self.bit_depth - 1))


@dataclass(frozen=True)
class DecodeFailure:
    code: str
    message: str
    details: dict[str, object] | None = None


@dataclass(frozen=True)
class AnomalySegment:
    start_time: float
    end_time: float
    peak_amplitude: float
    category: str = AnomalyCategory.UNKNOWN

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class ExtractionOutcome:
    waveform: np.ndarray
    source: str
    file_size: int | None = None
    decode_failure: DecodeFailure | None = None


@dataclass(frozen=True)
class AnalysisResult:
    path: str
    waveform: np.ndarray
    waveform_source: str
    total_duration: float
    anomalies: list[AnomalySegment]
