from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from audio_analyzer.config import ClassifierConfig
from audio_analyzer.models import AnomalyCategory


@dataclass(frozen=True)
class SegmentShape:
    peak_amplitude: float
    mean_amplitude: float
    variation: float
    combined_amplitude: float


class Classifier:
    name: str

    def classify(
        self,
        peak_amplitude: float,
        waveform: Sequence[float],
        start_index: int,
        end_index: int,
    ) -> str:
        raise NotImplementedError


def segment_shape(
    peak_amplitude: float,
    waveform: Sequence[float],
    start_index: int,
    end_index: int,
    config: ClassifierConfig | None = None,
) -> SegmentShape | None:
    config = config or ClassifierConfig()
    values = np.asarray(waveform, dtype=np.float64)
    if values.size == 0:
        return None
    start = min(max(start_index, 0), values.size - 1)
    end = min(max(end_index, 0), values.size)
    segment = values[start:end]
    if segment.size == 0:
        return None
    mean_amplitude = float(segment.mean())
    variation = float(np.abs(np.diff(segment)).sum() / segment.size)
    combined = peak_amplitude * config.peak_weight + mean_amplitude * config.mean_weight
    return SegmentShape(
        peak_amplitude=float(peak_amplitude),
        mean_amplitude=mean_amplitude,
        variation=variation,
        combined_amplitude=combined,
    )


class HeuristicClassifier(Classifier):
    """Amplitude/variation rules awaiting a trained model.

    The branches mark where snoring (loud and steady), teeth grinding
    (loud and erratic) and night waking would be told apart. Until those
    rules are validated against labelled nights every branch reports
    ``unknown``.
    """

    name = "heuristic"

    def __init__(self, config: ClassifierConfig | None = None) -> None:
        self.config = config or ClassifierConfig()

    def classify(
        self,
        peak_amplitude: float,
        waveform: Sequence[float],
        start_index: int,
        end_index: int,
    ) -> str:
        shape = segment_shape(peak_amplitude, waveform, start_index, end_index, self.config)
        if shape is None:
            return AnomalyCategory.UNKNOWN

        if (
            shape.combined_amplitude > self.config.steady_amplitude_min
            and shape.variation < self.config.steady_variation_max
        ):
            return AnomalyCategory.UNKNOWN
        if (
            shape.combined_amplitude > self.config.erratic_amplitude_min
            and shape.variation > self.config.erratic_variation_min
        ):
            return AnomalyCategory.UNKNOWN
        return AnomalyCategory.UNKNOWN
