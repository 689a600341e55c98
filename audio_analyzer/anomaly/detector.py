from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Sequence

import numpy as np

from audio_analyzer.anomaly.classifier import Classifier, HeuristicClassifier
from audio_analyzer.config import DetectionConfig
from audio_analyzer.io.reader import round_half_up
from audio_analyzer.models import AnomalySegment

logger = logging.getLogger("audio_analyzer.anomaly")


@dataclass(frozen=True)
class CandidateRun:
    start_index: int
    end_index: int
    peak: float
    open_at_end: bool = False


def dynamic_threshold(waveform: Sequence[float], config: DetectionConfig | None = None) -> float:
    config = config or DetectionConfig()
    values = np.asarray(waveform, dtype=np.float64)
    low, high = config.threshold_bounds
    if values.size == 0:
        return float(low)
    raw = float(values.mean()) + config.threshold_k * float(values.std())
    return float(min(max(raw, low), high))


def smooth(waveform: Sequence[float], window: int = 3) -> np.ndarray:
    """Centered moving average, shrinking the window at either edge."""
    values = np.asarray(waveform, dtype=np.float64)
    if values.size <= window:
        return values.copy()
    half = window // 2
    n = values.size
    sums = np.zeros(n, dtype=np.float64)
    counts = np.zeros(n, dtype=np.float64)
    for offset in range(-half, half + 1):
        lo = max(0, -offset)
        hi = min(n, n - offset)
        sums[lo:hi] += values[lo + offset : hi + offset]
        counts[lo:hi] += 1.0
    return sums / counts


def find_runs(
    smoothed: Sequence[float],
    threshold: float,
    min_above: int = 3,
    min_below: int = 1,
) -> list[CandidateRun]:
    """Debounced above-threshold runs, in index order and never overlapping.

    ``end_index`` is exclusive. A run still open at the last sample is closed
    with ``end_index == len(smoothed)`` and ``open_at_end`` set, so the final
    sample is part of the range handed to a classifier.
    """
    values = np.asarray(smoothed, dtype=np.float64)
    runs: list[CandidateRun] = []
    run_start: int | None = None
    peak = 0.0
    above = 0
    below = 0
    for i, value in enumerate(values):
        if value > threshold:
            above += 1
            below = 0
            if run_start is None:
                if above >= min_above:
                    run_start = i - (min_above - 1)
                    peak = float(values[run_start : i + 1].max())
            else:
                peak = max(peak, float(value))
        else:
            above = 0
            if run_start is None:
                continue
            below += 1
            if below >= min_below:
                end_index = i - (min_below - 1)
                runs.append(CandidateRun(start_index=run_start, end_index=end_index, peak=peak))
                run_start = None
                peak = 0.0
                below = 0
    if run_start is not None:
        runs.append(
            CandidateRun(
                start_index=run_start,
                end_index=int(values.size),
                peak=peak,
                open_at_end=True,
            )
        )
    return runs


class AnomalyDetector:
    def __init__(
        self,
        classifier: Classifier | None = None,
        config: DetectionConfig | None = None,
    ) -> None:
        self.classifier = classifier or HeuristicClassifier()
        self.config = config or DetectionConfig()

    def detect(
        self,
        waveform: Sequence[float],
        total_duration: timedelta | float,
    ) -> list[AnomalySegment]:
        values = np.asarray(waveform, dtype=np.float64)
        if values.size == 0:
            return []
        total_seconds = as_seconds(total_duration)
        if total_seconds <= 0:
            logger.warning(
                "anomaly_detection_skipped_zero_duration",
                extra={"total_seconds": total_seconds, "sample_count": int(values.size)},
            )
            return []

        threshold = dynamic_threshold(values, self.config)
        smoothed = smooth(values, self.config.smoothing_window)
        seconds_per_sample = total_seconds / values.size

        segments: list[AnomalySegment] = []
        runs = find_runs(
            smoothed,
            threshold,
            min_above=self.config.min_consecutive_above,
            min_below=self.config.min_consecutive_below,
        )
        for run in runs:
            start_time = float(round_half_up(run.start_index * seconds_per_sample))
            if run.open_at_end:
                end_time = float(round_half_up(total_seconds))
            else:
                end_time = float(round_half_up(run.end_index * seconds_per_sample))
            if end_time - start_time < self.config.min_duration_sec or end_time <= start_time:
                continue
            peak = min(max(run.peak, 0.0), 1.0)
            category = self.classifier.classify(peak, values, run.start_index, run.end_index)
            segments.append(
                AnomalySegment(
                    start_time=start_time,
                    end_time=end_time,
                    peak_amplitude=peak,
                    category=category,
                )
            )

        logger.debug(
            "anomalies_detected",
            extra={
                "threshold": threshold,
                "candidates": len(runs),
                "anomalies": len(segments),
                "total_seconds": total_seconds,
            },
        )
        return segments


def as_seconds(value: timedelta | float) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)
