from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from audio_analyzer.constants import (
    CONFIG_SPEC_VERSION,
    DEFAULT_SAMPLE_COUNT,
    LARGE_FILE_THRESHOLD_BYTES,
)
from audio_analyzer.errors import AnalysisError, ErrorCode


@dataclass(frozen=True)
class WaveformConfig:
    silence_epsilon: float = 1e-4
    large_file_threshold_bytes: int = LARGE_FILE_THRESHOLD_BYTES


@dataclass(frozen=True)
class DetectionConfig:
    threshold_k: float = 1.5
    threshold_bounds: tuple[float, float] = (0.3, 0.9)
    smoothing_window: int = 3
    min_consecutive_above: int = 3
    min_consecutive_below: int = 1
    min_duration_sec: float = 1.0


@dataclass(frozen=True)
class ClassifierConfig:
    peak_weight: float = 0.6
    mean_weight: float = 0.4
    steady_amplitude_min: float = 0.85
    steady_variation_max: float = 0.1
    erratic_amplitude_min: float = 0.7
    erratic_variation_min: float = 0.2


@dataclass(frozen=True)
class AnalysisConfig:
    config_spec_version: str = CONFIG_SPEC_VERSION
    sample_count: int = DEFAULT_SAMPLE_COUNT
    waveform: WaveformConfig = field(default_factory=WaveformConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)

    def to_hash(self) -> str:
        payload = json.dumps(as_dict(self), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def load_config(path: str | Path | None = None) -> AnalysisConfig:
    config_path = Path(path) if path is not None else Path(__file__).with_name("defaults.yaml")
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    return parse_config(raw)


def parse_config(raw: dict[str, Any]) -> AnalysisConfig:
    waveform_raw = raw.get("waveform", {}) or {}
    detection_raw = raw.get("detection", {}) or {}
    classifier_raw = raw.get("classifier", {}) or {}

    waveform = WaveformConfig(
        silence_epsilon=float(waveform_raw.get("silence_epsilon", 1e-4)),
        large_file_threshold_bytes=int(
            waveform_raw.get("large_file_threshold_bytes", LARGE_FILE_THRESHOLD_BYTES)
        ),
    )
    detection = DetectionConfig(
        threshold_k=float(detection_raw.get("threshold_k", 1.5)),
        threshold_bounds=tuple(
            float(value) for value in detection_raw.get("threshold_bounds", [0.3, 0.9])
        ),
        smoothing_window=int(detection_raw.get("smoothing_window", 3)),
        min_consecutive_above=int(detection_raw.get("min_consecutive_above", 3)),
        min_consecutive_below=int(detection_raw.get("min_consecutive_below", 1)),
        min_duration_sec=float(detection_raw.get("min_duration_sec", 1.0)),
    )
    classifier = ClassifierConfig(
        peak_weight=float(classifier_raw.get("peak_weight", 0.6)),
        mean_weight=float(classifier_raw.get("mean_weight", 0.4)),
        steady_amplitude_min=float(classifier_raw.get("steady_amplitude_min", 0.85)),
        steady_variation_max=float(classifier_raw.get("steady_variation_max", 0.1)),
        erratic_amplitude_min=float(classifier_raw.get("erratic_amplitude_min", 0.7)),
        erratic_variation_min=float(classifier_raw.get("erratic_variation_min", 0.2)),
    )
    config = AnalysisConfig(
        config_spec_version=str(raw.get("config_spec_version", CONFIG_SPEC_VERSION)),
        sample_count=int(raw.get("sample_count", DEFAULT_SAMPLE_COUNT)),
        waveform=waveform,
        detection=detection,
        classifier=classifier,
    )
    validate_config(config)
    return config


def validate_config(config: AnalysisConfig) -> None:
    problems: list[str] = []
    if config.sample_count <= 0:
        problems.append("sample_count must be positive")
    if config.waveform.silence_epsilon < 0:
        problems.append("waveform.silence_epsilon must be non-negative")
    if config.waveform.large_file_threshold_bytes < 0:
        problems.append("waveform.large_file_threshold_bytes must be non-negative")
    bounds = config.detection.threshold_bounds
    if len(bounds) != 2 or bounds[0] > bounds[1]:
        problems.append("detection.threshold_bounds must be [low, high] with low <= high")
    if config.detection.smoothing_window < 1:
        problems.append("detection.smoothing_window must be >= 1")
    if config.detection.min_consecutive_above < 1:
        problems.append("detection.min_consecutive_above must be >= 1")
    if config.detection.min_consecutive_below < 1:
        problems.append("detection.min_consecutive_below must be >= 1")
    if config.detection.min_duration_sec < 0:
        problems.append("detection.min_duration_sec must be non-negative")
    if problems:
        raise AnalysisError(
            code=ErrorCode.CONFIG_INVALID,
            message="Invalid analysis config",
            details={"problems": problems},
        )


def as_dict(config: AnalysisConfig) -> dict[str, Any]:
    return {
        "config_spec_version": config.config_spec_version,
        "sample_count": config.sample_count,
        "waveform": {
            "silence_epsilon": config.waveform.silence_epsilon,
            "large_file_threshold_bytes": config.waveform.large_file_threshold_bytes,
        },
        "detection": {
            "threshold_k": config.detection.threshold_k,
            "threshold_bounds": list(config.detection.threshold_bounds),
            "smoothing_window": config.detection.smoothing_window,
            "min_consecutive_above": config.detection.min_consecutive_above,
            "min_consecutive_below": config.detection.min_consecutive_below,
            "min_duration_sec": config.detection.min_duration_sec,
        },
        "classifier": {
            "peak_weight": config.classifier.peak_weight,
            "mean_weight": config.classifier.mean_weight,
            "steady_amplitude_min": config.classifier.steady_amplitude_min,
            "steady_variation_max": config.classifier.steady_variation_max,
            "erratic_amplitude_min": config.classifier.erratic_amplitude_min,
            "erratic_variation_min": config.classifier.erratic_variation_min,
        },
    }
