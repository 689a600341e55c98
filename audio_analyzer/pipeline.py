from __future__ import annotations

import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Sequence

import anyio
import numpy as np

from audio_analyzer.anomaly.classifier import Classifier, HeuristicClassifier
from audio_analyzer.anomaly.detector import AnomalyDetector, as_seconds
from audio_analyzer.config import AnalysisConfig
from audio_analyzer.core.settings import Settings, get_settings
from audio_analyzer.io.decoder import Decoder, build_decoder
from audio_analyzer.io.reader import file_size
from audio_analyzer.models import AnalysisResult, AnomalySegment
from audio_analyzer.serialize.session import estimate_duration_seconds
from audio_analyzer.waveform.extract import WaveformExtractor

logger = logging.getLogger("audio_analyzer.pipeline")


class AudioAnalyzer:
    """Decoder, waveform extractor and anomaly detector wired together.

    Holds no per-file state, so one instance can serve many recordings and
    separate files can be analyzed concurrently.

    ``decoder`` is a ``Decoder`` instance or a backend name resolved through
    ``build_decoder`` with the current settings. The default ``"auto"`` tries
    soundfile then ffmpeg; pass ``None`` to go straight to the byte heuristic.
    """

    def __init__(
        self,
        decoder: Decoder | str | None = "auto",
        classifier: Classifier | None = None,
        config: AnalysisConfig | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.decoder = resolve_decoder(decoder)
        self.classifier = classifier or HeuristicClassifier(self.config.classifier)
        self.extractor = WaveformExtractor(decoder=self.decoder, config=self.config.waveform)
        self.detector = AnomalyDetector(classifier=self.classifier, config=self.config.detection)

    @classmethod
    def from_settings(cls, settings: Settings, config: AnalysisConfig | None = None) -> AudioAnalyzer:
        return cls(decoder=resolve_decoder(settings.decoder_backend, settings), config=config)

    def extract_waveform(self, path: str | Path, sample_count: int | None = None) -> np.ndarray:
        count = self.config.sample_count if sample_count is None else sample_count
        return self.extractor.extract(path, count)

    def detect_anomalies(
        self,
        path: str | Path,
        waveform: Sequence[float],
        total_duration: timedelta | float,
    ) -> list[AnomalySegment]:
        anomalies = self.detector.detect(waveform, total_duration)
        logger.info(
            "anomaly_detection_complete",
            extra={"path": str(path), "anomalies": len(anomalies)},
        )
        return anomalies

    def analyze(
        self,
        path: str | Path,
        total_duration: timedelta | float | None = None,
        sample_count: int | None = None,
    ) -> AnalysisResult:
        started = time.perf_counter()
        count = self.config.sample_count if sample_count is None else sample_count
        outcome = self.extractor.extract_with_source(path, count)
        if total_duration is None:
            size = outcome.file_size if outcome.file_size is not None else file_size(path)
            total_seconds = float(estimate_duration_seconds(size or 0))
        else:
            total_seconds = as_seconds(total_duration)
        anomalies = self.detect_anomalies(path, outcome.waveform, total_seconds)
        logger.info(
            "recording_analyzed",
            extra={
                "path": str(path),
                "waveform_source": outcome.source,
                "total_seconds": total_seconds,
                "anomalies": len(anomalies),
                "elapsed_ms": round((time.perf_counter() - started) * 1000.0, 2),
            },
        )
        return AnalysisResult(
            path=str(path),
            waveform=outcome.waveform,
            waveform_source=outcome.source,
            total_duration=total_seconds,
            anomalies=anomalies,
        )

    async def analyze_async(
        self,
        path: str | Path,
        total_duration: timedelta | float | None = None,
        sample_count: int | None = None,
    ) -> AnalysisResult:
        # The worker thread only touches its own buffers, so a cancelled caller can drop it.
        return await anyio.to_thread.run_sync(
            self.analyze,
            path,
            total_duration,
            sample_count,
            abandon_on_cancel=True,
        )


def extract_waveform(
    path: str | Path,
    sample_count: int = 200,
    *,
    decoder: Decoder | str | None = "auto",
    config: AnalysisConfig | None = None,
) -> np.ndarray:
    return AudioAnalyzer(decoder=decoder, config=config).extract_waveform(path, sample_count)


def detect_anomalies(
    path: str | Path,
    waveform: Sequence[float],
    total_duration: timedelta | float,
    *,
    classifier: Classifier | None = None,
    config: AnalysisConfig | None = None,
) -> list[AnomalySegment]:
    return AudioAnalyzer(decoder=None, classifier=classifier, config=config).detect_anomalies(
        path, waveform, total_duration
    )


def resolve_decoder(
    decoder: Decoder | str | None,
    settings: Settings | None = None,
) -> Decoder | None:
    if decoder is None or isinstance(decoder, Decoder):
        return decoder
    settings = settings or get_settings()
    return build_decoder(
        decoder,
        ffmpeg_binary=settings.ffmpeg_binary,
        sample_rate=settings.decode_sample_rate,
        channels=settings.decode_channels,
        timeout_seconds=settings.decode_timeout_seconds,
    )
