"""Sleep recording waveform extraction and anomaly detection."""

from audio_analyzer.constants import ANALYZER_VERSION, DEFAULT_SAMPLE_COUNT
from audio_analyzer.models import AnalysisResult, AnomalyCategory, AnomalySegment, PCMBuffer
from audio_analyzer.pipeline import AudioAnalyzer, detect_anomalies, extract_waveform

__all__ = [
    "ANALYZER_VERSION",
    "DEFAULT_SAMPLE_COUNT",
    "AnalysisResult",
    "AnomalyCategory",
    "AnomalySegment",
    "AudioAnalyzer",
    "PCMBuffer",
    "detect_anomalies",
    "extract_waveform",
]
