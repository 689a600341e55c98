from audio_analyzer.anomaly.classifier import Classifier, HeuristicClassifier, segment_shape
from audio_analyzer.anomaly.detector import AnomalyDetector, dynamic_threshold, find_runs, smooth

__all__ = [
    "AnomalyDetector",
    "Classifier",
    "HeuristicClassifier",
    "dynamic_threshold",
    "find_runs",
    "segment_shape",
    "smooth",
]
