from __future__ import annotations

import json
from datetime import datetime

import numpy as np
import pytest
from pydantic import ValidationError

from audio_analyzer.anomaly.detector import AnomalyDetector
from audio_analyzer.models import AnalysisResult, AnomalyCategory, AnomalySegment
from audio_analyzer.serialize.session import (
    AnomalyRecord,
    RecordingSession,
    build_session,
    estimate_duration_seconds,
    parse_recording_start,
)
from audio_analyzer.serialize.writers import read_session, write_manifest, write_session


def _result(path: str) -> AnalysisResult:
    return AnalysisResult(
        path=path,
        waveform=np.linspace(0.0, 1.0, 5),
        waveform_source="bytes",
        total_duration=3600.0,
        anomalies=[
            AnomalySegment(start_time=90.0, end_time=100.0, peak_amplitude=0.95),
            AnomalySegment(
                start_time=1200.0,
                end_time=1260.0,
                peak_amplitude=1.0,
                category=AnomalyCategory.SNORING,
            ),
        ],
    )


def test_session_json_matches_persisted_shape() -> None:
    session = build_session(_result("/data/sleep_recording_20240101_230000.m4a"))
    payload = session.to_json()
    assert payload["id"] == "sleep_recording_20240101_230000"
    assert payload["filePath"] == "/data/sleep_recording_20240101_230000.m4a"
    assert payload["startTime"] == "2024-01-01T23:00:00"
    assert payload["endTime"] == "2024-01-02T00:00:00"
    assert payload["duration"] == 3600
    assert payload["anomalies"][0] == {
        "startTime": 90,
        "endTime": 100,
        "amplitude": 0.95,
        "type": "unknown",
    }
    assert payload["anomalies"][1]["type"] == "snoring"
    assert len(payload["waveform"]) == 5


def test_session_round_trip_is_lossless() -> None:
    session = build_session(_result("/data/sleep_recording_20240101_230000.m4a"))
    restored = RecordingSession.from_json(json.loads(json.dumps(session.to_json())))
    assert restored == session
    assert restored.anomaly_segments() == _result("x").anomalies
    assert restored.is_completed


def test_waveform_key_is_omitted_when_absent() -> None:
    session = build_session(
        _result("/data/sleep_recording_20240101_230000.m4a"), include_waveform=False
    )
    assert "waveform" not in session.to_json()


def test_legacy_payload_is_accepted() -> None:
    payload = {
        "id": "abc",
        "filePath": "/data/abc.m4a",
        "startTime": "2024-03-04T22:15:00.000",
        "endTime": None,
        "duration": 42,
        "anomalies": [
            {"startTime": 1, "endTime": 3, "amplitude": 0.5, "type": "AnomalyType.coughing"},
            {"startTime": 5, "endTime": 9, "amplitude": 0.7, "type": "AnomalyType.sneezing"},
        ],
    }
    session = RecordingSession.from_json(payload)
    assert not session.is_completed
    assert [record.type for record in session.anomalies] == [
        AnomalyCategory.COUGHING,
        AnomalyCategory.UNKNOWN,
    ]


def test_amplitude_outside_unit_range_is_rejected() -> None:
    with pytest.raises(ValidationError):
        AnomalyRecord.model_validate({"startTime": 0, "endTime": 2, "amplitude": 1.5, "type": "unknown"})


def test_write_and_read_session(tmp_path) -> None:
    session = build_session(_result(str(tmp_path / "sleep_recording_20240101_230000.m4a")))
    path = write_session(session, tmp_path / "out")
    assert path.name == "sleep_recording_20240101_230000.session.json"
    assert read_session(path) == session


def test_write_manifest_writes_one_line_per_entry(tmp_path) -> None:
    manifest = tmp_path / "out" / "manifest.jsonl"
    write_manifest([{"path": "a"}, {"path": "b"}], manifest)
    lines = manifest.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["path"] for line in lines] == ["a", "b"]


def test_parse_recording_start_from_file_name() -> None:
    assert parse_recording_start("sleep_recording_20240101_120000.m4a") == datetime(
        2024, 1, 1, 12, 0, 0
    )
    assert parse_recording_start("/tmp/sleep_recording_20241399_120000.m4a") is None
    assert parse_recording_start("night.m4a") is None


def test_estimate_duration_uses_recorder_bitrate() -> None:
    assert estimate_duration_seconds(16_000) == 1
    assert estimate_duration_seconds(57_600_000) == 3600
    assert estimate_duration_seconds(0) == 0


def test_detected_segments_survive_session_round_trip() -> None:
    waveform = [0.1] * 190 + [1.0] * 10
    segments = AnomalyDetector().detect(waveform, 400.4)
    assert [(s.start_time, s.end_time) for s in segments] == [(380.0, 400.0)]
    result = AnalysisResult(
        path="/data/sleep_recording_20240101_230000.m4a",
        waveform=np.asarray(waveform),
        waveform_source="pcm",
        total_duration=400.4,
        anomalies=segments,
    )
    restored = RecordingSession.from_json(json.loads(json.dumps(build_session(result).to_json())))
    assert restored.anomaly_segments() == segments
