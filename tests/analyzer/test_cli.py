from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest
import soundfile

from audio_analyzer.cli.main import build_parser, find_recordings, main


def test_analyze_writes_session_and_manifest(tmp_path) -> None:
    input_dir = tmp_path / "recordings"
    input_dir.mkdir()
    _write_burst_wav(input_dir / "sleep_recording_20240101_230000.wav")
    (input_dir / "notes.txt").write_text("not audio", encoding="utf-8")
    out_dir = tmp_path / "out"

    code = main(
        [
            "analyze",
            "--input",
            str(input_dir),
            "--output",
            str(out_dir),
            "--decoder",
            "soundfile",
            "--duration",
            "200",
        ]
    )
    assert code == 0

    session = json.loads(
        (out_dir / "sleep_recording_20240101_230000.session.json").read_text(encoding="utf-8")
    )
    assert session["startTime"] == "2024-01-01T23:00:00"
    assert session["duration"] == 200
    assert len(session["waveform"]) == 200
    assert [(a["startTime"], a["endTime"], a["type"]) for a in session["anomalies"]] == [
        (90, 100, "unknown")
    ]

    lines = (out_dir / "manifest.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["status"] == "ok"
    assert entry["waveform_source"] == "pcm"
    assert entry["anomalies"] == 1
    assert len(entry["config_hash"]) == 64


def test_failed_recording_is_reported_in_manifest(tmp_path) -> None:
    path = _write_burst_wav(tmp_path / "night.wav")
    out_dir = tmp_path / "out"
    code = main(["analyze", "--input", str(path), "--output", str(out_dir), "--samples", "0"])
    assert code == 1
    entry = json.loads((out_dir / "manifest.jsonl").read_text(encoding="utf-8"))
    assert entry["status"] == "failed"
    assert entry["error_code"] == "E_ANALYSIS_FAILED"
    assert entry["details"]["exception_type"] == "ValueError"


def test_no_manifest_and_no_waveform_flags(tmp_path) -> None:
    path = _write_burst_wav(tmp_path / "night.wav")
    out_dir = tmp_path / "out"
    code = main(
        [
            "analyze",
            "--input",
            str(path),
            "--output",
            str(out_dir),
            "--decoder",
            "none",
            "--no-waveform",
            "--no-manifest",
        ]
    )
    assert code == 0
    assert not (out_dir / "manifest.jsonl").exists()
    session = json.loads((out_dir / "night.session.json").read_text(encoding="utf-8"))
    assert "waveform" not in session


def test_missing_input_exits(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["analyze", "--input", str(tmp_path / "absent"), "--output", str(tmp_path / "out")])
    assert "E_NO_INPUT" in str(exc.value)


def test_invalid_config_exits(tmp_path) -> None:
    path = _write_burst_wav(tmp_path / "night.wav")
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("sample_count: -1\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(
            [
                "analyze",
                "--input",
                str(path),
                "--output",
                str(tmp_path / "out"),
                "--config",
                str(config_path),
            ]
        )
    assert "E_CONFIG_INVALID" in str(exc.value)


def test_find_recordings_filters_by_extension(tmp_path) -> None:
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "one.m4a").write_bytes(b"x")
    (tmp_path / "two.WAV").write_bytes(b"x")
    (tmp_path / "three.json").write_text("{}", encoding="utf-8")
    found = find_recordings(tmp_path)
    assert [path.name for path in found] == ["one.m4a", "two.WAV"]


def test_parser_requires_subcommand() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def _write_burst_wav(path: Path, sample_rate: int = 8000, seconds: int = 20) -> Path:
    frames = sample_rate * seconds
    t = np.arange(frames, dtype=np.float64) / sample_rate
    amplitude = np.full(frames, 0.05)
    per_bucket = frames // 200
    amplitude[90 * per_bucket : 100 * per_bucket] = 0.9
    soundfile.write(path, amplitude * np.sin(2.0 * np.pi * 100.0 * t), sample_rate, subtype="PCM_16")
    return path
