from __future__ import annotations

import pytest

from audio_analyzer.config import AnalysisConfig, as_dict, load_config, parse_config
from audio_analyzer.constants import LARGE_FILE_THRESHOLD_BYTES
from audio_analyzer.errors import AnalysisError, ErrorCode, to_failure_payload


def test_packaged_defaults_match_dataclass_defaults() -> None:
    config = load_config()
    assert config == AnalysisConfig()
    assert config.sample_count == 200
    assert config.detection.threshold_bounds == (0.3, 0.9)
    assert config.waveform.large_file_threshold_bytes == LARGE_FILE_THRESHOLD_BYTES


def test_custom_yaml_overrides_values(tmp_path) -> None:
    path = tmp_path / "analysis.yaml"
    path.write_text(
        "sample_count: 120\n"
        "waveform:\n"
        "  large_file_threshold_bytes: 2048\n"
        "detection:\n"
        "  threshold_k: 2.0\n"
        "  min_duration_sec: 5\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.sample_count == 120
    assert config.waveform.large_file_threshold_bytes == 2048
    assert config.detection.threshold_k == 2.0
    assert config.detection.min_duration_sec == 5.0
    assert config.detection.smoothing_window == 3


def test_config_hash_is_stable_and_sensitive() -> None:
    base = parse_config(as_dict(AnalysisConfig()))
    assert base.to_hash() == AnalysisConfig().to_hash()
    changed = parse_config({"sample_count": 400})
    assert changed.to_hash() != base.to_hash()


@pytest.mark.parametrize(
    "raw",
    [
        {"sample_count": 0},
        {"detection": {"threshold_bounds": [0.9, 0.3]}},
        {"detection": {"min_consecutive_above": 0}},
        {"waveform": {"silence_epsilon": -1}},
    ],
)
def test_invalid_config_raises(raw) -> None:
    with pytest.raises(AnalysisError) as exc:
        parse_config(raw)
    assert exc.value.code == "E_CONFIG_INVALID"
    assert exc.value.details["problems"]


def test_failure_payload_for_unexpected_errors() -> None:
    payload = to_failure_payload(KeyError("missing"))
    assert payload["error_code"] == ErrorCode.ANALYSIS_FAILED
    assert payload["stage"] == "analysis"
    assert payload["details"]["exception_type"] == "KeyError"
    error = AnalysisError(code=ErrorCode.NO_INPUT, message="nothing", details={"input": "x"})
    assert to_failure_payload(error)["error_code"] == "E_NO_INPUT"
    assert to_failure_payload(error)["stage"] == "input"
    assert str(error) == "E_NO_INPUT: nothing"


def test_failure_payload_for_unreadable_files(tmp_path) -> None:
    missing = tmp_path / "night.m4a"
    payload = to_failure_payload(FileNotFoundError(2, "No such file or directory", str(missing)))
    assert payload["error_code"] == ErrorCode.FILE_UNREADABLE
    assert payload["stage"] == "input"
    assert payload["message"] == "No such file or directory"
    assert payload["details"]["filename"] == str(missing)


@pytest.mark.parametrize(
    ("code", "stage"),
    [
        (ErrorCode.CONFIG_INVALID, "config"),
        (ErrorCode.DECODE_TIMEOUT, "decode"),
        (ErrorCode.PCM_SILENT, "decode"),
        ("E_SOMETHING_NEW", "analysis"),
    ],
)
def test_error_code_stages(code: str, stage: str) -> None:
    assert ErrorCode.stage(code) == stage
