from __future__ import annotations

import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from audio_analyzer.constants import RECORDER_BITRATE_BPS, RECORDING_NAME_PATTERN
from audio_analyzer.io.reader import round_half_up
from audio_analyzer.models import AnalysisResult, AnomalyCategory, AnomalySegment

_NAME_RE = re.compile(RECORDING_NAME_PATTERN)


class SessionSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AnomalyRecord(SessionSchema):
    start_time: int = Field(alias="startTime", ge=0)
    end_time: int = Field(alias="endTime", ge=0)
    amplitude: float = Field(ge=0.0, le=1.0)
    type: str = AnomalyCategory.UNKNOWN

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> str:
        return AnomalyCategory.parse(value)

    @classmethod
    def from_segment(cls, segment: AnomalySegment) -> AnomalyRecord:
        return cls(
            start_time=round_half_up(segment.start_time),
            end_time=round_half_up(segment.end_time),
            amplitude=float(segment.peak_amplitude),
            type=segment.category,
        )

    def to_segment(self) -> AnomalySegment:
        return AnomalySegment(
            start_time=float(self.start_time),
            end_time=float(self.end_time),
            peak_amplitude=self.amplitude,
            category=self.type,
        )


class RecordingSession(SessionSchema):
    id: str
    file_path: str = Field(alias="filePath")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    duration: int = Field(ge=0, description="Recording length in whole seconds")
    waveform: list[float] | None = None
    anomalies: list[AnomalyRecord] = Field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    def anomaly_segments(self) -> list[AnomalySegment]:
        return [record.to_segment() for record in self.anomalies]

    def to_json(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        if payload.get("waveform") is None:
            payload.pop("waveform", None)
        return payload

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> RecordingSession:
        return cls.model_validate(payload)


def build_session(
    result: AnalysisResult,
    start_time: datetime | None = None,
    session_id: str | None = None,
    include_waveform: bool = True,
) -> RecordingSession:
    path = Path(result.path)
    if start_time is None:
        start_time = parse_recording_start(path) or _modified_time(path)
    duration = round_half_up(result.total_duration)
    return RecordingSession(
        id=session_id or path.stem,
        file_path=str(path),
        start_time=start_time,
        end_time=start_time + timedelta(seconds=duration),
        duration=duration,
        waveform=[float(value) for value in result.waveform] if include_waveform else None,
        anomalies=[AnomalyRecord.from_segment(segment) for segment in result.anomalies],
    )


def parse_recording_start(path: str | Path) -> datetime | None:
    """Start time encoded in names like ``sleep_recording_20240101_120000.m4a``."""
    match = _NAME_RE.search(Path(path).name)
    if match is None:
        return None
    try:
        return datetime.strptime(match.group(1) + match.group(2), "%Y%m%d%H%M%S")
    except ValueError:
        return None


def estimate_duration_seconds(size_bytes: int, bitrate_bps: int = RECORDER_BITRATE_BPS) -> int:
    if size_bytes <= 0 or bitrate_bps <= 0:
        return 0
    return round_half_up(size_bytes / (bitrate_bps / 8))


def _modified_time(path: Path) -> datetime:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime).replace(microsecond=0)
    except OSError:
        return datetime.now().replace(microsecond=0)
