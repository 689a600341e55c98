from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ErrorCode:
    CONFIG_INVALID = "E_CONFIG_INVALID"
    NO_INPUT = "E_NO_INPUT"
    ANALYSIS_FAILED = "E_ANALYSIS_FAILED"
    FILE_UNREADABLE = "E_FILE_UNREADABLE"

    # Decode failures are returned as values and end in a byte-heuristic fallback.
    DECODER_UNAVAILABLE = "E_DECODER_UNAVAILABLE"
    UNSUPPORTED_FORMAT = "E_UNSUPPORTED_FORMAT"
    DECODE_TIMEOUT = "E_DECODE_TIMEOUT"
    DECODE_FAILED = "E_DECODE_FAILED"
    DECODE_EMPTY = "E_DECODE_EMPTY"
    DECODER_RAISED = "E_DECODER_RAISED"
    NO_DECODER = "E_NO_DECODER"
    PCM_SILENT = "E_PCM_SILENT"
    FORCED = "E_FORCED"

    STAGES = {
        CONFIG_INVALID: "config",
        NO_INPUT: "input",
        FILE_UNREADABLE: "input",
        DECODER_UNAVAILABLE: "decode",
        UNSUPPORTED_FORMAT: "decode",
        DECODE_TIMEOUT: "decode",
        DECODE_FAILED: "decode",
        DECODE_EMPTY: "decode",
        DECODER_RAISED: "decode",
        NO_DECODER: "decode",
        PCM_SILENT: "decode",
        FORCED: "decode",
    }

    @classmethod
    def stage(cls, code: str) -> str:
        return cls.STAGES.get(code, "analysis")


@dataclass
class AnalysisError(Exception):
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


def to_failure_payload(exc: Exception) -> dict[str, Any]:
    """Manifest entry fields for a recording that could not be analyzed."""
    if isinstance(exc, AnalysisError):
        code, message, details = exc.code, exc.message, dict(exc.details)
    elif isinstance(exc, OSError):
        code = ErrorCode.FILE_UNREADABLE
        message = exc.strerror or str(exc)
        details = {"exception_type": exc.__class__.__name__, "filename": exc.filename}
    else:
        code = ErrorCode.ANALYSIS_FAILED
        message = str(exc)
        details = {"exception_type": exc.__class__.__name__}
    return {
        "error_code": code,
        "stage": ErrorCode.stage(code),
        "message": message,
        "details": details,
    }
