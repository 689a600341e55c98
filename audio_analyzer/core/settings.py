from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from audio_analyzer.constants import DEFAULT_DECODE_CHANNELS, DEFAULT_DECODE_SAMPLE_RATE


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="AUDIO_ANALYZER_"
    )

    log_level: str = "INFO"

    analysis_config_path: Path | None = None

    decoder_backend: str = "auto"
    ffmpeg_binary: str = "ffmpeg"
    decode_timeout_seconds: float = 120.0
    decode_sample_rate: int = DEFAULT_DECODE_SAMPLE_RATE
    decode_channels: int = DEFAULT_DECODE_CHANNELS


@lru_cache
def get_settings() -> Settings:
    return Settings()
