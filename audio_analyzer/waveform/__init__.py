from audio_analyzer.waveform.extract import (
    WaveformExtractor,
    normalize,
    placeholder_waveform,
    waveform_from_bytes,
    waveform_from_pcm,
)

__all__ = [
    "WaveformExtractor",
    "normalize",
    "placeholder_waveform",
    "waveform_from_bytes",
    "waveform_from_pcm",
]
