ANALYZER_VERSION = "0.1.0"
CONFIG_SPEC_VERSION = "v1"

DEFAULT_SAMPLE_COUNT = 200

PCM16_BIT_DEPTH = 16
PCM16_DTYPE = "<i2"

BYTE_CENTER = 128
BYTE_RMS_WEIGHT = 0.7
BYTE_PEAK_WEIGHT = 0.3

LARGE_FILE_THRESHOLD_BYTES = 10 * 1024 * 1024

# Bitrate the recorder encodes at; used to estimate duration from file size.
RECORDER_BITRATE_BPS = 128_000

DEFAULT_DECODE_SAMPLE_RATE = 44_100
DEFAULT_DECODE_CHANNELS = 1

RECORDING_NAME_PATTERN = r"(\d{8})_(\d{6})"

AUDIO_EXTENSIONS = frozenset({".m4a", ".aac", ".mp3", ".wav", ".flac", ".ogg", ".opus"})


class WaveformSource:
    PCM = "pcm"
    BYTES = "bytes"
    BYTES_STREAMED = "bytes_streamed"
    PLACEHOLDER = "placeholder"
    MISSING = "missing"
