"""Domain enums — conversion modes, codecs, trim strategies, and outcome states."""

from enum import Enum, unique


@unique
class ConvertType(Enum):
    """How the encoder treats the compressed streams."""

    STREAM_COPY = "stream_copy"
    REENCODE = "reencode"


@unique
class TrimStrategy(Enum):
    """Where the seek-start option goes relative to the input options.

    AUTO resolves per conversion mode: FAST for stream copy, ACCURATE for re-encode.
    FAST seeks before ``-i`` (keyframe-aligned); ACCURATE seeks after it (decode-based).
    """

    AUTO = "auto"
    FAST = "fast"
    ACCURATE = "accurate"


@unique
class VideoCodec(Enum):
    """Video encoders exposed to callers, valued by their ffmpeg codec name."""

    COPY = "copy"
    LIBX264 = "libx264"
    LIBX265 = "libx265"
    VP9 = "libvpx-vp9"

    @property
    def supports_preset(self) -> bool:
        """Whether ``-preset`` and ``-crf`` apply to this encoder."""
        return self in (VideoCodec.LIBX264, VideoCodec.LIBX265)


@unique
class AudioCodec(Enum):
    """Audio encoders exposed to callers, valued by their ffmpeg codec name."""

    COPY = "copy"
    AAC = "aac"
    MP3 = "libmp3lame"
    OPUS = "libopus"


@unique
class ProgressState(Enum):
    """Value of the ``progress`` terminator key in ffmpeg's status stream."""

    CONTINUE = "continue"
    END = "end"


@unique
class OutcomeStatus(Enum):
    """Terminal state of one supervised operation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@unique
class LogLevel(Enum):
    """Severity of an activity log entry."""

    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
