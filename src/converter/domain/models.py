"""Domain models — frozen dataclasses for conversion requests, progress, and probe results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any

from converter.domain.enums import (
    AudioCodec,
    ConvertType,
    LogLevel,
    OutcomeStatus,
    ProgressState,
    TrimStrategy,
    VideoCodec,
)
from converter.domain.errors import ConverterError
from converter.domain.types import OutputId


def _freeze_mapping(m: Mapping[str, Any]) -> MappingProxyType[str, Any]:
    """Wrap a mutable mapping in MappingProxyType for immutability."""
    if isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


@dataclass(frozen=True)
class ConversionRequest:
    """Declarative description of one ffmpeg conversion.

    Trim bounds are milliseconds from the start of the source. An end bound
    before the start bound is accepted here and left to ``validate_request``
    or to ffmpeg itself. ``total_duration_ms`` is the source length used for
    percent and time-remaining reporting; 0 means unknown.
    """

    input_path: str
    output_path: str
    convert_type: ConvertType
    audio_path: str | None = None
    replace_audio: bool = False
    video_codec: VideoCodec = VideoCodec.LIBX264
    audio_codec: AudioCodec = AudioCodec.AAC
    preset: str = "medium"
    crf: int = 23
    trim_start_ms: int | None = None
    trim_end_ms: int | None = None
    trim_strategy: TrimStrategy = TrimStrategy.AUTO
    total_duration_ms: int = 0

    @property
    def should_trim(self) -> bool:
        """True when either trim bound is set."""
        return self.trim_start_ms is not None or self.trim_end_ms is not None

    @property
    def audio_replacement_active(self) -> bool:
        """True when the audio track is replaced by a second input file."""
        return self.replace_audio and self.audio_path is not None

    @property
    def trim_duration_ms(self) -> int | None:
        """Length of the trimmed fragment, or None when it runs to the end of the source."""
        if self.trim_start_ms is not None and self.trim_end_ms is not None:
            return self.trim_end_ms - self.trim_start_ms
        if self.trim_end_ms is not None:
            return self.trim_end_ms
        return None

    @property
    def effective_trim_strategy(self) -> TrimStrategy:
        """Resolve AUTO into a concrete strategy; no trim is treated as FAST."""
        if not self.should_trim:
            return TrimStrategy.FAST
        if self.trim_strategy is TrimStrategy.AUTO:
            if self.convert_type is ConvertType.STREAM_COPY:
                return TrimStrategy.FAST
            return TrimStrategy.ACCURATE
        return self.trim_strategy


@dataclass(frozen=True)
class ProgressSnapshot:
    """One complete cycle of ffmpeg ``-progress`` output.

    ``out_time_ms`` carries ffmpeg's value verbatim, which despite its name is
    in microseconds.
    """

    frame: int = 0
    fps: float = 0.0
    out_time_ms: int = 0
    total_size: int = 0
    bitrate: float = 0.0
    speed: float = 0.0
    state: ProgressState = ProgressState.CONTINUE

    @property
    def is_final(self) -> bool:
        return self.state is ProgressState.END

    @property
    def out_time_seconds(self) -> float:
        return self.out_time_ms / 1_000_000

    def format_time(self) -> str:
        """Output position as ``HH:MM:SS``."""
        seconds = self.out_time_seconds
        hours = int(seconds / 3600)
        minutes = int((seconds % 3600) / 60)
        secs = int(seconds % 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    def format_size(self) -> str:
        """Emitted byte count in whole B/KB/MB/GB units."""
        size = self.total_size
        if size < 1024:
            return f"{size} B"
        if size < 1024**2:
            return f"{size // 1024} KB"
        if size < 1024**3:
            return f"{size // 1024**2} MB"
        return f"{size // 1024**3} GB"

    def percent_of(self, total_duration_ms: int) -> float | None:
        """Completion percentage against a known source duration, clamped to 0-100."""
        if total_duration_ms <= 0:
            return None
        done_ms = self.out_time_ms / 1000
        return max(0.0, min(100.0, done_ms * 100 / total_duration_ms))

    def remaining_ms(self, total_duration_ms: int) -> int | None:
        """Source time still to be processed, never negative; None when the duration is unknown."""
        if total_duration_ms <= 0:
            return None
        return max(0, total_duration_ms - self.out_time_ms // 1000)


@dataclass(frozen=True)
class StreamInfo:
    """One stream entry from ffprobe's ``streams`` array."""

    index: int
    codec_name: str
    codec_type: str
    codec_long_name: str | None = None
    width: int | None = None
    height: int | None = None
    r_frame_rate: str | None = None
    avg_frame_rate: str | None = None
    duration: str | None = None
    bit_rate: str | None = None
    sample_rate: str | None = None
    channels: int | None = None
    nb_frames: str | None = None


@dataclass(frozen=True)
class FormatInfo:
    """Container-level block from ffprobe's ``format`` object."""

    filename: str
    nb_streams: int
    format_name: str
    duration: str
    size: str
    bit_rate: str
    format_long_name: str | None = None


@dataclass(frozen=True)
class MediaDescriptor:
    """Decoded probe result: ordered streams plus the container descriptor."""

    format: FormatInfo
    streams: tuple[StreamInfo, ...] = field(default_factory=tuple)

    def first_video_stream(self) -> StreamInfo | None:
        return next((s for s in self.streams if s.codec_type == "video"), None)


@dataclass(frozen=True)
class MediaSummary:
    """Display-oriented facts derived from a MediaDescriptor's first video stream."""

    total_frames: int | None
    is_variable_frame_rate: bool
    frame_rate_label: str
    duration_seconds: float | None
    summary_line: str


@dataclass(frozen=True)
class RunOutcome:
    """Result of one supervised conversion: exactly one per ``run`` call."""

    status: OutcomeStatus
    output: OutputId | None = None
    exit_code: int | None = None
    error: ConverterError | None = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        return self.status is OutcomeStatus.CANCELLED


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of one probe call: a descriptor on success, an error otherwise."""

    media: MediaDescriptor | None = None
    error: ConverterError | None = None

    def __post_init__(self) -> None:
        if (self.media is None) == (self.error is None):
            raise ValueError("ProbeOutcome requires exactly one of media or error")

    @property
    def ok(self) -> bool:
        return self.media is not None


@dataclass(frozen=True)
class ToolchainVerification:
    """Result of checking a user-supplied ffmpeg binary."""

    ffmpeg_path: Path
    ffprobe_exists: bool
    version: str | None


@dataclass(frozen=True)
class LogEntry:
    """One line of the user-facing activity log."""

    message: str
    level: LogLevel
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ConverterEvent:
    """Observable converter event published through the event bus."""

    timestamp: str
    event_name: str
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", _freeze_mapping(self.data))
        if "." not in self.event_name:
            raise ValueError(f"event_name must be namespaced (e.g. 'conversion.started'), got '{self.event_name}'")
