"""Tests for domain models — frozen dataclass construction, derived properties, and validation."""

import dataclasses
from pathlib import Path
from types import MappingProxyType

import pytest

from converter.domain.enums import ConvertType, LogLevel, OutcomeStatus, ProgressState, TrimStrategy
from converter.domain.errors import AbnormalExitError, MalformedOutputError
from converter.domain.models import (
    ConversionRequest,
    ConverterEvent,
    FormatInfo,
    LogEntry,
    MediaDescriptor,
    ProbeOutcome,
    ProgressSnapshot,
    RunOutcome,
    StreamInfo,
    ToolchainVerification,
)
from converter.domain.types import OutputId


def _request(**overrides: object) -> ConversionRequest:
    defaults: dict[str, object] = {
        "input_path": "in.mkv",
        "output_path": "out.mp4",
        "convert_type": ConvertType.STREAM_COPY,
    }
    defaults.update(overrides)
    return ConversionRequest(**defaults)  # type: ignore[arg-type]


class TestConversionRequest:
    def test_defaults(self) -> None:
        request = _request()
        assert request.audio_path is None
        assert request.replace_audio is False
        assert request.preset == "medium"
        assert request.crf == 23
        assert request.trim_strategy is TrimStrategy.AUTO
        assert request.total_duration_ms == 0

    def test_frozen_immutability(self) -> None:
        request = _request()
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.crf = 18  # type: ignore[misc]

    def test_should_trim(self) -> None:
        assert _request().should_trim is False
        assert _request(trim_start_ms=1000).should_trim is True
        assert _request(trim_end_ms=1000).should_trim is True

    def test_audio_replacement_needs_flag_and_path(self) -> None:
        assert _request(replace_audio=True, audio_path="a.m4a").audio_replacement_active is True
        assert _request(replace_audio=True).audio_replacement_active is False
        assert _request(audio_path="a.m4a").audio_replacement_active is False

    def test_trim_duration(self) -> None:
        assert _request(trim_start_ms=1000, trim_end_ms=5000).trim_duration_ms == 4000
        assert _request(trim_end_ms=5000).trim_duration_ms == 5000
        assert _request(trim_start_ms=1000).trim_duration_ms is None

    def test_end_before_start_is_accepted(self) -> None:
        request = _request(trim_start_ms=5000, trim_end_ms=1000)
        assert request.trim_duration_ms == -4000


class TestEffectiveTrimStrategy:
    def test_no_trim_resolves_to_fast(self) -> None:
        assert _request(convert_type=ConvertType.REENCODE).effective_trim_strategy is TrimStrategy.FAST

    def test_auto_stream_copy_is_fast(self) -> None:
        assert _request(trim_start_ms=1000).effective_trim_strategy is TrimStrategy.FAST

    def test_auto_reencode_is_accurate(self) -> None:
        request = _request(convert_type=ConvertType.REENCODE, trim_start_ms=1000)
        assert request.effective_trim_strategy is TrimStrategy.ACCURATE

    def test_explicit_strategy_wins(self) -> None:
        request = _request(trim_start_ms=1000, trim_strategy=TrimStrategy.ACCURATE)
        assert request.effective_trim_strategy is TrimStrategy.ACCURATE


class TestProgressSnapshot:
    def test_defaults_are_zero(self) -> None:
        snapshot = ProgressSnapshot()
        assert snapshot.frame == 0
        assert snapshot.speed == 0.0
        assert snapshot.state is ProgressState.CONTINUE
        assert snapshot.is_final is False

    def test_is_final(self) -> None:
        assert ProgressSnapshot(state=ProgressState.END).is_final is True

    def test_out_time_is_microseconds(self, sample_snapshot: ProgressSnapshot) -> None:
        assert sample_snapshot.out_time_seconds == 4.0
        assert sample_snapshot.format_time() == "00:00:04"

    def test_format_time_hours(self) -> None:
        assert ProgressSnapshot(out_time_ms=3_723_000_000).format_time() == "01:02:03"

    def test_format_size_units(self) -> None:
        assert ProgressSnapshot(total_size=500).format_size() == "500 B"
        assert ProgressSnapshot(total_size=2048).format_size() == "2 KB"
        assert ProgressSnapshot(total_size=1_048_576).format_size() == "1 MB"
        assert ProgressSnapshot(total_size=3 * 1024**3).format_size() == "3 GB"

    def test_percent_of(self, sample_snapshot: ProgressSnapshot) -> None:
        assert sample_snapshot.percent_of(8000) == 50.0
        assert sample_snapshot.percent_of(1000) == 100.0
        assert sample_snapshot.percent_of(0) is None

    def test_remaining_ms(self, sample_snapshot: ProgressSnapshot) -> None:
        assert sample_snapshot.remaining_ms(10_000) == 6000
        assert sample_snapshot.remaining_ms(3000) == 0
        assert sample_snapshot.remaining_ms(0) is None


class TestMediaDescriptor:
    def test_first_video_stream_skips_audio(self) -> None:
        audio = StreamInfo(index=0, codec_name="aac", codec_type="audio")
        video = StreamInfo(index=1, codec_name="h264", codec_type="video")
        media = MediaDescriptor(
            format=FormatInfo(filename="f", nb_streams=2, format_name="mp4", duration="1", size="1", bit_rate="1"),
            streams=(audio, video),
        )
        assert media.first_video_stream() == video

    def test_first_video_stream_none(self) -> None:
        media = MediaDescriptor(
            format=FormatInfo(filename="f", nb_streams=0, format_name="mp3", duration="1", size="1", bit_rate="1")
        )
        assert media.streams == ()
        assert media.first_video_stream() is None


class TestRunOutcome:
    def test_succeeded(self) -> None:
        outcome = RunOutcome(status=OutcomeStatus.SUCCEEDED, output=OutputId("out.mp4"), exit_code=0)
        assert outcome.ok is True
        assert outcome.cancelled is False
        assert outcome.error is None

    def test_cancelled(self) -> None:
        outcome = RunOutcome(status=OutcomeStatus.CANCELLED, exit_code=255)
        assert outcome.ok is False
        assert outcome.cancelled is True

    def test_failed_carries_error(self) -> None:
        error = AbnormalExitError("boom", exit_code=1)
        outcome = RunOutcome(status=OutcomeStatus.FAILED, exit_code=1, error=error)
        assert outcome.ok is False
        assert outcome.error is error


class TestProbeOutcome:
    def test_success(self, sample_media: MediaDescriptor) -> None:
        outcome = ProbeOutcome(media=sample_media)
        assert outcome.ok is True

    def test_failure(self) -> None:
        outcome = ProbeOutcome(error=MalformedOutputError("bad json"))
        assert outcome.ok is False

    def test_rejects_neither(self) -> None:
        with pytest.raises(ValueError, match="exactly one"):
            ProbeOutcome()

    def test_rejects_both(self, sample_media: MediaDescriptor) -> None:
        with pytest.raises(ValueError, match="exactly one"):
            ProbeOutcome(media=sample_media, error=MalformedOutputError("x"))


class TestConverterEvent:
    def test_data_is_frozen(self) -> None:
        event = ConverterEvent(timestamp="2026-10-18T10:00:00Z", event_name="conversion.started", data={"a": 1})
        assert isinstance(event.data, MappingProxyType)
        with pytest.raises(TypeError):
            event.data["a"] = 2  # type: ignore[index]

    def test_default_data_empty(self) -> None:
        event = ConverterEvent(timestamp="2026-10-18T10:00:00Z", event_name="probe.completed")
        assert len(event.data) == 0

    def test_event_name_must_be_namespaced(self) -> None:
        with pytest.raises(ValueError, match="namespaced"):
            ConverterEvent(timestamp="2026-10-18T10:00:00Z", event_name="started")


class TestSmallRecords:
    def test_log_entry_timestamp_default(self) -> None:
        entry = LogEntry(message="hello", level=LogLevel.INFO)
        assert entry.timestamp is not None

    def test_toolchain_verification(self) -> None:
        result = ToolchainVerification(ffmpeg_path=Path("/usr/bin/ffmpeg"), ffprobe_exists=True, version="6.1")
        assert result.ffprobe_exists is True
        assert result.version == "6.1"
