"""Shared test fixtures for the converter test suite."""

import stat
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from converter.domain.enums import ConvertType, ProgressState
from converter.domain.models import ConversionRequest, FormatInfo, MediaDescriptor, ProgressSnapshot, StreamInfo


@pytest.fixture
def copy_request() -> ConversionRequest:
    """Factory for a plain stream-copy request with no trim or audio replacement."""
    return ConversionRequest(
        input_path="/media/in.mkv",
        output_path="/media/out.mp4",
        convert_type=ConvertType.STREAM_COPY,
    )


@pytest.fixture
def sample_snapshot() -> ProgressSnapshot:
    """Factory for a mid-run progress snapshot."""
    return ProgressSnapshot(
        frame=120,
        fps=30.0,
        out_time_ms=4_000_000,
        total_size=1_048_576,
        bitrate=2048.5,
        speed=1.5,
        state=ProgressState.CONTINUE,
    )


@pytest.fixture
def sample_media() -> MediaDescriptor:
    """Factory for a typical H.264 MP4 probe result."""
    return MediaDescriptor(
        format=FormatInfo(
            filename="/media/in.mp4",
            nb_streams=2,
            format_name="mov,mp4,m4a,3gp,3g2,mj2",
            duration="10.000000",
            size="5242880",
            bit_rate="4194304",
        ),
        streams=(
            StreamInfo(
                index=0,
                codec_name="h264",
                codec_type="video",
                width=1920,
                height=1080,
                r_frame_rate="30/1",
                avg_frame_rate="30/1",
                duration="10.000000",
                bit_rate="4000000",
                nb_frames="300",
            ),
        ),
    )


@pytest.fixture
def make_executable(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a Python script as an executable file, standing in for ffmpeg or ffprobe."""

    def _make(name: str, body: str) -> Path:
        path = tmp_path / name
        path.write_text(f"#!{sys.executable}\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make
