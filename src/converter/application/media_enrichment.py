"""Media enrichment — derive frame counts, VFR/CFR, and a summary line from probe data."""

from __future__ import annotations

import math

from converter.domain.models import MediaDescriptor, MediaSummary, StreamInfo
from converter.domain.timecode import format_duration_seconds, format_fps, format_size, parse_frame_rate

# Instantaneous vs average rate difference beyond which a stream is variable-rate
VFR_TOLERANCE: float = 0.1

SEPARATOR: str = " • "


def total_frames(stream: StreamInfo, duration_seconds: float | None) -> int | None:
    """Prefer the explicit frame count, else ``floor(avg_fps * duration)`` floored at zero."""
    if stream.nb_frames is not None:
        try:
            return int(stream.nb_frames)
        except ValueError:
            pass

    avg_fps = parse_frame_rate(stream.avg_frame_rate)
    if avg_fps is None or duration_seconds is None:
        return None
    return max(math.floor(avg_fps * duration_seconds), 0)


def is_variable_frame_rate(stream: StreamInfo) -> bool:
    """VFR when both rates are known and differ by more than the tolerance."""
    r_fps = parse_frame_rate(stream.r_frame_rate)
    avg_fps = parse_frame_rate(stream.avg_frame_rate)
    if r_fps is None or avg_fps is None:
        return False
    return abs(r_fps - avg_fps) > VFR_TOLERANCE


def frame_rate_label(stream: StreamInfo) -> str:
    """Average rate (falling back to the instantaneous one) tagged VFR or CFR."""
    avg_fps = parse_frame_rate(stream.avg_frame_rate)
    r_fps = parse_frame_rate(stream.r_frame_rate)
    fps = avg_fps if avg_fps is not None else r_fps
    tag = "VFR" if is_variable_frame_rate(stream) else "CFR"
    return f"{format_fps(fps)} ({tag})"


def source_duration_ms(media: MediaDescriptor) -> int:
    """Container duration in whole milliseconds; 0 when ffprobe did not report one."""
    seconds = _to_float(media.format.duration)
    if seconds is None or seconds <= 0:
        return 0
    return int(seconds * 1000)


def summarize(media: MediaDescriptor) -> MediaSummary | None:
    """Summarize the first video stream; None when the file has no video."""
    video = media.first_video_stream()
    if video is None:
        return None

    duration = _to_float(video.duration if video.duration is not None else media.format.duration)
    frames = total_frames(video, duration)
    fps_label = frame_rate_label(video)

    parts = [media.format.format_name.upper()]
    if video.width is not None and video.height is not None:
        parts.append(f"{video.width}×{video.height}")
    parts.append(fps_label)
    if frames is not None:
        parts.append(f"frames: {frames}")
    parts.append(format_duration_seconds(duration))
    parts.append(format_size(_to_int(media.format.size)))
    if video.bit_rate is not None and video.bit_rate.strip():
        bitrate = _to_int(video.bit_rate)
        parts.append(f"{bitrate // 1000} kbps" if bitrate is not None else "—")

    return MediaSummary(
        total_frames=frames,
        is_variable_frame_rate=is_variable_frame_rate(video),
        frame_rate_label=fps_label,
        duration_seconds=duration,
        summary_line=SEPARATOR.join(parts),
    )


def _to_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
