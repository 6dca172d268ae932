"""Time, size, and frame-rate formatting helpers shared across layers."""

from __future__ import annotations

_MS_PER_SECOND = 1000
_SECONDS_PER_HOUR = 3600
_KIB = 1024


def format_time_ms(time_ms: int) -> str:
    """Format milliseconds as the ffmpeg timestamp ``HH:MM:SS.mmm``.

    Negative values keep their sign (``-00:00:04.000``) so ffmpeg rejects them
    instead of receiving a wrapped-around positive time.
    """
    if time_ms < 0:
        return "-" + format_time_ms(-time_ms)
    total_seconds = time_ms / _MS_PER_SECOND
    hours = int(total_seconds / _SECONDS_PER_HOUR)
    minutes = int((total_seconds % _SECONDS_PER_HOUR) / 60)
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:06.3f}"


def parse_to_ms(time_string: str) -> int:
    """Parse ``HH:MM:SS`` (optionally with a ``.fff`` fraction) into milliseconds.

    Blank input is 0. Overflowing seconds and minutes carry into the next unit,
    so ``00:00:90`` is 90 seconds. Unparsable components count as zero.

    Raises ValueError when the string does not have exactly three components.
    """
    if not time_string.strip():
        return 0

    parts = time_string.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"Unsupported time format: {time_string!r} (expected HH:MM:SS)")

    hours = _int_or_zero(parts[0])
    minutes = _int_or_zero(parts[1])
    seconds_str, _, fraction_str = parts[2].partition(".")
    seconds = _int_or_zero(seconds_str)
    millis = _int_or_zero((fraction_str + "000")[:3]) if fraction_str else 0

    total_seconds = hours * _SECONDS_PER_HOUR + minutes * 60 + seconds
    return total_seconds * _MS_PER_SECOND + millis


def format_readable_ms(time_ms: int) -> str:
    """Format milliseconds compactly: ``HH:MM:SS``, ``MM:SS``, ``SS`` or empty for zero."""
    total_seconds = time_ms // _MS_PER_SECOND
    hours = total_seconds // _SECONDS_PER_HOUR
    minutes = (total_seconds % _SECONDS_PER_HOUR) // 60
    seconds = total_seconds % 60

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if minutes > 0:
        return f"{minutes:02d}:{seconds:02d}"
    if seconds > 0:
        return f"{seconds:02d}"
    return ""


def format_duration_seconds(seconds: float | None) -> str:
    """Format a duration for display; hours appear only when non-zero."""
    if seconds is None:
        return "—"
    hours = int(seconds / _SECONDS_PER_HOUR)
    minutes = int((seconds % _SECONDS_PER_HOUR) / 60)
    secs = int(seconds % 60)
    prefix = f"{hours:02d}:" if hours > 0 else ""
    return f"{prefix}{minutes:02d}:{secs:02d}"


def format_size(size_bytes: int | None) -> str:
    """Human-readable size with one decimal, or an em dash for unknown/empty."""
    if size_bytes is None or size_bytes <= 0:
        return "—"
    if size_bytes < 1_000:
        return f"{size_bytes} B"
    if size_bytes < 1_000_000:
        return f"{size_bytes / _KIB:.1f} KB"
    if size_bytes < 1_000_000_000:
        return f"{size_bytes / _KIB**2:.1f} MB"
    return f"{size_bytes / _KIB**3:.1f} GB"


def parse_frame_rate(value: str | None) -> float | None:
    """Parse an ffprobe rate such as ``30000/1001`` or ``25``.

    Returns None for blank, ``0/0``, ``N/A``, a zero denominator, or garbage.
    """
    if value is None or not value.strip() or value in ("0/0", "N/A"):
        return None
    try:
        if "/" in value:
            num, den = value.split("/", 1)
            return float(num) / float(den)
        return float(value)
    except (ValueError, ZeroDivisionError):
        return None


def format_fps(fps: float | None) -> str:
    """Two-decimal frame rate; absurd rates render as infinity."""
    if fps is None:
        return "—"
    if fps < 1_000_000:
        return f"{fps:.2f}"
    return "∞"


def _int_or_zero(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0
