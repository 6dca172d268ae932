"""Command builder — map a ConversionRequest to an ffmpeg argument vector.

Pure functions with no I/O. Malformed requests still produce a best-effort
vector; see ``validate_request`` for the optional pre-flight check.
"""

from __future__ import annotations

from pathlib import Path

from converter.domain.enums import AudioCodec, ConvertType, TrimStrategy, VideoCodec
from converter.domain.models import ConversionRequest
from converter.domain.timecode import format_time_ms
from converter.domain.types import ArgumentVector

# Bitrate applied when re-encoding to the default lossy audio codec
AAC_BITRATE: str = "192k"


def build_conversion_command(request: ConversionRequest, ffmpeg_path: Path | str) -> ArgumentVector:
    """Build the full ffmpeg argv for a conversion request, executable first."""
    args: ArgumentVector = [str(ffmpeg_path)]
    strategy = request.effective_trim_strategy
    replacing_audio = request.audio_replacement_active

    # Keyframe-aligned seek must precede the input it applies to
    if request.should_trim and strategy is TrimStrategy.FAST:
        args.extend(_seek_start(request))

    args.extend(["-i", request.input_path])
    if replacing_audio:
        args.extend(["-i", str(request.audio_path)])

    if request.should_trim and strategy is TrimStrategy.ACCURATE:
        args.extend(_seek_start(request))

    args.extend(_trim_bound(request))

    # Machine-readable progress on stdout; human stats off stderr
    args.extend(["-progress", "-", "-nostats"])

    if request.convert_type is ConvertType.STREAM_COPY:
        args.extend(_stream_copy_codecs(request))
    else:
        args.extend(_reencode_codecs(request))

    if replacing_audio:
        args.append("-shortest")

    args.extend(["-y", request.output_path])
    return args


def build_probe_command(ffprobe_path: Path | str, media_path: Path | str) -> ArgumentVector:
    """Build the ffprobe argv: quiet JSON for the first video stream plus the container."""
    return [
        str(ffprobe_path),
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_streams",
        "-show_format",
        "-select_streams",
        "v:0",
        str(media_path),
    ]


def validate_request(request: ConversionRequest) -> list[str]:
    """Return human-readable problems with a request; empty when it looks sane.

    Optional pre-flight only. ``build_conversion_command`` never calls it.
    """
    problems: list[str] = []
    if not request.input_path:
        problems.append("Input file is not set")
    if not request.output_path:
        problems.append("Output file is not set")
    if request.input_path and request.input_path == request.output_path:
        problems.append("Output file must differ from the input file")
    if request.replace_audio and request.audio_path is None:
        problems.append("Audio replacement requested but no audio file chosen")
    if request.trim_start_ms is not None and request.trim_start_ms < 0:
        problems.append(f"Trim start must be non-negative, got {request.trim_start_ms}ms")
    if request.trim_end_ms is not None and request.trim_end_ms < 0:
        problems.append(f"Trim end must be non-negative, got {request.trim_end_ms}ms")
    duration = request.trim_duration_ms
    if duration is not None and duration <= 0:
        problems.append(f"Trim end must come after trim start (duration {duration}ms)")
    if request.convert_type is ConvertType.REENCODE and request.video_codec is VideoCodec.COPY:
        problems.append("Re-encode mode needs a real video encoder, not 'copy'")
    if request.crf < 0 or request.crf > 63:
        problems.append(f"Quality factor out of range 0-63: {request.crf}")
    return problems


def _seek_start(request: ConversionRequest) -> list[str]:
    if request.trim_start_ms is None:
        return []
    return ["-ss", format_time_ms(request.trim_start_ms)]


def _trim_bound(request: ConversionRequest) -> list[str]:
    """Duration when both bounds are set, absolute end when only the end is set."""
    if request.trim_start_ms is not None and request.trim_end_ms is not None:
        return ["-t", format_time_ms(request.trim_end_ms - request.trim_start_ms)]
    if request.trim_end_ms is not None:
        return ["-to", format_time_ms(request.trim_end_ms)]
    return []


def _stream_copy_codecs(request: ConversionRequest) -> list[str]:
    if not request.audio_replacement_active:
        return ["-c", "copy"]
    return [
        "-map",
        "0:v",
        "-map",
        "1:a",
        "-c:v",
        VideoCodec.COPY.value,
        "-c:a",
        request.audio_codec.value,
    ]


def _reencode_codecs(request: ConversionRequest) -> list[str]:
    args: list[str] = []
    if request.audio_replacement_active:
        args.extend(["-map", "0:v", "-map", "1:a"])

    args.extend(["-c:v", request.video_codec.value])
    if request.video_codec.supports_preset:
        args.extend(["-preset", request.preset, "-crf", str(request.crf)])

    args.extend(["-c:a", request.audio_codec.value])
    if request.audio_codec is AudioCodec.AAC:
        args.extend(["-b:a", AAC_BITRATE])
    return args
