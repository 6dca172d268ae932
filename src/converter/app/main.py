"""Main entry point — ``python3 -m converter.app.main`` or the ``converter`` script."""

from __future__ import annotations

import argparse
import asyncio
import functools
import logging
import signal
import sys
from pathlib import Path

from converter.app.bootstrap import Converter, create_converter
from converter.domain.enums import AudioCodec, ConvertType, OutcomeStatus, TrimStrategy, VideoCodec
from converter.domain.errors import ConfigurationError, ConverterError
from converter.domain.models import ConversionRequest, ProgressSnapshot
from converter.domain.timecode import format_duration_seconds, parse_to_ms

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

_MODES = {"copy": ConvertType.STREAM_COPY, "reencode": ConvertType.REENCODE}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="converter", description="Inspect and convert media with ffmpeg")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show diagnostic ffmpeg output")
    sub = parser.add_subparsers(dest="command", required=True)

    probe = sub.add_parser("probe", help="Show stream and container information")
    probe.add_argument("file", type=Path)

    convert = sub.add_parser("convert", help="Convert, trim, or replace audio with live progress")
    convert.add_argument("input", type=Path)
    convert.add_argument("output", type=Path)
    convert.add_argument("--mode", choices=sorted(_MODES), default="copy", help="Stream copy or re-encode")
    convert.add_argument("--audio", type=Path, default=None, help="Replace the audio track with this file")
    convert.add_argument("--video-codec", choices=[c.value for c in VideoCodec], default=None)
    convert.add_argument("--audio-codec", choices=[c.value for c in AudioCodec], default=None)
    convert.add_argument("--preset", default=None, help="x264/x265 preset (default from settings)")
    convert.add_argument("--crf", type=int, default=None, help="Quality factor (default from settings)")
    convert.add_argument("--start", default=None, help="Trim start as HH:MM:SS[.fff]")
    convert.add_argument("--end", default=None, help="Trim end as HH:MM:SS[.fff]")
    convert.add_argument(
        "--strategy", choices=[s.value for s in TrimStrategy], default=TrimStrategy.AUTO.value, help="Trim strategy"
    )

    verify = sub.add_parser("set-ffmpeg", help="Verify and remember the ffmpeg binary to use")
    verify.add_argument("path", type=Path)

    sub.add_parser("clear-ffmpeg", help="Forget the stored ffmpeg binary")
    return parser


def build_request(args: argparse.Namespace, converter: Converter) -> ConversionRequest:
    """Translate parsed CLI arguments into a ConversionRequest, applying the usual codec defaults."""
    convert_type = _MODES[args.mode]
    replace_audio = args.audio is not None

    if args.video_codec is not None:
        video_codec = VideoCodec(args.video_codec)
    else:
        video_codec = VideoCodec.COPY if convert_type is ConvertType.STREAM_COPY else VideoCodec.LIBX264

    if args.audio_codec is not None:
        audio_codec = AudioCodec(args.audio_codec)
    elif convert_type is ConvertType.STREAM_COPY and not replace_audio:
        audio_codec = AudioCodec.COPY
    else:
        audio_codec = AudioCodec.AAC

    settings = converter.settings
    return ConversionRequest(
        input_path=str(args.input),
        output_path=str(args.output),
        convert_type=convert_type,
        audio_path=str(args.audio) if replace_audio else None,
        replace_audio=replace_audio,
        video_codec=video_codec,
        audio_codec=audio_codec,
        preset=args.preset or settings.default_preset,
        crf=args.crf if args.crf is not None else settings.default_crf,
        trim_start_ms=parse_to_ms(args.start) if args.start else None,
        trim_end_ms=parse_to_ms(args.end) if args.end else None,
        trim_strategy=TrimStrategy(args.strategy),
    )


def _print_progress(snapshot: ProgressSnapshot, total_duration_ms: int = 0) -> None:
    line = (
        f"\rframe={snapshot.frame} fps={snapshot.fps:.1f} time={snapshot.format_time()} "
        f"size={snapshot.format_size()} bitrate={snapshot.bitrate:.1f}kbits/s speed={snapshot.speed:.2f}x"
    )
    percent = snapshot.percent_of(total_duration_ms)
    remaining = snapshot.remaining_ms(total_duration_ms)
    if percent is not None and remaining is not None:
        line += f" {percent:.0f}% left={format_duration_seconds(remaining / 1000)}"
    print(line, end="\n" if snapshot.is_final else "", flush=True)


async def _probe(converter: Converter, path: Path) -> int:
    inspection = await converter.service.inspect(path)
    outcome = inspection.outcome
    if outcome.media is None:
        print(f"Probe failed: {outcome.error.message if outcome.error else 'unknown error'}", file=sys.stderr)
        return EXIT_FAILED

    for stream in outcome.media.streams:
        print(f"#{stream.index} {stream.codec_type}: {stream.codec_name}")
    if inspection.summary is not None:
        print(inspection.summary.summary_line)
    return EXIT_OK


def _schedule_cancel(converter: Converter, pending: set[asyncio.Task[bool]]) -> asyncio.Task[bool]:
    """Start a graceful cancel, holding the task in ``pending`` until it finishes."""
    task = asyncio.ensure_future(converter.service.cancel())
    pending.add(task)
    task.add_done_callback(pending.discard)
    return task


async def _convert(converter: Converter, args: argparse.Namespace) -> int:
    try:
        request = build_request(args, converter)
    except ValueError as exc:
        print(f"Invalid arguments: {exc}", file=sys.stderr)
        return EXIT_FAILED

    request = await converter.service.resolve_duration(request)

    loop = asyncio.get_running_loop()
    cancel_tasks: set[asyncio.Task[bool]] = set()
    try:
        loop.add_signal_handler(signal.SIGINT, _schedule_cancel, converter, cancel_tasks)
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; Ctrl+C will abort without a graceful quit")

    try:
        progress = functools.partial(_print_progress, total_duration_ms=request.total_duration_ms)
        outcome = await converter.service.convert(request, on_progress=progress)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    if outcome.status is OutcomeStatus.SUCCEEDED:
        print(f"Done: {outcome.output}")
        return EXIT_OK
    if outcome.status is OutcomeStatus.CANCELLED:
        print("Cancelled", file=sys.stderr)
        return EXIT_CANCELLED
    print(f"Conversion failed: {outcome.error.message if outcome.error else 'unknown error'}", file=sys.stderr)
    return EXIT_FAILED


async def _set_ffmpeg(converter: Converter, path: Path) -> int:
    try:
        verification = await converter.verifier.verify(path)
    except ConfigurationError as exc:
        print(exc.message, file=sys.stderr)
        return EXIT_FAILED

    await converter.toolchain.save_ffmpeg_path(verification.ffmpeg_path)
    print(f"ffmpeg {verification.version}")
    if not verification.ffprobe_exists:
        print("Warning: ffprobe was not found next to ffmpeg; inspection will be unavailable", file=sys.stderr)
    return EXIT_OK


async def run(argv: list[str] | None = None) -> int:
    """Parse arguments, wire the converter, and dispatch the chosen command."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        converter = create_converter()
    except ConverterError as exc:
        logger.error("Configuration error: %s", exc.message)
        return EXIT_FAILED

    if args.command == "probe":
        return await _probe(converter, args.file)
    if args.command == "convert":
        return await _convert(converter, args)
    if args.command == "set-ffmpeg":
        return await _set_ffmpeg(converter, args.path)

    await converter.toolchain.clear()
    return EXIT_OK


def main() -> None:
    """Synchronous entry point for the console script."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        sys.exit(asyncio.run(run()))
    except KeyboardInterrupt:
        logger.info("Converter shutting down")
        sys.exit(EXIT_CANCELLED)


if __name__ == "__main__":
    main()
