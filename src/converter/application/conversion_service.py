"""ConversionService — inspect and convert use cases on top of the probe and supervisor ports."""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from converter.application.activity_log import ActivityLog
from converter.application.command_builder import build_conversion_command, validate_request
from converter.application.media_enrichment import source_duration_ms, summarize
from converter.domain.enums import LogLevel, OutcomeStatus
from converter.domain.errors import ConfigurationError, RequestValidationError
from converter.domain.models import (
    ConversionRequest,
    MediaSummary,
    ProbeOutcome,
    ProgressSnapshot,
    RunOutcome,
)
from converter.domain.timecode import format_readable_ms
from converter.domain.types import ProgressCallback

if TYPE_CHECKING:
    from converter.application.event_bus import EventBus
    from converter.domain.ports import MediaProbePort, ProcessSupervisorPort, ToolchainPort

logger = logging.getLogger(__name__)

# Runs a zero-argument callable on the presentation thread (or inline)
Dispatcher = Callable[[Callable[[], None]], None]


def _call_inline(fn: Callable[[], None]) -> None:
    fn()


def _trim_bound(time_ms: int | None, open_label: str) -> str:
    if time_ms is None:
        return open_label
    return format_readable_ms(time_ms) or "00"


@dataclass(frozen=True)
class Inspection:
    """Probe outcome plus the derived summary when the file has a video stream."""

    outcome: ProbeOutcome
    summary: MediaSummary | None = None


class ConversionService:
    """Coordinate probing and conversion, recording activity and publishing events.

    Progress callbacks are routed through ``dispatch`` so a UI can marshal them
    onto its own thread; the default runs them inline on the draining task.
    """

    def __init__(
        self,
        toolchain: ToolchainPort,
        supervisor: ProcessSupervisorPort,
        probe: MediaProbePort,
        activity_log: ActivityLog | None = None,
        event_bus: EventBus | None = None,
        dispatch: Dispatcher | None = None,
    ) -> None:
        self._toolchain = toolchain
        self._supervisor = supervisor
        self._probe = probe
        self._activity_log = activity_log or ActivityLog()
        self._event_bus = event_bus
        self._dispatch = dispatch or _call_inline
        self._latest_progress: ProgressSnapshot | None = None

    @property
    def activity_log(self) -> ActivityLog:
        return self._activity_log

    @property
    def latest_progress(self) -> ProgressSnapshot | None:
        """Most recent snapshot of the current (or last) conversion."""
        return self._latest_progress

    @property
    def is_running(self) -> bool:
        return self._supervisor.is_running

    async def inspect(self, path: Path | str) -> Inspection:
        """Probe a media file and log what it contains."""
        self._activity_log.add("=== Inspecting media file ===")
        outcome = await self._probe.probe(path)

        if outcome.media is None:
            message = outcome.error.message if outcome.error is not None else "unknown error"
            self._activity_log.add(f"✗ Error: {message}", LogLevel.ERROR)
            await self._emit("probe.failed", path=str(path), error=message)
            return Inspection(outcome=outcome)

        media = outcome.media
        self._activity_log.add("✓ Inspection complete", LogLevel.SUCCESS)
        for stream in media.streams:
            if stream.codec_type == "video":
                frames = f" frames: {stream.nb_frames}" if stream.nb_frames else ""
                self._activity_log.add(f"Video: {stream.codec_name} {stream.width}x{stream.height}{frames}")
            elif stream.codec_type == "audio":
                self._activity_log.add(f"Audio: {stream.codec_name} {stream.sample_rate or 'N/A'} Hz")

        summary = summarize(media)
        if summary is not None:
            self._activity_log.add(summary.summary_line)

        await self._emit(
            "probe.completed",
            path=str(path),
            format=media.format.format_name,
            streams=len(media.streams),
        )
        return Inspection(outcome=outcome, summary=summary)

    async def resolve_duration(self, request: ConversionRequest) -> ConversionRequest:
        """Fill ``total_duration_ms`` from a probe of the input when it is not known yet.

        A failed probe leaves the request unchanged; progress is then reported
        without percent or time remaining.
        """
        if request.total_duration_ms > 0:
            return request
        outcome = await self._probe.probe(request.input_path)
        if outcome.media is None:
            message = outcome.error.message if outcome.error is not None else "unknown error"
            logger.debug("Source duration unavailable for %s: %s", request.input_path, message)
            return request
        return replace(request, total_duration_ms=source_duration_ms(outcome.media))

    async def convert(
        self,
        request: ConversionRequest,
        on_progress: ProgressCallback | None = None,
    ) -> RunOutcome:
        """Validate, build the command, and run it. Failures come back as outcomes."""
        ffmpeg = self._toolchain.ffmpeg_path()
        if ffmpeg is None or not self._toolchain.is_configured():
            return await self._reject(ConfigurationError("ffmpeg not found; configure the toolchain first"))

        problems = validate_request(request)
        if problems:
            return await self._reject(RequestValidationError("; ".join(problems), problems=problems))

        argv = build_conversion_command(request, ffmpeg)
        self._latest_progress = None
        self._activity_log.add("=== Starting conversion ===")
        self._activity_log.add(f"Mode: {request.convert_type.value}")
        if request.audio_replacement_active:
            self._activity_log.add(f"Replacing audio with: {request.audio_path}")
        if request.should_trim:
            start = _trim_bound(request.trim_start_ms, "start")
            end = _trim_bound(request.trim_end_ms, "end")
            self._activity_log.add(f"Trim: {start} -> {end} ({request.effective_trim_strategy.value})")
        if request.total_duration_ms > 0:
            self._activity_log.add(f"Source duration: {format_readable_ms(request.total_duration_ms)}")
        self._activity_log.add(f"Command: {shlex.join(argv)}", LogLevel.DEBUG)
        await self._emit("conversion.started", input=request.input_path, output=request.output_path)

        def handle_progress(snapshot: ProgressSnapshot) -> None:
            self._latest_progress = snapshot
            if on_progress is not None:
                self._dispatch(lambda: on_progress(snapshot))

        def handle_log(line: str) -> None:
            self._activity_log.add(line, LogLevel.DEBUG)

        outcome = await self._supervisor.run(argv, handle_progress, handle_log, output=request.output_path)
        await self._record(outcome)
        return outcome

    async def cancel(self) -> bool:
        """Cooperatively stop the running conversion, if any."""
        return await self._supervisor.cancel()

    async def _reject(self, error: ConfigurationError | RequestValidationError) -> RunOutcome:
        self._activity_log.add(f"✗ {error.message}", LogLevel.ERROR)
        await self._emit("conversion.failed", error=error.message)
        return RunOutcome(status=OutcomeStatus.FAILED, error=error)

    async def _record(self, outcome: RunOutcome) -> None:
        if outcome.status is OutcomeStatus.SUCCEEDED:
            self._activity_log.add("=== Conversion finished ===", LogLevel.SUCCESS)
            self._activity_log.add(str(outcome.output), LogLevel.SUCCESS)
            await self._emit("conversion.completed", output=outcome.output)
        elif outcome.status is OutcomeStatus.CANCELLED:
            self._activity_log.add("Conversion cancelled by user", LogLevel.WARNING)
            await self._emit("conversion.cancelled", exit_code=outcome.exit_code)
        else:
            message = outcome.error.message if outcome.error is not None else "unknown error"
            self._activity_log.add("=== Conversion failed ===", LogLevel.ERROR)
            self._activity_log.add(f"✗ {message}", LogLevel.ERROR)
            await self._emit("conversion.failed", exit_code=outcome.exit_code, error=message)

    async def _emit(self, event_name: str, **data: object) -> None:
        if self._event_bus is not None:
            await self._event_bus.emit(event_name, **data)
