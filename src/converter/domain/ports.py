"""Domain ports — Protocol interfaces for hexagonal architecture boundaries."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from converter.domain.models import ConverterEvent, ProbeOutcome, RunOutcome, ToolchainVerification
from converter.domain.types import ArgumentVector, LogCallback, ProgressCallback


@runtime_checkable
class ToolchainPort(Protocol):
    """Resolve the ffmpeg/ffprobe binaries the converter should invoke."""

    def ffmpeg_path(self) -> Path | None: ...

    def ffprobe_path(self) -> Path | None: ...

    def is_configured(self) -> bool: ...


@runtime_checkable
class ToolchainVerifierPort(Protocol):
    """Check that a candidate ffmpeg binary actually runs; raises ConfigurationError otherwise."""

    async def verify(self, ffmpeg_path: Path) -> ToolchainVerification: ...


@runtime_checkable
class ProcessSupervisorPort(Protocol):
    """Own the lifecycle of one external encoder process at a time."""

    @property
    def is_running(self) -> bool: ...

    async def run(
        self,
        argv: ArgumentVector,
        on_progress: ProgressCallback,
        on_log: LogCallback,
        output: str | None = None,
    ) -> RunOutcome: ...

    async def cancel(self) -> bool: ...


@runtime_checkable
class MediaProbePort(Protocol):
    """Inspect a media file and decode its stream/container metadata."""

    async def probe(self, path: Path | str) -> ProbeOutcome: ...


@runtime_checkable
class EventListenerPort(Protocol):
    """Async callable receiving every published converter event."""

    async def __call__(self, event: ConverterEvent) -> None: ...
