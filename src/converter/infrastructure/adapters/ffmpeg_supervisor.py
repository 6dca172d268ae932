"""FFmpegSupervisor — ProcessSupervisorPort implementation using an asyncio subprocess."""

from __future__ import annotations

import asyncio
import logging
import shlex
import weakref
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from converter.application.progress_parser import ProgressParser
from converter.domain.enums import OutcomeStatus
from converter.domain.errors import (
    AbnormalExitError,
    ConfigurationError,
    ConverterError,
    SpawnError,
    StreamDrainError,
)
from converter.domain.models import RunOutcome
from converter.domain.types import ArgumentVector, LogCallback, OutputId, ProgressCallback

if TYPE_CHECKING:
    from converter.domain.ports import ProcessSupervisorPort

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_GRACE_SECONDS: float = 2.0
DEFAULT_DRAIN_GRACE_SECONDS: float = 1.0

# ffmpeg stops cleanly and finalizes the container when it reads "q" on stdin
QUIT_SIGNAL: bytes = b"q\n"
DIAGNOSTIC_TAG: str = "[stderr]"


class FFmpegSupervisor:
    """Spawn one encoder process, stream its progress, and support cooperative cancel.

    stdout carries ``-progress`` key=value cycles and feeds a ProgressParser;
    stderr carries diagnostics forwarded line by line. The two streams are
    drained by independent tasks, so ordering holds within a stream only.

    At most one process may be active per instance. The active process and the
    running flag are the only shared state; they are written by ``run`` and
    ``cancel`` on the event loop thread, never across an await.
    """

    if TYPE_CHECKING:
        _protocol_check: ProcessSupervisorPort

    def __init__(
        self,
        cancel_grace_seconds: float = DEFAULT_CANCEL_GRACE_SECONDS,
        drain_grace_seconds: float = DEFAULT_DRAIN_GRACE_SECONDS,
    ) -> None:
        self._cancel_grace_seconds = cancel_grace_seconds
        self._drain_grace_seconds = drain_grace_seconds
        self._process: asyncio.subprocess.Process | None = None
        self._running = False
        self._cancel_pending = False
        self._cancelled: weakref.WeakSet[asyncio.subprocess.Process] = weakref.WeakSet()

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(
        self,
        argv: ArgumentVector,
        on_progress: ProgressCallback,
        on_log: LogCallback,
        output: str | None = None,
    ) -> RunOutcome:
        """Run ffmpeg to completion and map its exit into a RunOutcome.

        Failures are returned, not raised. Starting a second run while one is
        active is a caller error and raises RuntimeError.
        """
        if not argv:
            raise ValueError("argv must not be empty")
        if self._running:
            logger.warning("run() called while another process is active")
            raise RuntimeError("A process is already active on this supervisor")

        output_id = OutputId(output if output is not None else argv[-1])
        self._running = True
        self._cancel_pending = False

        try:
            proc = await self._spawn(argv)
        except ConverterError as exc:
            self._running = False
            logger.error("Failed to start %s: %s", argv[0], exc.message)
            return RunOutcome(status=OutcomeStatus.FAILED, error=exc)

        self._process = proc
        logger.info("Started ffmpeg (pid %s): %s", proc.pid, shlex.join(argv))

        try:
            if self._cancel_pending:
                # cancel() arrived while the process was still being spawned
                self._cancel_pending = False
                self._cancelled.add(proc)
                await self._stop(proc)
            exit_code, drain_error = await self._supervise(proc, on_progress, on_log)
        finally:
            if proc.returncode is None:
                _kill(proc)
            if self._process is proc:
                self._process = None
                self._running = False

        return self._outcome(output_id, exit_code, drain_error, cancelled=proc in self._cancelled)

    async def cancel(self) -> bool:
        """Ask the active process to quit, escalating to a kill after the grace period.

        Returns True if a live process was signalled. Safe to call when idle.
        """
        proc = self._process
        if proc is None:
            # run() is still spawning; it stops the process as soon as it exists
            if self._running:
                self._cancel_pending = True
            return False

        try:
            if proc.returncode is not None:
                return False

            self._cancelled.add(proc)
            logger.info("Cancelling ffmpeg (pid %s)", proc.pid)
            await self._stop(proc)
            return True
        finally:
            if self._process is proc:
                self._process = None
                self._running = False

    async def _spawn(self, argv: ArgumentVector) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise ConfigurationError(f"Encoder not found or not executable: {argv[0]} ({exc})") from exc
        except OSError as exc:
            raise SpawnError(f"Failed to start encoder {argv[0]}: {exc}") from exc

    async def _supervise(
        self,
        proc: asyncio.subprocess.Process,
        on_progress: ProgressCallback,
        on_log: LogCallback,
    ) -> tuple[int | None, StreamDrainError | None]:
        """Drain both streams until exit. Returns the exit code and any drain failure."""
        parser = ProgressParser(on_progress)
        drains = {
            asyncio.create_task(_drain_status(proc.stdout, parser), name="ffmpeg-status"),
            asyncio.create_task(_drain_diagnostics(proc.stderr, on_log), name="ffmpeg-diagnostics"),
        }
        waiter = asyncio.create_task(proc.wait(), name="ffmpeg-wait")

        try:
            pending: set[asyncio.Task[Any]] = {waiter, *drains}
            while not waiter.done():
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                drain_error = _first_drain_error(done - {waiter})
                if drain_error is not None:
                    logger.error("Stream drain failed, killing ffmpeg (pid %s): %s", proc.pid, drain_error.message)
                    _kill(proc)
                    return await waiter, drain_error

            # Let the drains reach EOF so the final "progress=end" cycle is not lost
            unfinished = {task for task in drains if not task.done()}
            if unfinished:
                await asyncio.wait(unfinished, timeout=self._drain_grace_seconds)
            return waiter.result(), _first_drain_error(drains)
        finally:
            for task in (*drains, waiter):
                if not task.done():
                    task.cancel()
            await asyncio.gather(*drains, waiter, return_exceptions=True)

    async def _stop(self, proc: asyncio.subprocess.Process) -> None:
        """Graceful quit via stdin, then kill if the process outlives the grace period."""
        try:
            if proc.stdin is not None:
                proc.stdin.write(QUIT_SIGNAL)
                await proc.stdin.drain()
            async with asyncio.timeout(self._cancel_grace_seconds):
                await proc.wait()
        except TimeoutError:
            logger.warning(
                "ffmpeg (pid %s) ignored quit for %.1fs, killing", proc.pid, self._cancel_grace_seconds
            )
            _kill(proc)
            await proc.wait()
        except (BrokenPipeError, ConnectionResetError) as exc:
            logger.warning("Could not signal ffmpeg (pid %s) to quit: %s, killing", proc.pid, exc)
            _kill(proc)
            await proc.wait()

    def _outcome(
        self,
        output_id: OutputId,
        exit_code: int | None,
        drain_error: StreamDrainError | None,
        *,
        cancelled: bool,
    ) -> RunOutcome:
        if drain_error is not None:
            return RunOutcome(status=OutcomeStatus.FAILED, exit_code=exit_code, error=drain_error)
        if cancelled:
            logger.info("ffmpeg cancelled by user (exit %s)", exit_code)
            return RunOutcome(status=OutcomeStatus.CANCELLED, exit_code=exit_code)
        if exit_code == 0:
            logger.info("ffmpeg finished: %s", output_id)
            return RunOutcome(status=OutcomeStatus.SUCCEEDED, output=output_id, exit_code=0)

        logger.error("ffmpeg exited with code %s", exit_code)
        return RunOutcome(
            status=OutcomeStatus.FAILED,
            exit_code=exit_code,
            error=AbnormalExitError(f"FFmpeg exited with code {exit_code}", exit_code=exit_code),
        )


async def _drain_status(stream: asyncio.StreamReader | None, parser: ProgressParser) -> None:
    """Feed every stdout line to the progress parser, in order."""
    if stream is None:
        return
    async for raw in stream:
        parser.feed(raw.decode(errors="replace").rstrip("\r\n"))


async def _drain_diagnostics(stream: asyncio.StreamReader | None, on_log: LogCallback) -> None:
    """Forward non-blank stderr lines, tagged as diagnostics."""
    if stream is None:
        return
    async for raw in stream:
        line = raw.decode(errors="replace").rstrip()
        if line.strip():
            on_log(f"{DIAGNOSTIC_TAG} {line}")


def _first_drain_error(tasks: Iterable[asyncio.Task[Any]]) -> StreamDrainError | None:
    for task in tasks:
        if not task.done() or task.cancelled():
            continue
        exc = task.exception()
        if exc is not None:
            error = StreamDrainError(f"Reading {task.get_name()} failed: {exc!r}")
            error.__cause__ = exc
            return error
    return None


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass
