"""FfprobeAdapter — async ffprobe wrapper implementing MediaProbePort."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError

from converter.application.command_builder import build_probe_command
from converter.domain.errors import (
    AbnormalExitError,
    ConfigurationError,
    MalformedOutputError,
    ProbeTimeoutError,
    SpawnError,
)
from converter.domain.models import FormatInfo, MediaDescriptor, ProbeOutcome, StreamInfo

if TYPE_CHECKING:
    from converter.domain.ports import MediaProbePort, ToolchainPort

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_SECONDS: float = 30.0


class _StreamDocument(BaseModel):
    """One entry of ffprobe's ``streams`` array; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    index: int
    codec_name: str = "unknown"
    codec_long_name: str | None = None
    codec_type: str
    width: int | None = None
    height: int | None = None
    r_frame_rate: str | None = None
    avg_frame_rate: str | None = None
    duration: str | None = None
    bit_rate: str | None = None
    sample_rate: str | None = None
    channels: int | None = None
    nb_frames: str | None = None


class _FormatDocument(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    filename: str
    nb_streams: int
    format_name: str
    format_long_name: str | None = None
    duration: str = "N/A"
    size: str = "N/A"
    bit_rate: str = "N/A"


class _ProbeDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    streams: list[_StreamDocument] = []
    format: _FormatDocument


class FfprobeAdapter:
    """Probe a media file via ffprobe and decode the JSON into a MediaDescriptor.

    Satisfies the MediaProbePort protocol. stderr is merged into stdout; every
    failure is returned inside the ProbeOutcome rather than raised.
    """

    if TYPE_CHECKING:
        _protocol_check: MediaProbePort

    def __init__(self, toolchain: ToolchainPort, timeout_seconds: float | None = DEFAULT_PROBE_TIMEOUT_SECONDS) -> None:
        self._toolchain = toolchain
        self._timeout_seconds = timeout_seconds

    async def probe(self, path: Path | str) -> ProbeOutcome:
        """Inspect ``path``; non-zero exit and undecodable output are distinct failures."""
        ffprobe = self._toolchain.ffprobe_path()
        if ffprobe is None or not self._toolchain.is_configured():
            return ProbeOutcome(error=ConfigurationError("ffprobe not found next to the configured ffmpeg binary"))

        command = build_probe_command(ffprobe, path)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (FileNotFoundError, PermissionError) as exc:
            return ProbeOutcome(error=ConfigurationError(f"ffprobe not found or not executable: {ffprobe} ({exc})"))
        except OSError as exc:
            return ProbeOutcome(error=SpawnError(f"Failed to start ffprobe: {exc}"))

        try:
            async with asyncio.timeout(self._timeout_seconds):
                stdout, _ = await proc.communicate()
        except TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("ffprobe timed out for %s", path)
            return ProbeOutcome(error=ProbeTimeoutError(f"ffprobe timed out after {self._timeout_seconds}s"))

        if proc.returncode != 0:
            logger.debug("ffprobe returned non-zero exit code %s for %s", proc.returncode, path)
            return ProbeOutcome(
                error=AbnormalExitError(f"ffprobe exited with code {proc.returncode}", exit_code=proc.returncode)
            )

        try:
            media = decode_media_descriptor(stdout.decode(errors="replace"))
        except MalformedOutputError as exc:
            logger.warning("ffprobe output for %s could not be decoded: %s", path, exc.message)
            return ProbeOutcome(error=exc)

        logger.info("Probed %s: %d stream(s), format %s", path, len(media.streams), media.format.format_name)
        return ProbeOutcome(media=media)


def decode_media_descriptor(text: str) -> MediaDescriptor:
    """Decode ffprobe JSON output, tolerating diagnostic noise around the document.

    Raises MalformedOutputError when no valid probe document can be found.
    """
    payload = _extract_json_object(text)
    if payload is None:
        raise MalformedOutputError(f"ffprobe output is not JSON: {text[:200]!r}")

    try:
        document = _ProbeDocument.model_validate(payload)
    except ValidationError as exc:
        raise MalformedOutputError(f"ffprobe JSON has unexpected shape: {exc.error_count()} error(s)") from exc

    fmt = document.format
    return MediaDescriptor(
        format=FormatInfo(
            filename=fmt.filename,
            nb_streams=fmt.nb_streams,
            format_name=fmt.format_name,
            format_long_name=fmt.format_long_name,
            duration=fmt.duration,
            size=fmt.size,
            bit_rate=fmt.bit_rate,
        ),
        streams=tuple(StreamInfo(**stream.model_dump()) for stream in document.streams),
    )


def _extract_json_object(text: str) -> object | None:
    """Parse the whole text as JSON, else the first object starting at a ``{``."""
    stripped = text.strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    brace_idx = stripped.find("{")
    if brace_idx < 0:
        return None
    try:
        obj, _ = json.JSONDecoder().raw_decode(stripped, brace_idx)
    except json.JSONDecodeError:
        return None
    return obj
