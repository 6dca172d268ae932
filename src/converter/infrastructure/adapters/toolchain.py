"""Toolchain adapters — locate, persist, and verify the ffmpeg/ffprobe binaries."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from converter.domain.errors import ConfigurationError
from converter.domain.models import ToolchainVerification

if TYPE_CHECKING:
    from converter.domain.ports import ToolchainPort, ToolchainVerifierPort

logger = logging.getLogger(__name__)

_FFMPEG_PATH_KEY = "ffmpeg_path"
_VERSION_PREFIX = "ffmpeg version "
_VERSION_MAX_CHARS = 50
_VERIFY_TIMEOUT_S = 5.0


def sibling_ffprobe(ffmpeg_path: Path) -> Path:
    """``ffprobe`` next to ``ffmpeg``, keeping the main binary's suffix (``.exe`` on Windows)."""
    return ffmpeg_path.with_name(f"ffprobe{ffmpeg_path.suffix}")


class YamlToolchainConfig:
    """Path-resolution service backed by a small YAML file.

    Implements ToolchainPort. Resolution order: explicit override, the path
    stored in the YAML file, then ``ffmpeg`` on PATH when ``search_path`` is set.
    A stored path that no longer exists resolves to None.
    """

    if TYPE_CHECKING:
        _protocol_check: ToolchainPort

    def __init__(self, config_file: Path, override: Path | None = None, search_path: bool = True) -> None:
        self._config_file = config_file
        self._override = override
        self._search_path = search_path
        self._stored: Path | None = self._load()

    def ffmpeg_path(self) -> Path | None:
        for candidate in (self._override, self._stored):
            if candidate is not None:
                return candidate if candidate.exists() else None
        if self._search_path:
            found = shutil.which("ffmpeg")
            return Path(found) if found else None
        return None

    def ffprobe_path(self) -> Path | None:
        ffmpeg = self.ffmpeg_path()
        return sibling_ffprobe(ffmpeg) if ffmpeg is not None else None

    def is_configured(self) -> bool:
        """True when both ffmpeg and its sibling ffprobe exist."""
        ffprobe = self.ffprobe_path()
        return ffprobe is not None and ffprobe.exists()

    async def save_ffmpeg_path(self, path: Path) -> None:
        """Persist the ffmpeg location. Uses atomic write."""
        await asyncio.to_thread(self._save, {_FFMPEG_PATH_KEY: str(path)})
        self._stored = path
        logger.info("Saved ffmpeg path: %s", path)

    async def clear(self) -> None:
        """Forget the stored ffmpeg location."""
        await asyncio.to_thread(self._save, {})
        self._stored = None
        logger.info("Cleared stored ffmpeg path")

    def _load(self) -> Path | None:
        """Read the stored path (blocking I/O, done once at construction)."""
        if not self._config_file.exists():
            return None
        text = self._config_file.read_text()
        if not text.strip():
            return None
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid toolchain config {self._config_file}: {exc}") from exc
        if not isinstance(data, dict) or not data.get(_FFMPEG_PATH_KEY):
            return None
        return Path(str(data[_FFMPEG_PATH_KEY]))

    def _save(self, data: dict[str, str]) -> None:
        """Atomic write: write to temp file then rename (blocking I/O, called via to_thread)."""
        self._config_file.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._config_file.with_suffix(".tmp")
        tmp.write_text(yaml.dump(data, default_flow_style=False, sort_keys=True))
        tmp.replace(self._config_file)


class FfmpegVerifier:
    """Check that a user-chosen file is a working ffmpeg binary.

    Satisfies the ToolchainVerifierPort protocol.
    """

    if TYPE_CHECKING:
        _protocol_check: ToolchainVerifierPort

    def __init__(self, timeout_seconds: float = _VERIFY_TIMEOUT_S) -> None:
        self._timeout_seconds = timeout_seconds

    async def verify(self, ffmpeg_path: Path) -> ToolchainVerification:
        """Run ``ffmpeg -version`` and report the version and ffprobe presence.

        Raises ConfigurationError when the file is missing, misnamed, or does not answer.
        """
        if not ffmpeg_path.exists():
            raise ConfigurationError(f"File not found: {ffmpeg_path}")
        if ffmpeg_path.stem.lower() != "ffmpeg":
            raise ConfigurationError(f"Selected file is not an ffmpeg binary: {ffmpeg_path.name}")

        version = await self._read_version(ffmpeg_path)
        if version is None:
            raise ConfigurationError(f"FFmpeg at {ffmpeg_path} did not respond correctly")

        return ToolchainVerification(
            ffmpeg_path=ffmpeg_path,
            ffprobe_exists=sibling_ffprobe(ffmpeg_path).exists(),
            version=version,
        )

    async def _read_version(self, ffmpeg_path: Path) -> str | None:
        try:
            proc = await asyncio.create_subprocess_exec(
                str(ffmpeg_path),
                "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            logger.debug("ffmpeg -version failed to start for %s: %s", ffmpeg_path, exc)
            return None

        try:
            async with asyncio.timeout(self._timeout_seconds):
                stdout, _ = await proc.communicate()
        except TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("ffmpeg -version timed out for %s", ffmpeg_path)
            return None

        return parse_version(stdout.decode(errors="replace")) if proc.returncode == 0 else None


def parse_version(output: str) -> str | None:
    """Extract the version from ``ffmpeg -version`` output, truncated to 50 characters."""
    if _VERSION_PREFIX.strip() not in output:
        return None
    first_line = output.splitlines()[0] if output.splitlines() else ""
    return first_line.removeprefix(_VERSION_PREFIX)[:_VERSION_MAX_CHARS]
