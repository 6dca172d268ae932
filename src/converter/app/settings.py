"""Converter settings — Pydantic BaseSettings for configuration from environment and .env."""

from __future__ import annotations

import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

APP_NAME = "FFmpegConverter"


def default_config_dir() -> Path:
    """Per-user configuration directory following each platform's convention."""
    home = Path.home()
    if sys.platform.startswith("win"):
        return home / "AppData" / "Local" / APP_NAME
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    return home / ".config" / APP_NAME


class ConverterSettings(BaseSettings):
    """Converter configuration loaded from ``CONVERTER_*`` environment variables and a .env file."""

    # Toolchain
    ffmpeg_path: Path | None = Field(default=None, description="Explicit ffmpeg binary; overrides the stored path")
    config_file: Path = Field(
        default_factory=lambda: default_config_dir() / "toolchain.yaml",
        description="YAML file holding the stored ffmpeg path",
    )
    search_system_path: bool = Field(default=True, description="Fall back to ffmpeg on PATH when nothing is stored")

    # Process supervision
    cancel_grace_seconds: float = Field(default=2.0, gt=0, description="Wait after 'q' before killing ffmpeg")
    drain_grace_seconds: float = Field(default=1.0, ge=0, description="Wait for output streams to reach EOF")
    probe_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for a single ffprobe call")

    # Activity and journal
    log_history_limit: int = Field(default=200, ge=1, description="Activity log entries kept in memory")
    journal_path: Path | None = Field(default=None, description="Append converter events to this file when set")
    journal_namespaces: list[str] | None = Field(
        default=None, description="Only journal these event namespaces (e.g. conversion); all when unset"
    )

    # Encoding defaults
    default_preset: str = Field(default="medium", description="x264/x265 preset for re-encoding")
    default_crf: int = Field(default=23, ge=0, le=63, description="Quality factor for re-encoding")

    model_config = {"env_prefix": "CONVERTER_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}
