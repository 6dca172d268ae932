"""Tests for bootstrap — composition root wiring."""

from __future__ import annotations

from pathlib import Path

import pytest

from converter.app.bootstrap import Converter, create_converter
from converter.app.settings import ConverterSettings
from converter.application.activity_log import ActivityLog
from converter.application.conversion_service import ConversionService
from converter.application.event_bus import EventBus
from converter.domain.errors import ConfigurationError
from converter.infrastructure.adapters.ffmpeg_supervisor import FFmpegSupervisor
from converter.infrastructure.adapters.ffprobe_adapter import FfprobeAdapter
from converter.infrastructure.adapters.toolchain import FfmpegVerifier, YamlToolchainConfig


def _settings(tmp_path: Path, **overrides: object) -> ConverterSettings:
    defaults: dict[str, object] = {
        "config_file": tmp_path / "toolchain.yaml",
        "search_system_path": False,
    }
    defaults.update(overrides)
    return ConverterSettings(**defaults)


class TestCreateConverter:
    def test_returns_converter(self, tmp_path: Path) -> None:
        assert isinstance(create_converter(_settings(tmp_path)), Converter)

    def test_all_components_wired(self, tmp_path: Path) -> None:
        converter = create_converter(_settings(tmp_path))
        assert isinstance(converter.toolchain, YamlToolchainConfig)
        assert isinstance(converter.verifier, FfmpegVerifier)
        assert isinstance(converter.supervisor, FFmpegSupervisor)
        assert isinstance(converter.probe, FfprobeAdapter)
        assert isinstance(converter.event_bus, EventBus)
        assert isinstance(converter.activity_log, ActivityLog)
        assert isinstance(converter.service, ConversionService)
        assert converter.service.activity_log is converter.activity_log

    def test_no_journal_by_default(self, tmp_path: Path) -> None:
        converter = create_converter(_settings(tmp_path))
        assert converter.event_bus.listener_count == 0

    def test_journal_subscribed_when_configured(self, tmp_path: Path) -> None:
        converter = create_converter(_settings(tmp_path, journal_path=tmp_path / "events.log"))
        assert converter.event_bus.listener_count == 1

    async def test_journal_receives_service_events(self, tmp_path: Path) -> None:
        journal = tmp_path / "events.log"
        converter = create_converter(_settings(tmp_path, journal_path=journal))

        await converter.service.inspect(tmp_path / "clip.mp4")

        assert "probe.failed" in journal.read_text()

    def test_override_path_used(self, tmp_path: Path) -> None:
        ffmpeg = tmp_path / "ffmpeg"
        ffmpeg.write_text("")
        converter = create_converter(_settings(tmp_path, ffmpeg_path=ffmpeg))
        assert converter.toolchain.ffmpeg_path() == ffmpeg

    def test_unconfigured_toolchain_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING", logger="converter.app.bootstrap"):
            create_converter(_settings(tmp_path))
        assert any("not found" in r.getMessage() for r in caplog.records)

    def test_dispatch_passed_to_service(self, tmp_path: Path) -> None:
        calls: list[object] = []
        converter = create_converter(_settings(tmp_path), dispatch=calls.append)
        assert converter.service._dispatch == calls.append


class TestValidateSettings:
    def test_missing_override_binary(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="CONVERTER_FFMPEG_PATH"):
            create_converter(_settings(tmp_path, ffmpeg_path=tmp_path / "nope" / "ffmpeg"))

    def test_journal_path_is_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="CONVERTER_JOURNAL_PATH"):
            create_converter(_settings(tmp_path, journal_path=tmp_path))

    def test_config_file_is_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="CONVERTER_CONFIG_FILE"):
            create_converter(_settings(tmp_path, config_file=tmp_path))


class TestJournalNamespaces:
    async def test_namespaces_passed_to_writer(self, tmp_path: Path) -> None:
        journal = tmp_path / "events.log"
        converter = create_converter(
            _settings(tmp_path, journal_path=journal, journal_namespaces=["conversion"])
        )

        await converter.service.inspect(tmp_path / "clip.mp4")

        assert not journal.exists()
