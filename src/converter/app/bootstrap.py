"""Bootstrap — composition root wiring all adapters to port protocols."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from converter.app.settings import ConverterSettings
from converter.application.activity_log import ActivityLog
from converter.application.conversion_service import ConversionService, Dispatcher
from converter.application.event_bus import EventBus
from converter.domain.errors import ConfigurationError
from converter.infrastructure.adapters.ffmpeg_supervisor import FFmpegSupervisor
from converter.infrastructure.adapters.ffprobe_adapter import FfprobeAdapter
from converter.infrastructure.adapters.toolchain import FfmpegVerifier, YamlToolchainConfig
from converter.infrastructure.listeners.event_journal_writer import EventJournalWriter

logger = logging.getLogger(__name__)


@dataclass
class Converter:
    """Container for all wired converter components.

    Not a frozen dataclass — components are mutable singletons.
    """

    settings: ConverterSettings
    toolchain: YamlToolchainConfig
    verifier: FfmpegVerifier
    supervisor: FFmpegSupervisor
    probe: FfprobeAdapter
    event_bus: EventBus
    activity_log: ActivityLog
    service: ConversionService


def create_converter(settings: ConverterSettings | None = None, dispatch: Dispatcher | None = None) -> Converter:
    """Wire all adapters and return a Converter ready to use.

    If no settings are provided, loads from environment/.env.
    """
    if settings is None:
        settings = ConverterSettings()

    _validate_settings(settings)

    # Infrastructure adapters
    toolchain = YamlToolchainConfig(
        config_file=settings.config_file,
        override=settings.ffmpeg_path,
        search_path=settings.search_system_path,
    )
    verifier = FfmpegVerifier()
    supervisor = FFmpegSupervisor(
        cancel_grace_seconds=settings.cancel_grace_seconds,
        drain_grace_seconds=settings.drain_grace_seconds,
    )
    probe = FfprobeAdapter(toolchain=toolchain, timeout_seconds=settings.probe_timeout_seconds)

    # Application components
    event_bus = EventBus()
    if settings.journal_path is not None:
        event_bus.subscribe(EventJournalWriter(log_path=settings.journal_path, namespaces=settings.journal_namespaces))
    activity_log = ActivityLog(limit=settings.log_history_limit)

    service = ConversionService(
        toolchain=toolchain,
        supervisor=supervisor,
        probe=probe,
        activity_log=activity_log,
        event_bus=event_bus,
        dispatch=dispatch,
    )

    if not toolchain.is_configured():
        logger.warning("ffmpeg/ffprobe not found; conversion and inspection are unavailable until configured")

    logger.info(
        "Converter created: ffmpeg=%s, config=%s, cancel_grace=%.1fs",
        toolchain.ffmpeg_path(),
        settings.config_file,
        settings.cancel_grace_seconds,
    )

    return Converter(
        settings=settings,
        toolchain=toolchain,
        verifier=verifier,
        supervisor=supervisor,
        probe=probe,
        event_bus=event_bus,
        activity_log=activity_log,
        service=service,
    )


def _validate_settings(settings: ConverterSettings) -> None:
    """Validate critical settings at boot time.

    Raises ConfigurationError if the environment is not viable.
    """
    if settings.ffmpeg_path is not None and not settings.ffmpeg_path.exists():
        raise ConfigurationError(f"CONVERTER_FFMPEG_PATH points to a missing file: {settings.ffmpeg_path}")

    if settings.journal_path is not None and settings.journal_path.is_dir():
        raise ConfigurationError(f"CONVERTER_JOURNAL_PATH must be a file, got directory: {settings.journal_path}")

    if settings.config_file.is_dir():
        raise ConfigurationError(f"CONVERTER_CONFIG_FILE must be a file, got directory: {settings.config_file}")
