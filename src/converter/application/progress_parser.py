"""ProgressParser — decode ffmpeg ``-progress`` key=value cycles into snapshots."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from converter.domain.enums import ProgressState
from converter.domain.models import ProgressSnapshot
from converter.domain.types import ProgressCallback

logger = logging.getLogger(__name__)

TERMINATOR_KEY: str = "progress"

_BITRATE_SUFFIX = "kbits/s"
_SPEED_SUFFIX = "x"


class ProgressParser:
    """Accumulate status fields and emit one snapshot per terminator line.

    Runs on whichever task drains ffmpeg's stdout. Work per line is plain string
    processing; marshalling the callback onto a UI thread is the caller's concern.
    Snapshots are delivered in stream order and never share fields across cycles.
    """

    def __init__(self, on_progress: ProgressCallback) -> None:
        self._on_progress = on_progress
        self._fields: dict[str, str] = {}
        self._emitted = 0

    @property
    def emitted(self) -> int:
        """Number of snapshots delivered so far."""
        return self._emitted

    def feed(self, line: str) -> ProgressSnapshot | None:
        """Consume one status line. Returns the snapshot if this line completed a cycle."""
        parts = line.split("=", 1)
        if len(parts) != 2:
            return None

        key, value = parts[0].strip(), parts[1].strip()
        self._fields[key] = value
        if key != TERMINATOR_KEY:
            return None

        snapshot = parse_snapshot(self._fields)
        self._fields.clear()
        self._emitted += 1
        self._on_progress(snapshot)
        return snapshot

    def feed_all(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.feed(line)

    def reset(self) -> None:
        """Drop any partially accumulated cycle."""
        self._fields.clear()


def parse_snapshot(fields: Mapping[str, str]) -> ProgressSnapshot:
    """Build a snapshot from raw fields; missing or unparsable numbers become zero."""
    return ProgressSnapshot(
        frame=_to_int(fields.get("frame")),
        fps=_to_float(fields.get("fps")),
        out_time_ms=_to_int(fields.get("out_time_ms")),
        total_size=_to_int(fields.get("total_size")),
        bitrate=_to_float(_strip_suffix(fields.get("bitrate"), _BITRATE_SUFFIX)),
        speed=_to_float(_strip_suffix(fields.get("speed"), _SPEED_SUFFIX)),
        state=_to_state(fields.get(TERMINATOR_KEY)),
    )


def _strip_suffix(value: str | None, suffix: str) -> str | None:
    if value is None:
        return None
    return value.strip().removesuffix(suffix)


def _to_int(value: str | None) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


def _to_float(value: str | None) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except ValueError:
        return 0.0


def _to_state(value: str | None) -> ProgressState:
    if value == ProgressState.END.value:
        return ProgressState.END
    if value != ProgressState.CONTINUE.value:
        logger.debug("Unknown progress state %r, treating as continue", value)
    return ProgressState.CONTINUE
