"""EventJournalWriter — persist converter events as one line each in a journal file."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles

from converter.domain.models import ConverterEvent

if TYPE_CHECKING:
    from converter.domain.ports import EventListenerPort

logger = logging.getLogger(__name__)


def format_journal_line(event: ConverterEvent) -> str:
    """Render ``<ISO8601> | <namespace.event_name> | <compact json>`` with a trailing newline."""
    payload = json.dumps(dict(event.data), separators=(",", ":"), default=str)
    return f"{event.timestamp} | {event.event_name} | {payload}\n"


class EventJournalWriter:
    """Event listener appending to a journal file, optionally limited to some namespaces.

    ``namespaces`` such as ``("conversion",)`` keep only events whose name starts
    with ``conversion.``; None keeps everything. Appends are serialized so lines
    from concurrent publishers never interleave.
    """

    if TYPE_CHECKING:
        _protocol_check: EventListenerPort

    def __init__(self, log_path: Path, namespaces: Iterable[str] | None = None) -> None:
        self._log_path = log_path
        self._prefixes = tuple(f"{ns}." for ns in namespaces) if namespaces is not None else None
        self._lock = asyncio.Lock()

    @property
    def log_path(self) -> Path:
        return self._log_path

    async def __call__(self, event: ConverterEvent) -> None:
        if self._prefixes is not None and not event.event_name.startswith(self._prefixes):
            return

        line = format_journal_line(event)
        async with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self._log_path, "a", encoding="utf-8") as journal:
                await journal.write(line)
        logger.debug("Journaled %s to %s", event.event_name, self._log_path)
