"""ActivityLog — bounded, user-facing history of converter activity."""

from __future__ import annotations

import logging
from collections import deque

from converter.domain.enums import LogLevel
from converter.domain.models import LogEntry

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT: int = 200

_LOGGING_LEVELS: dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class ActivityLog:
    """Keep the most recent entries and mirror each one to the module logger.

    Older entries fall off the front once the limit is reached.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._entries: deque[LogEntry] = deque(maxlen=limit)

    def add(self, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        entry = LogEntry(message=message, level=level)
        self._entries.append(entry)
        logger.log(_LOGGING_LEVELS[level], "%s", message)
        return entry

    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
