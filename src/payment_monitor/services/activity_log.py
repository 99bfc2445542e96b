"""In-memory activity log exposed through the /logs endpoint.

Keeps the most recent entries in a bounded FIFO buffer. Appends come from the
event loop and from thread-pool workers running blocking SDK calls, so every
access goes through a lock.
"""

import logging
import threading
from collections import deque
from datetime import UTC, datetime
from functools import lru_cache

from payment_monitor.models.activity import LogEntry, Severity

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_RECENT_LIMIT = 50

_LEVELS: dict[Severity, int] = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class ActivityLog:
    """Bounded, thread-safe log of recent monitor activity.

    Usage:
        activity = get_activity_log()
        activity.append("Manual test triggered")
        activity.append("Failed to add record to Airtable: timeout", Severity.ERROR)
        latest = activity.recent(5)
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, message: str, severity: Severity | str = Severity.INFO) -> LogEntry:
        """Record an entry and mirror it to the process logger.

        Args:
            message: Human-readable description.
            severity: One of info, success, warn, error.

        Returns:
            The appended entry.
        """
        severity = Severity(severity)
        entry = LogEntry(timestamp=datetime.now(UTC), message=message, type=severity)

        logger.log(
            _LEVELS[severity],
            "[%s] %s: %s",
            entry.timestamp.isoformat(),
            severity.value.upper(),
            message,
        )

        with self._lock:
            # deque(maxlen) evicts the oldest entry once full
            self._entries.append(entry)
        return entry

    def recent(self, limit: int | None = DEFAULT_RECENT_LIMIT) -> list[LogEntry]:
        """Return up to ``limit`` entries, most recent first.

        Args:
            limit: Maximum entries to return. Missing or non-positive values
                fall back to the default of 50.
        """
        if not limit or limit < 1:
            limit = DEFAULT_RECENT_LIMIT

        with self._lock:
            snapshot = list(self._entries)

        return list(reversed(snapshot[-limit:]))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@lru_cache(maxsize=1)
def get_activity_log() -> ActivityLog:
    """Get the application's ActivityLog instance (singleton pattern)."""
    return ActivityLog()
