from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
import itertools
import logging
import threading

from orchestrator.logging_config import SUCCESS
from orchestrator.schemas import EventLogEntry, Severity

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: SUCCESS,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class EventLog:
    """Bounded, newest-first record of operational events.

    Once ``capacity`` entries are held, recording a new one evicts the oldest.
    Appends are serialized with a lock so completing tasks may record
    concurrently; ``list`` hands back a copy and never sees more than
    ``capacity`` entries.
    """

    def __init__(self, *, capacity: int = 50) -> None:
        if capacity < 1:
            raise ValueError("Event log capacity must be at least 1")
        self._capacity = capacity
        self._entries: deque[EventLogEntry] = deque(maxlen=capacity)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(
        self,
        severity: Severity | str,
        message: str,
        instance_name: str | None = None,
    ) -> EventLogEntry:
        severity = Severity(severity)
        with self._lock:
            entry = EventLogEntry(
                id=next(self._ids),
                timestamp=datetime.now(timezone.utc),
                severity=severity,
                message=message,
                instance_name=instance_name,
            )
            self._entries.appendleft(entry)
        logger.log(_LOG_LEVELS[severity], "[%s] %s", severity.value, message)
        return entry

    def list(self) -> list[EventLogEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
