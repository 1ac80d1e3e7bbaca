import logging
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional

from media_optimizer.schemas.common import LogEntry


class RecentLogBuffer(logging.Handler):
    """Root-logger handler keeping the newest ``capacity`` records for the API."""

    def __init__(self, capacity: int = 2000):
        super().__init__()
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord):
        try:
            self._entries.append(LogEntry(
                timestamp=datetime.fromtimestamp(record.created),
                level=record.levelname,
                logger=record.name,
                message=record.getMessage(),
            ))
        except Exception:
            self.handleError(record)

    def attach(self, target: Optional[logging.Logger] = None):
        target = target or logging.getLogger()
        if self not in target.handlers:
            target.addHandler(self)

    def entries(self, min_level: int = logging.NOTSET, logger_name: Optional[str] = None) -> List[LogEntry]:
        """Newest first, at or above ``min_level``, optionally within a logger subtree."""
        selected = []
        for entry in reversed(self._entries):
            if logging.getLevelName(entry.level) < min_level:
                continue
            if logger_name and not (entry.logger == logger_name or entry.logger.startswith(logger_name + ".")):
                continue
            selected.append(entry)
        return selected

    def as_text(self) -> str:
        return "\n".join(entry.as_line() for entry in self._entries)


recent_logs = RecentLogBuffer()
