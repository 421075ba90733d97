"""
Progress Reporter Service.

In-memory pub/sub channel keyed by session identifier. Every entry is stored in
a per-session ring buffer and pushed to the observers currently subscribed to
that session. Late observers get the buffered entries once, then live ones.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import AsyncIterator

from ...core.logging import get_logger
from ...models.session import LogEntry, LogLevel

logger = get_logger(__name__)


class ProgressReporter:
    """Bounded LRU of session logs with replay-then-live subscriptions.

    The session map holds at most `max_sessions` logs; writing to a session
    marks it most recently used and the least recently written session is
    evicted first. Each log keeps its newest `max_entries` entries.
    """

    def __init__(self, max_entries: int = 1000, max_sessions: int = 500) -> None:
        self.max_entries = max_entries
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, deque[LogEntry]] = OrderedDict()
        self._subscribers: dict[str, set[asyncio.Queue[LogEntry]]] = {}

    def _buffer(self, session_id: str) -> deque[LogEntry]:
        buffer = self._sessions.get(session_id)
        if buffer is None:
            buffer = deque(maxlen=self.max_entries)
            self._sessions[session_id] = buffer
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("Session log evicted", session_id=evicted)
        else:
            self._sessions.move_to_end(session_id)
        return buffer

    def log(self, session_id: str, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        """Append an entry to a session and broadcast it to its observers."""
        entry = LogEntry(message=message, type=level)
        self._buffer(session_id).append(entry)

        for queue in list(self._subscribers.get(session_id, ())):
            queue.put_nowait(entry)

        if level is LogLevel.ERROR:
            logger.error(message, session_id=session_id)
        elif level is LogLevel.WARNING:
            logger.warning(message, session_id=session_id)
        else:
            logger.info(message, session_id=session_id, level=level.value)
        return entry

    def get_logs(self, session_id: str) -> list[LogEntry]:
        """Snapshot of the buffered entries of a session."""
        buffer = self._sessions.get(session_id)
        return list(buffer) if buffer is not None else []

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    async def stream(self, session_id: str) -> AsyncIterator[LogEntry]:
        """Yield the buffered entries once, then live entries until closed."""
        queue: asyncio.Queue[LogEntry] = asyncio.Queue()
        self._subscribers.setdefault(session_id, set()).add(queue)
        backlog = self.get_logs(session_id)
        try:
            for entry in backlog:
                yield entry
            while True:
                yield await queue.get()
        finally:
            subscribers = self._subscribers.get(session_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[session_id]

    def bind(self, session_id: str) -> SessionLogger:
        """Logger that writes every message to one session."""
        return SessionLogger(reporter=self, session_id=session_id)


@dataclass
class SessionLogger:
    """Session-scoped facade handed to pipeline services."""

    reporter: ProgressReporter
    session_id: str

    def info(self, message: str) -> None:
        self.reporter.log(self.session_id, message, LogLevel.INFO)

    def success(self, message: str) -> None:
        self.reporter.log(self.session_id, message, LogLevel.SUCCESS)

    def warning(self, message: str) -> None:
        self.reporter.log(self.session_id, message, LogLevel.WARNING)

    def error(self, message: str) -> None:
        self.reporter.log(self.session_id, message, LogLevel.ERROR)
