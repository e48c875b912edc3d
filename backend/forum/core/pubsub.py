# forum/core/pubsub.py
"""
Log channel for the debug log viewer.
Log records are published to a bounded in-memory buffer and fanned out to
subscriber queues (one per connected WebSocket). The viewer subscribes here;
nothing patches global logging or print functions.
"""
import asyncio
import datetime as dt
import logging
from collections import deque
from typing import Deque, Set

from forum.config import settings


class LogChannel:
    """
    Simple publish/subscribe channel for log entries.

    Architecture:
    - `publish` is synchronous so that it can be called from `logging.Handler.emit`
    - Every entry is appended to a bounded history buffer (most recent last)
    - Subscribers are asyncio queues; routers own the WebSocket and drain the queue

    Data structure:
    - _history: deque of entry dicts, maxlen = buffer size
    - _subscribers: set of (loop, queue) pairs
    """
    def __init__(self, maxlen: int = 200):
        self._history: Deque[dict] = deque(maxlen=maxlen)
        self._subscribers: Set[tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = set()

    # -------- subscribe / unsubscribe --------
    def subscribe(self) -> asyncio.Queue:
        """
        Register a new subscriber queue bound to the running event loop.

        Returns:
            Queue receiving every entry published after subscription
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add((asyncio.get_running_loop(), queue))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers = {pair for pair in self._subscribers if pair[1] is not queue}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # -------- publish --------
    def publish(self, entry: dict) -> None:
        """
        Store an entry and hand it to every subscriber.

        Safe to call from any thread; delivery is scheduled on each
        subscriber's own loop. Subscribers whose loop is closed are dropped.
        """
        self._history.append(entry)
        for loop, queue in list(self._subscribers):
            if loop.is_closed():
                self._subscribers.discard((loop, queue))
                continue
            loop.call_soon_threadsafe(queue.put_nowait, entry)

    def recent(self, limit: int | None = None) -> list[dict]:
        entries = list(self._history)
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def clear(self) -> None:
        self._history.clear()


class LogChannelHandler(logging.Handler):
    """logging.Handler that publishes formatted records to a LogChannel."""

    def __init__(self, target: LogChannel, level: int = logging.INFO):
        super().__init__(level=level)
        self.channel = target

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "time": dt.datetime.fromtimestamp(record.created, tz=dt.timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            self.channel.publish(entry)
        except Exception:
            self.handleError(record)


def attach_log_channel(logger_name: str = "uvicorn.error") -> LogChannelHandler:
    """Attach the global channel to a logger once; returns the handler."""
    target = logging.getLogger(logger_name)
    for handler in target.handlers:
        if isinstance(handler, LogChannelHandler) and handler.channel is channel:
            return handler
    if target.level == logging.NOTSET:
        target.setLevel(logging.INFO)
    handler = LogChannelHandler(channel)
    target.addHandler(handler)
    return handler


# Global channel instance (singleton pattern)
# Import this instance in other modules to publish/subscribe log entries
channel = LogChannel(maxlen=settings.log_buffer_size)
