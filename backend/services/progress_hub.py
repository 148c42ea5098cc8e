from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

Payload = dict[str, Any]
HISTORY_SIZE = 8
QUEUE_SIZE = 16


@dataclass
class _Channel:
    subscribers: set[asyncio.Queue[Payload]] = field(default_factory=set)
    history: deque[Payload] = field(default_factory=lambda: deque(maxlen=HISTORY_SIZE))


def _offer(q: asyncio.Queue[Payload], payload: Payload) -> None:
    """Enqueue without blocking; a slow reader loses its oldest event, never the newest."""
    if q.full():
        q.get_nowait()
    q.put_nowait(payload)


class ProgressHub:
    """
    Per-session fan-out of generation progress events.

    Each session gets a channel holding its live subscriber queues and the last
    few events, which are replayed to anyone who subscribes mid-run. Channels
    are dropped with `forget()` when the session goes away.
    """

    def __init__(self, *, history_size: int = HISTORY_SIZE) -> None:
        self._history_size = history_size
        self._channels: dict[str, _Channel] = {}
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()

    def _channel(self, session_id: str) -> _Channel:
        channel = self._channels.get(session_id)
        if channel is None:
            channel = _Channel(history=deque(maxlen=self._history_size))
            self._channels[session_id] = channel
        return channel

    async def subscribe(self, session_id: str) -> asyncio.Queue[Payload]:
        q: asyncio.Queue[Payload] = asyncio.Queue(maxsize=QUEUE_SIZE)
        async with self._lock:
            channel = self._channel(session_id)
            for payload in channel.history:
                _offer(q, payload)
            channel.subscribers.add(q)
        return q

    async def unsubscribe(self, session_id: str, q: asyncio.Queue[Payload]) -> None:
        async with self._lock:
            channel = self._channels.get(session_id)
            if channel is not None:
                channel.subscribers.discard(q)

    async def publish(self, session_id: str, payload: Payload) -> None:
        async with self._lock:
            channel = self._channel(session_id)
            channel.history.append(payload)
            targets = tuple(channel.subscribers)
        for q in targets:
            _offer(q, payload)

    def publish_nowait(self, session_id: str, payload: Payload) -> None:
        """Schedule `publish` from sync code; a no-op outside a running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.publish(session_id, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def forget(self, session_id: str) -> None:
        channel = self._channels.pop(session_id, None)
        if channel is not None and channel.subscribers:
            logger.info("[progress_hub] Dropped session=%s with %d live subscriber(s)", session_id, len(channel.subscribers))

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._channels


progress_hub = ProgressHub()
