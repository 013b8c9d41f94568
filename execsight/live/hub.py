"""
Live Update Hub — per-user pub/sub of versioned envelopes.

publish() stamps a payload through the versioner and puts the envelope on
every subscriber queue for that user. subscribe() registers a queue at once;
its Subscription async-iterates envelopes in the order they were stamped.
format_sse() renders one as an SSE frame.
"""

import asyncio
import json
from collections import defaultdict
from typing import Any, Mapping, Optional

import structlog

from execsight.config import Settings
from execsight.live.versioner import LiveUpdateEnvelope, LiveUpdateVersioner

logger = structlog.get_logger(__name__)


def format_sse(envelope: LiveUpdateEnvelope) -> str:
    """id / event / data frame; the version doubles as the SSE event id."""
    data = json.dumps(envelope.to_dict(), ensure_ascii=False, default=str)
    return f"id: {envelope.assigned_version}\nevent: {envelope.update_type}\ndata: {data}\n\n"


class LiveUpdateHub:
    """
    Live update pub/sub.

    Each user has a set of subscriber queues. Queues are bounded when
    max_queue_size is set; a full queue drops the envelope for that
    subscriber only.
    """

    def __init__(self, versioner: Optional[LiveUpdateVersioner] = None, max_queue_size: int = 0):
        self.versioner = versioner or LiveUpdateVersioner()
        self.max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    @classmethod
    def from_settings(cls, config: Settings) -> "LiveUpdateHub":
        return cls(
            versioner=LiveUpdateVersioner(multiplier=config.version_multiplier),
            max_queue_size=config.live_queue_size,
        )

    @property
    def subscriber_count(self) -> int:
        return sum(len(queues) for queues in self._subscribers.values())

    def publish(self, user_id: str, update_type: str, payload: Mapping[str, Any]) -> LiveUpdateEnvelope:
        """Stamp and deliver to every current subscriber of `user_id`."""
        envelope = self.versioner.stamp(user_id, update_type, payload)

        queues = self._subscribers.get(user_id, set())
        for queue in queues:
            try:
                queue.put_nowait(envelope)
            except asyncio.QueueFull:
                logger.warning("live_queue_full", user_id=user_id, version=envelope.assigned_version)

        logger.debug(
            "live_update_published",
            user_id=user_id,
            update_type=update_type,
            version=envelope.assigned_version,
            recipients=len(queues),
        )
        return envelope

    def open_queue(self, user_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[user_id].add(queue)
        logger.info("live_subscriber_added", user_id=user_id, total=len(self._subscribers[user_id]))
        return queue

    def close_queue(self, user_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(user_id)
        if queues is None:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]
        logger.info("live_subscriber_removed", user_id=user_id, remaining=len(queues))

    def subscribe(self, user_id: str) -> "Subscription":
        """
        Register a subscriber for `user_id` immediately.

        Envelopes published after this call are buffered even if the
        consumer has not started iterating yet.
        """
        return Subscription(self, user_id, self.open_queue(user_id))


class Subscription:
    """Async iterator over one subscriber queue; aclose() unregisters it."""

    def __init__(self, hub: LiveUpdateHub, user_id: str, queue: asyncio.Queue):
        self.user_id = user_id
        self._hub = hub
        self._queue = queue
        self._closed = False

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> LiveUpdateEnvelope:
        if self._closed:
            raise StopAsyncIteration
        return await self._queue.get()

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            self._hub.close_queue(self.user_id, self._queue)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
