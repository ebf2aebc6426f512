"""Real-time fan-out of user events to subscribers."""

import asyncio
import logging
from collections import defaultdict
from typing import Protocol

from appdoki.db.models import User
from appdoki.schemas.user import UserResponse

logger = logging.getLogger(__name__)

USERS_TOPIC = "users"


class Notifier(Protocol):
    async def message_all(self, topic: str, payload: dict[str, str]) -> None: ...


class InMemoryBroker:
    """In-process pub/sub: every subscriber of a topic gets its own queue."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, topic: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[topic].add(queue)
        return queue

    def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        self._subscribers[topic].discard(queue)

    async def message_all(self, topic: str, payload: dict[str, str]) -> None:
        for queue in list(self._subscribers[topic]):
            try:
                queue.put_nowait(payload)
            except asyncio.QueueFull:
                logger.warning(f"Dropping {topic} message for a slow subscriber")


class NewUserNotifier:
    """
    Broadcasts newly created users on the ``users`` topic.

    Publishing runs in a detached task so the originating request neither
    waits for it nor is affected by its failure. Errors are logged and
    swallowed.
    """

    def __init__(self, notifier: Notifier):
        self.notifier = notifier
        self._tasks: set[asyncio.Task] = set()

    def notify_created(self, user: User) -> None:
        task = asyncio.create_task(self._publish(user))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _publish(self, user: User) -> None:
        try:
            payload = {"user": UserResponse.model_validate(user).model_dump_json()}
            await self.notifier.message_all(USERS_TOPIC, payload)
        except Exception:
            logger.exception("Failed to publish new user notification")

    async def drain(self) -> None:
        """Wait for every in-flight notification to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
