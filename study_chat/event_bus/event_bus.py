"""EventBus implementation for observers of chat state."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol

from ..logging_config import get_logger
from ..models import StateEvent, Topic

logger = get_logger(__name__)


TopicHandler = Callable[[StateEvent], Awaitable[None]]


class IEventBus(Protocol):
    """In-memory pub/sub for StateEvents."""

    def subscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Subscribe a handler to a topic."""
        ...

    def unsubscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Remove a handler from a topic."""
        ...

    async def publish(self, event: StateEvent) -> None:
        """Publish StateEvent to all subscribers of its topic."""
        ...

    async def emit(
        self,
        topic: Topic,
        payload: dict,
        conversation_id: str | None = None,
    ) -> None:
        """Build and publish a StateEvent."""
        ...


class EventBus:
    """In-memory pub/sub event bus."""

    def __init__(self):
        self._subscribers: dict[Topic, list[TopicHandler]] = {topic: [] for topic in Topic}

    def subscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Subscribe a handler to a topic."""
        self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Remove a handler from a topic."""
        handlers = self._subscribers[topic]
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: StateEvent) -> None:
        """Publish StateEvent: calls subscriber callbacks concurrently."""
        if not event.id:
            event.id = str(uuid.uuid4())

        handlers = list(self._subscribers.get(event.topic, []))
        if not handlers:
            return

        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True,
        )

        # A failing observer must not break the publisher.
        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error("Error in %s handler %s: %s", event.topic.value, i, result)

    async def emit(
        self,
        topic: Topic,
        payload: dict,
        conversation_id: str | None = None,
    ) -> None:
        """Build and publish a StateEvent."""
        await self.publish(
            StateEvent(
                id=str(uuid.uuid4()),
                topic=topic,
                payload=payload,
                conversation_id=conversation_id,
                timestamp=datetime.now(timezone.utc),
            )
        )
