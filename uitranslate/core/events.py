"""
Translation event broadcaster.

Background jobs publish three kinds of events (progress, string translated,
job complete). Every event goes to every current subscriber: there is no
per-listener addressing, no acknowledgement and no replay. Listeners compare
the event's language with their own and ignore the rest.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

# Type for event handlers
EventHandler = Callable[["Event"], Awaitable[None]]


class EventTypes:
    """Wire names of the broadcast event kinds."""

    PROGRESS = "TranslationProgress"
    STRING_TRANSLATED = "StringTranslated"
    COMPLETE = "TranslationComplete"


@dataclass
class Event:
    """An immutable record of something a translation job did."""

    event_type: str
    payload: dict[str, Any] = field(default_factory=dict)

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the shape sent over the real-time transport."""
        return {
            "id": self.id,
            "type": self.event_type,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``subscribe``."""

    handler: EventHandler


class TranslationBroadcaster:
    """
    In-memory fan-out channel.

    Suitable for a single process. Handlers run sequentially in subscription
    order; a failing handler is logged and does not stop delivery to the rest.
    """

    def __init__(self, stream_queue_size: int = 256):
        self._subscriptions: list[Subscription] = []
        self._stream_queue_size = stream_queue_size

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, handler: EventHandler) -> Subscription:
        """
        Subscribe to every event.

        Returns:
            The subscription object (pass it to ``unsubscribe``)
        """
        subscription = Subscription(handler=handler)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription."""
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, event: Event) -> int:
        """
        Deliver an event to every subscriber.

        Returns:
            Number of handlers that received the event without error
        """
        delivered = 0
        # Copy: handlers may unsubscribe while we iterate
        for subscription in list(self._subscriptions):
            try:
                await subscription.handler(event)
                delivered += 1
            except Exception:
                logger.exception("Error in event handler for %s", event.event_type)
        return delivered

    async def stream(self) -> AsyncIterator[Event]:
        """
        Iterate over events as they are published.

        Backed by a bounded queue; when a slow consumer lets it fill up, new
        events are dropped for that consumer only.
        """
        queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=self._stream_queue_size)

        async def enqueue(event: Event) -> None:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Dropping %s for slow listener", event.event_type)

        subscription = self.subscribe(enqueue)
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(subscription)

    # -------------------------------------------------------------------------
    # Typed helpers
    # -------------------------------------------------------------------------

    async def progress(
        self,
        job_id: str,
        total: int,
        completed: int,
        current_key: str | None = None,
    ) -> None:
        await self.publish(translation_progress(job_id, total, completed, current_key))

    async def string_translated(self, key: str, language_code: str, translated_text: str) -> None:
        await self.publish(string_translated(key, language_code, translated_text))

    async def complete(self, job_id: str, translated_count: int) -> None:
        await self.publish(translation_complete(job_id, translated_count))


# Singleton broadcaster for the application
_default_broadcaster: TranslationBroadcaster | None = None


def get_broadcaster() -> TranslationBroadcaster:
    """Get the default broadcaster instance."""
    global _default_broadcaster
    if _default_broadcaster is None:
        _default_broadcaster = TranslationBroadcaster()
    return _default_broadcaster


def reset_broadcaster() -> None:
    """Reset the default broadcaster (useful for testing)."""
    global _default_broadcaster
    _default_broadcaster = None


# Convenience functions for the event kinds
def translation_progress(
    job_id: str,
    total: int,
    completed: int,
    current_key: str | None = None,
) -> Event:
    """Create a TranslationProgress event."""
    percentage = 100.0 if total == 0 else completed / total * 100.0
    return Event(
        event_type=EventTypes.PROGRESS,
        payload={
            "job_id": job_id,
            "total": total,
            "completed": completed,
            "current_key": current_key,
            "percentage": percentage,
        },
    )


def string_translated(key: str, language_code: str, translated_text: str) -> Event:
    """Create a StringTranslated event."""
    return Event(
        event_type=EventTypes.STRING_TRANSLATED,
        payload={
            "key": key,
            "language_code": language_code,
            "translated_text": translated_text,
        },
    )


def translation_complete(job_id: str, translated_count: int) -> Event:
    """Create a TranslationComplete event."""
    return Event(
        event_type=EventTypes.COMPLETE,
        payload={
            "job_id": job_id,
            "translated_count": translated_count,
        },
    )
