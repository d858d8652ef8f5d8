"""Event manager for Server-Sent Events (SSE).

Dashboards subscribe to the stream and re-fetch the views named in a
``registration_updated`` event's ``paths`` after every committed transition.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from unireg.state_store.models import utcnow

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

# Browsers wait this long before reconnecting a dropped stream
RECONNECT_MS = 3000


class EventType(str, Enum):
    """Types of events that can be emitted."""

    REGISTRATION_UPDATED = "registration_updated"
    HEARTBEAT = "heartbeat"


@dataclass
class Event:
    """An event to be sent via SSE."""

    event_type: EventType
    data: dict[str, Any]
    user_id: str | None = None

    def to_sse(self) -> str:
        """Convert to SSE format."""
        return f"event: {self.event_type.value}\ndata: {json.dumps(self.data)}\n\n"


@dataclass
class Subscriber:
    """A subscriber to the event stream."""

    id: str
    queue: asyncio.Queue[Event]
    user_id: str | None = None  # None means events for every student
    loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def create(cls, user_id: str | None = None) -> Subscriber:
        """Create a new subscriber bound to the running event loop, if any."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        return cls(id=str(uuid4()), queue=asyncio.Queue(), user_id=user_id, loop=loop)

    def wants(self, event: Event) -> bool:
        """Whether this subscriber should receive the event."""
        return self.user_id is None or event.user_id is None or self.user_id == event.user_id

    def deliver(self, event: Event) -> None:
        """Queue an event from any thread."""
        if self.loop is not None and not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self.queue.put_nowait, event)
        else:
            self.queue.put_nowait(event)


@dataclass
class EventManager:
    """Manager for SSE events."""

    _subscribers: dict[str, Subscriber] = field(default_factory=dict)
    _heartbeat_interval: float = 30.0  # seconds

    def subscribe(self, user_id: str | None = None) -> Subscriber:
        """Subscribe a client to events.

        Args:
            user_id: Only receive events about this student. None means all.

        Returns:
            Subscriber instance for receiving events.
        """
        subscriber = Subscriber.create(user_id)
        self._subscribers[subscriber.id] = subscriber
        return subscriber

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unsubscribe a client from events."""
        self._subscribers.pop(subscriber_id, None)

    def emit_sync(self, event: Event) -> None:
        """Emit an event to all matching subscribers.

        Safe to call from worker threads; sync route handlers run there.
        """
        for subscriber in list(self._subscribers.values()):
            if subscriber.wants(event):
                subscriber.deliver(event)

    @property
    def heartbeat_interval(self) -> float:
        """Seconds of silence before a heartbeat is sent."""
        return self._heartbeat_interval

    @property
    def subscriber_count(self) -> int:
        """Get the number of active subscribers."""
        return len(self._subscribers)

    def emit_registration_updated(
        self,
        registration_id: str,
        user_id: str,
        status: str,
        paths: list[str],
    ) -> None:
        """Emit a registration_updated event naming the views to refresh."""
        event = Event(
            event_type=EventType.REGISTRATION_UPDATED,
            user_id=user_id,
            data={
                "registration_id": registration_id,
                "user_id": user_id,
                "status": status,
                "paths": paths,
                "timestamp": utcnow().isoformat() + "Z",
            },
        )
        self.emit_sync(event)

    def create_heartbeat_event(self) -> Event:
        """Create a heartbeat event."""
        return Event(
            event_type=EventType.HEARTBEAT,
            user_id=None,
            data={"timestamp": utcnow().isoformat() + "Z"},
        )

    async def stream(self, subscriber: Subscriber) -> AsyncIterator[str]:
        """Yield SSE frames for ``subscriber`` until the client goes away.

        The first frame is a ``retry`` hint. After that each queued event is
        sent as it arrives, and a heartbeat is sent whenever the queue stays
        empty for ``heartbeat_interval``. The subscriber is removed when the
        generator is closed.
        """
        try:
            yield f"retry: {RECONNECT_MS}\n\n"
            while True:
                try:
                    event = await asyncio.wait_for(
                        subscriber.queue.get(), timeout=self._heartbeat_interval
                    )
                except TimeoutError:
                    event = self.create_heartbeat_event()
                yield event.to_sse()
        finally:
            self.unsubscribe(subscriber.id)
