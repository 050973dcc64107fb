"""
In-process change feed.

Services publish a ChangeEvent after every committed write to a conversation
or its messages. Consumers (the notification aggregator, the Socket.IO
layer, cache invalidation) watch the feed with a filter and receive the
matching events as an async stream.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ChangeKind(str, enum.Enum):
    """Kinds of change published on the feed."""
    CONVERSATION_CREATED = "conversation_created"
    CONVERSATION_UPDATED = "conversation_updated"
    MESSAGE_CREATED = "message_created"
    MESSAGES_READ = "messages_read"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one conversation."""

    kind: ChangeKind
    conversation_id: str
    participants: Tuple[str, ...]
    payload: Dict[str, Any] = field(default_factory=dict)

    def involves(self, user_id: str) -> bool:
        return user_id in self.participants


EventFilter = Callable[[ChangeEvent], bool]


def participant_filter(user_id: str) -> EventFilter:
    """Filter matching every change to a conversation the user takes part in."""
    def _matches(event: ChangeEvent) -> bool:
        return event.involves(user_id)
    return _matches


class ChangeStream:
    """
    Async iterator over the events accepted by one watch.

    Iteration ends after close() is called.
    """

    _CLOSED = object()

    def __init__(self, feed: "ChangeFeed", event_filter: EventFilter):
        self._feed = feed
        self.filter = event_filter
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def _offer(self, event: ChangeEvent) -> None:
        if not self.closed and self.filter(event):
            self._queue.put_nowait(event)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._feed._remove(self)
        self._queue.put_nowait(self._CLOSED)

    def __aiter__(self) -> "ChangeStream":
        return self

    async def __anext__(self) -> ChangeEvent:
        item = await self._queue.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        return item


class ChangeFeed:
    """Fan-out of change events to filtered watchers."""

    def __init__(self):
        self._streams: List[ChangeStream] = []

    def watch(self, event_filter: EventFilter) -> ChangeStream:
        """
        Register a watch.

        Args:
            event_filter: Predicate selecting the events of interest

        Returns:
            ChangeStream yielding matching events until closed
        """
        stream = ChangeStream(self, event_filter)
        self._streams.append(stream)
        return stream

    def _remove(self, stream: ChangeStream) -> None:
        if stream in self._streams:
            self._streams.remove(stream)

    @property
    def watcher_count(self) -> int:
        return len(self._streams)

    def publish(self, event: ChangeEvent) -> None:
        """
        Deliver an event to every matching watcher.

        Must only be called after the change has been committed.
        """
        logger.debug(f"Publishing {event.kind.value} for conversation {event.conversation_id}")
        for stream in list(self._streams):
            stream._offer(event)


# Global change feed instance
change_feed = ChangeFeed()


def publish_change(
    kind: ChangeKind,
    conversation_id: str,
    participants: Tuple[str, ...],
    feed: Optional[ChangeFeed] = None,
    **payload: Any
) -> ChangeEvent:
    """Build and publish an event on the given (or global) feed."""
    event = ChangeEvent(
        kind=kind,
        conversation_id=conversation_id,
        participants=tuple(participants),
        payload=payload,
    )
    (feed or change_feed).publish(event)
    return event
