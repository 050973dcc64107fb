"""
Notification service.

Turns the inbox previews of a user into badge counts, either once (REST)
or continuously (NotificationAggregator, driven by the change feed).
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.core.cache import cache_notification_summary, get_cached_notification_summary
from sortmyai.core import events
from sortmyai.core.events import ChangeFeed, ChangeStream, participant_filter
from sortmyai.models.conversation import ConversationStatus
from sortmyai.schemas.conversation import MessagePreview
from sortmyai.schemas.notification import NotificationSummary
from sortmyai.services.conversation_service import ConversationService

logger = logging.getLogger(__name__)

PreviewLoader = Callable[[str], Awaitable[List[MessagePreview]]]
SummaryCallback = Callable[[NotificationSummary], Any]


def summarize(previews: Iterable[MessagePreview]) -> NotificationSummary:
    """
    Badge counts for a list of previews.

    - unread_conversation_count: previews with unread messages
    - total_unread_messages: sum of their unread counts
    - pending_requests_count: pending requests the user received
    """
    summary = NotificationSummary()
    for preview in previews:
        if preview.unread_count > 0:
            summary.unread_conversation_count += 1
            summary.total_unread_messages += preview.unread_count
        if preview.status == ConversationStatus.PENDING and not preview.is_requester:
            summary.pending_requests_count += 1
    return summary


async def load_previews_from_db(user_id: str) -> List[MessagePreview]:
    """Default preview loader: one short-lived session per recompute."""
    from sortmyai.core.database import AsyncSessionLocal

    async with AsyncSessionLocal() as db:
        return await ConversationService(db).get_message_previews(user_id)


class NotificationSubscription:
    """
    Live summary for one user.

    Created by NotificationAggregator.subscribe; recomputes on every change
    to one of the user's conversations until unsubscribed.
    """

    def __init__(
        self,
        user_id: str,
        stream: ChangeStream,
        load_previews: PreviewLoader,
        on_change: SummaryCallback
    ):
        self.user_id = user_id
        self._stream = stream
        self._load_previews = load_previews
        self._on_change = on_change
        self._task: Optional[asyncio.Task] = None
        self.previews: List[MessagePreview] = []
        self.summary = NotificationSummary()

    @property
    def active(self) -> bool:
        return not self._stream.closed

    async def _emit(self) -> None:
        try:
            result = self._on_change(self.summary)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Notification callback failed for {self.user_id}: {e}", exc_info=True)

    async def refresh(self) -> NotificationSummary:
        """
        Recompute from freshly loaded previews and emit.

        On failure the previous summary is kept and nothing is emitted.
        """
        try:
            previews = await self._load_previews(self.user_id)
        except Exception as e:
            logger.error(f"Failed to recompute notifications for {self.user_id}: {e}", exc_info=True)
            return self.summary

        self.previews = list(previews)
        self.summary = summarize(self.previews)
        await self._emit()
        return self.summary

    async def _run(self) -> None:
        async for event in self._stream:
            logger.debug(f"Recomputing notifications for {self.user_id} after {event.kind.value}")
            await self.refresh()

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())

    async def clear_notifications_for_conversation(self, conversation_id: str) -> NotificationSummary:
        """
        Optimistically zero one conversation's unread count and re-emit.

        Nothing is written; the next recompute from the store replaces
        this local view.
        """
        self.previews = [
            preview.model_copy(update={"unread_count": 0})
            if preview.conversation_id == conversation_id
            else preview
            for preview in self.previews
        ]
        self.summary = summarize(self.previews)
        await self._emit()
        return self.summary

    async def unsubscribe(self) -> None:
        """Stop watching the feed. Safe to call more than once."""
        self._stream.close()
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None


class NotificationAggregator:
    """
    Keeps NotificationSummary values live for connected users.

    Args:
        feed: Change feed to watch (the global feed by default)
        load_previews: Coroutine returning a user's previews
    """

    def __init__(
        self,
        feed: Optional[ChangeFeed] = None,
        load_previews: Optional[PreviewLoader] = None
    ):
        self.feed = feed or events.change_feed
        self.load_previews = load_previews or load_previews_from_db

    async def subscribe(self, user_id: str, on_change: SummaryCallback) -> NotificationSubscription:
        """
        Start a live summary for user_id.

        The watch is registered before the initial recompute so that no
        change between the two is missed.
        """
        stream = self.feed.watch(participant_filter(user_id))
        subscription = NotificationSubscription(user_id, stream, self.load_previews, on_change)
        await subscription.refresh()
        subscription.start()
        logger.info(f"Notification subscription started for {user_id}")
        return subscription


class NotificationService:
    """One-shot notification summaries for the REST API."""

    def __init__(self, db: AsyncSession):
        """Initialize notification service."""
        self.db = db
        self.conversation_service = ConversationService(db)

    async def get_summary(self, user_id: str) -> NotificationSummary:
        """
        Summary for user_id, served from Redis when cached.

        The cache entry is dropped whenever one of the user's conversations
        changes, so a hit is never older than the last change.
        """
        try:
            cached = await get_cached_notification_summary(user_id)
        except Exception as e:
            logger.warning(f"Notification cache read failed for {user_id}: {e}")
            cached = None

        if cached:
            return NotificationSummary.model_validate(cached)

        previews = await self.conversation_service.get_message_previews(user_id)
        summary = summarize(previews)

        try:
            await cache_notification_summary(user_id, summary.model_dump())
        except Exception as e:
            logger.warning(f"Notification cache write failed for {user_id}: {e}")

        return summary
