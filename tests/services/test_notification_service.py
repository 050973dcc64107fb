"""
Unit tests for the notification aggregator and summary service.
"""
import asyncio

import pytest

from sortmyai.core.events import ChangeFeed, ChangeKind, publish_change
from sortmyai.models.conversation import ConversationStatus
from sortmyai.schemas.conversation import MessagePreview, RequestDecision
from sortmyai.schemas.notification import NotificationSummary
from sortmyai.services.conversation_service import ConversationService
from sortmyai.services.notification_service import (
    NotificationAggregator,
    NotificationService,
    summarize,
)
from sortmyai.utils.datetime_utils import utc_now


def make_preview(conversation_id, unread=0, status=None, is_requester=False):
    return MessagePreview(
        conversation_id=conversation_id,
        participant_id="other",
        participant_name="other",
        last_message="...",
        timestamp=utc_now(),
        unread_count=unread,
        status=status,
        is_requester=is_requester,
    )


class SummaryRecorder:
    """on_change callback collecting every emitted summary."""

    def __init__(self):
        self.summaries = asyncio.Queue()

    async def __call__(self, summary):
        await self.summaries.put(summary)

    async def next(self, timeout=1.0) -> NotificationSummary:
        return await asyncio.wait_for(self.summaries.get(), timeout)


class TestSummarize:
    """Tests for summarize()."""

    def test_empty(self):
        assert summarize([]) == NotificationSummary()

    def test_counts(self):
        previews = [
            make_preview("c1", unread=2),
            make_preview("c2", unread=3, status=ConversationStatus.PENDING),
            make_preview("c3", unread=0, status=ConversationStatus.PENDING, is_requester=True),
            make_preview("c4", unread=0, status=ConversationStatus.ACCEPTED),
        ]

        summary = summarize(previews)

        assert summary.unread_conversation_count == 2
        assert summary.total_unread_messages == 5
        assert summary.pending_requests_count == 1

    def test_own_requests_are_not_pending_notifications(self):
        summary = summarize([make_preview("c1", status=ConversationStatus.PENDING, is_requester=True)])

        assert summary.pending_requests_count == 0


class TestNotificationAggregator:
    """Tests for NotificationAggregator subscriptions."""

    async def test_initial_summary_is_emitted(self):
        feed = ChangeFeed()

        async def load(user_id):
            return [make_preview("c1", unread=1)]

        recorder = SummaryRecorder()
        subscription = await NotificationAggregator(feed, load).subscribe("u1", recorder)

        summary = await recorder.next()
        assert summary.total_unread_messages == 1
        assert subscription.summary == summary
        await subscription.unsubscribe()

    async def test_recomputes_on_matching_change_only(self):
        feed = ChangeFeed()
        calls = []

        async def load(user_id):
            calls.append(user_id)
            return [make_preview("c1", unread=len(calls))]

        recorder = SummaryRecorder()
        subscription = await NotificationAggregator(feed, load).subscribe("u1", recorder)
        await recorder.next()

        publish_change(ChangeKind.MESSAGE_CREATED, "other", ("u2", "u3"), feed=feed)
        publish_change(ChangeKind.MESSAGE_CREATED, "c1", ("u1", "u2"), feed=feed)

        summary = await recorder.next()
        assert summary.total_unread_messages == 2
        assert calls == ["u1", "u1"]
        await subscription.unsubscribe()

    async def test_sync_callback_is_supported(self):
        feed = ChangeFeed()
        received = []

        async def load(user_id):
            return []

        subscription = await NotificationAggregator(feed, load).subscribe("u1", received.append)

        assert received == [NotificationSummary()]
        await subscription.unsubscribe()

    async def test_clear_notifications_for_conversation(self):
        feed = ChangeFeed()

        async def load(user_id):
            return [make_preview("c1", unread=2), make_preview("c2", unread=1)]

        recorder = SummaryRecorder()
        subscription = await NotificationAggregator(feed, load).subscribe("u1", recorder)
        await recorder.next()

        await subscription.clear_notifications_for_conversation("c1")

        summary = await recorder.next()
        assert summary.unread_conversation_count == 1
        assert summary.total_unread_messages == 1

        # Next recompute from the store wins
        publish_change(ChangeKind.MESSAGES_READ, "c2", ("u1", "u2"), feed=feed)
        summary = await recorder.next()
        assert summary.total_unread_messages == 3
        await subscription.unsubscribe()

    async def test_failed_recompute_keeps_previous_summary(self):
        feed = ChangeFeed()
        state = {"fail": False}

        async def load(user_id):
            if state["fail"]:
                raise RuntimeError("store unavailable")
            return [make_preview("c1", unread=4)]

        recorder = SummaryRecorder()
        subscription = await NotificationAggregator(feed, load).subscribe("u1", recorder)
        first = await recorder.next()

        state["fail"] = True
        publish_change(ChangeKind.MESSAGE_CREATED, "c1", ("u1", "u2"), feed=feed)
        await asyncio.sleep(0.05)

        assert recorder.summaries.empty()
        assert subscription.summary == first
        assert subscription.active
        await subscription.unsubscribe()

    async def test_unsubscribe_is_idempotent_and_releases_watch(self):
        feed = ChangeFeed()

        async def load(user_id):
            return []

        subscription = await NotificationAggregator(feed, load).subscribe("u1", lambda summary: None)
        assert feed.watcher_count == 1

        await subscription.unsubscribe()
        await subscription.unsubscribe()

        assert feed.watcher_count == 0
        assert not subscription.active

    async def test_live_summary_follows_request_lifecycle(
        self, db_session, test_user, test_user_2, change_feed
    ):
        """Recomputes from the store as messages arrive and are read."""
        service = ConversationService(db_session)

        async def load(user_id):
            return await ConversationService(db_session).get_message_previews(user_id)

        recorder = SummaryRecorder()
        subscription = await NotificationAggregator(change_feed, load).subscribe(test_user_2.id, recorder)
        assert (await recorder.next()) == NotificationSummary()

        conversation_id = await service.get_or_create_conversation(test_user.id, test_user_2.id)
        assert (await recorder.next()) == NotificationSummary()

        await service.send_message(conversation_id, test_user.id, test_user_2.id, "Hello")
        summary = await recorder.next()
        assert summary.unread_conversation_count == 1
        assert summary.total_unread_messages == 1
        assert summary.pending_requests_count == 1

        await service.mark_conversation_read(conversation_id, test_user_2.id)
        summary = await recorder.next()
        assert summary.total_unread_messages == 0
        assert summary.pending_requests_count == 1

        await service.respond_to_request(conversation_id, test_user_2.id, RequestDecision.ACCEPT)
        summary = await recorder.next()
        assert summary.pending_requests_count == 0

        await subscription.unsubscribe()


class TestNotificationService:
    """Tests for the one-shot REST summary."""

    async def test_get_summary(self, db_session, test_user, test_user_2):
        service = ConversationService(db_session)
        conversation_id = await service.get_or_create_conversation(test_user.id, test_user_2.id)
        await service.send_message(conversation_id, test_user.id, test_user_2.id, "Hello")
        await service.send_message(conversation_id, test_user.id, test_user_2.id, "Anyone?")

        summary = await NotificationService(db_session).get_summary(test_user_2.id)

        assert summary == NotificationSummary(
            unread_conversation_count=1,
            total_unread_messages=2,
            pending_requests_count=1,
        )

    async def test_get_summary_uses_cache(self, db_session, test_user, mocker):
        cached = {"unread_conversation_count": 3, "total_unread_messages": 9, "pending_requests_count": 0}
        mocker.patch(
            "sortmyai.services.notification_service.get_cached_notification_summary",
            mocker.AsyncMock(return_value=cached),
        )

        summary = await NotificationService(db_session).get_summary(test_user.id)

        assert summary.total_unread_messages == 9

    async def test_get_summary_caches_result(self, db_session, test_user, mocker):
        cache_mock = mocker.patch(
            "sortmyai.services.notification_service.cache_notification_summary",
            mocker.AsyncMock(return_value=True),
        )

        await NotificationService(db_session).get_summary(test_user.id)

        cache_mock.assert_awaited_once_with(test_user.id, NotificationSummary().model_dump())
