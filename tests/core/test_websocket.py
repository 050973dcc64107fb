"""
Tests for the Socket.IO connection manager.

Handlers are called directly; the Socket.IO server's emit and room calls
are mocked.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sortmyai.core.security import create_access_token
from sortmyai.core.websocket import ConnectionManager, conversation_room
from sortmyai.models.message import Message
from sortmyai.schemas.notification import NotificationSummary
from sortmyai.services.notification_service import NotificationAggregator
from sortmyai.utils.datetime_utils import utc_now


@pytest.fixture
def session_factory(test_engine, mocker):
    """Point the manager's short-lived sessions at the test database."""
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    mocker.patch("sortmyai.core.database.AsyncSessionLocal", factory)
    return factory


@pytest.fixture
def manager(mocker, change_feed):
    async def no_previews(user_id):
        return []

    manager = ConnectionManager(aggregator=NotificationAggregator(change_feed, no_previews))
    manager.sio.emit = mocker.AsyncMock()
    manager.sio.enter_room = mocker.AsyncMock()
    manager.sio.leave_room = mocker.AsyncMock()
    yield manager


class TestConnect:

    async def test_rejects_missing_token(self, manager):
        assert await manager.handle_connect("sid1", {}, None) is False
        assert await manager.handle_connect("sid1", {}, {}) is False
        assert manager.connections == {}

    async def test_rejects_invalid_token(self, manager):
        assert await manager.handle_connect("sid1", {}, {"token": "garbage"}) is False

    async def test_accepts_and_pushes_initial_summary(self, manager, session_factory, change_feed):
        token = create_access_token({"sub": "ws_user", "username": "socket"})

        accepted = await manager.handle_connect("sid1", {}, {"token": token})

        assert accepted is True
        assert manager.connections == {"sid1": "ws_user"}
        assert manager.user_sessions == {"ws_user": {"sid1"}}
        assert change_feed.watcher_count == 1
        manager.sio.emit.assert_awaited_with(
            "notification_summary",
            NotificationSummary().model_dump(by_alias=True),
            to="sid1",
        )

        await manager.handle_disconnect("sid1")

    async def test_first_connection_creates_user(self, manager, session_factory):
        token = create_access_token({"sub": "ws_user", "username": "socket"})
        await manager.handle_connect("sid1", {}, {"token": token})

        from sortmyai.models.user import User
        async with session_factory() as db:
            user = await db.get(User, "ws_user")
        assert user.username == "socket"

        await manager.handle_disconnect("sid1")


class TestDisconnect:

    async def test_stops_subscription_and_forgets_session(self, manager, session_factory, change_feed):
        token = create_access_token({"sub": "ws_user"})
        await manager.handle_connect("sid1", {}, {"token": token})

        await manager.handle_disconnect("sid1")

        assert change_feed.watcher_count == 0
        assert manager.connections == {}
        assert manager.user_sessions == {}
        assert manager.subscriptions == {}

    async def test_unknown_sid_is_ignored(self, manager):
        await manager.handle_disconnect("nobody")

    async def test_close_disconnects_everyone(self, manager, session_factory, change_feed):
        for sid in ("sid1", "sid2"):
            await manager.handle_connect(sid, {}, {"token": create_access_token({"sub": sid})})

        await manager.close()

        assert change_feed.watcher_count == 0
        assert manager.connections == {}


class TestRooms:

    async def test_join_requires_connection(self, manager):
        await manager.handle_join_conversation("sid1", {"conversation_id": "c1"})

        manager.sio.emit.assert_awaited_once_with("error", {"message": "Unauthorized"}, to="sid1")

    async def test_join_as_participant(self, manager, mocker):
        manager.connections["sid1"] = "user_a"
        mocker.patch.object(manager, "_is_participant", mocker.AsyncMock(return_value=True))

        await manager.handle_join_conversation("sid1", {"conversation_id": "c1"})

        manager.sio.enter_room.assert_awaited_once_with("sid1", conversation_room("c1"))

    async def test_join_as_outsider(self, manager, mocker):
        manager.connections["sid1"] = "user_c"
        mocker.patch.object(manager, "_is_participant", mocker.AsyncMock(return_value=False))

        await manager.handle_join_conversation("sid1", {"conversation_id": "c1"})

        manager.sio.enter_room.assert_not_awaited()
        manager.sio.emit.assert_awaited_once_with(
            "error", {"message": "Not a participant in this conversation"}, to="sid1"
        )

    async def test_leave(self, manager):
        await manager.handle_leave_conversation("sid1", {"conversation_id": "c1"})

        manager.sio.leave_room.assert_awaited_once_with("sid1", conversation_room("c1"))

    async def test_open_conversation_clears_badge(self, manager, mocker):
        subscription = mocker.AsyncMock()
        manager.subscriptions["sid1"] = subscription

        await manager.handle_open_conversation("sid1", {"conversation_id": "c1"})

        subscription.clear_notifications_for_conversation.assert_awaited_once_with("c1")


async def test_broadcast_new_message(manager):
    message = Message(
        id="m1",
        conversation_id="c1",
        sender_id="user_a",
        receiver_id="user_b",
        content="Hello",
        read=False,
        created_at=utc_now(),
    )

    await manager.broadcast_new_message("c1", message)

    event, payload = manager.sio.emit.await_args.args
    assert event == "new_message"
    assert payload["senderId"] == "user_a"
    assert payload["conversationId"] == "c1"
    assert manager.sio.emit.await_args.kwargs == {"room": conversation_room("c1")}
