"""
WebSocket manager for real-time messaging.
Handles Socket.IO connections, conversation rooms, live notification
summaries and message broadcasting.
"""
import logging
from typing import Any, Dict, Optional, Set

import socketio

from sortmyai.config import settings
from sortmyai.schemas.message import MessageResponse

logger = logging.getLogger(__name__)


def conversation_room(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


class ConnectionManager:
    """
    WebSocket connection manager using Socket.IO.

    Each authenticated socket gets a live notification subscription whose
    summaries are pushed as `notification_summary` events.
    """

    def __init__(self, aggregator=None):
        """
        Initialize the connection manager.

        Args:
            aggregator: NotificationAggregator (created lazily when omitted)
        """
        cors_origins = settings.get_allowed_origins_list() or "*"

        self.sio = socketio.AsyncServer(
            async_mode='asgi',
            cors_allowed_origins=cors_origins,
            logger=False,
            engineio_logger=False,
            ping_timeout=settings.ws_heartbeat_interval,
            ping_interval=max(settings.ws_heartbeat_interval // 2, 1),
        )
        self._aggregator = aggregator

        # Track connections: {sid: user_id}
        self.connections: Dict[str, str] = {}

        # Track user sessions: {user_id: set of sids}
        self.user_sessions: Dict[str, Set[str]] = {}

        # Live notification subscriptions: {sid: NotificationSubscription}
        self.subscriptions: Dict[str, Any] = {}

        self._setup_handlers()

    @property
    def aggregator(self):
        if self._aggregator is None:
            from sortmyai.services.notification_service import NotificationAggregator
            self._aggregator = NotificationAggregator()
        return self._aggregator

    async def _emit_error(self, sid: str, message: str) -> None:
        await self.sio.emit('error', {'message': message}, to=sid)

    async def _is_participant(self, conversation_id: str, user_id: str) -> bool:
        from sortmyai.core.database import AsyncSessionLocal
        from sortmyai.repositories.conversation_repo import ConversationRepository

        async with AsyncSessionLocal() as db:
            conversation = await ConversationRepository(db).get(conversation_id)
            return bool(conversation and conversation.has_participant(user_id))

    async def handle_connect(self, sid: str, environ: dict, auth: Optional[dict]) -> bool:
        """
        Authenticate a socket and start its notification subscription.

        Client must provide {'token': <identity token>} in the handshake.
        """
        token = auth.get('token') if auth else None
        if not token:
            logger.warning(f"Connection rejected - no token: {sid}")
            return False

        from sortmyai.core.exceptions import AuthenticationError
        from sortmyai.core.security import decode_token

        try:
            payload = decode_token(token)
        except AuthenticationError as e:
            logger.warning(f"Connection rejected - {e}: {sid}")
            return False

        user_id = payload["sub"]

        try:
            from sortmyai.core.database import AsyncSessionLocal
            from sortmyai.services.user_service import UserService

            async with AsyncSessionLocal() as db:
                await UserService(db).sync_from_claims(user_id, payload)

            async def push_summary(summary):
                await self.sio.emit(
                    'notification_summary',
                    summary.model_dump(by_alias=True),
                    to=sid
                )

            self.subscriptions[sid] = await self.aggregator.subscribe(user_id, push_summary)
        except Exception as e:
            logger.error(f"Connection error for {sid}: {type(e).__name__}: {e}", exc_info=True)
            return False

        self.connections[sid] = user_id
        self.user_sessions.setdefault(user_id, set()).add(sid)
        logger.info(f"Client connected: {sid} (user: {user_id})")
        return True

    async def handle_disconnect(self, sid: str) -> None:
        subscription = self.subscriptions.pop(sid, None)
        if subscription:
            await subscription.unsubscribe()

        user_id = self.connections.pop(sid, None)
        if user_id and user_id in self.user_sessions:
            self.user_sessions[user_id].discard(sid)
            if not self.user_sessions[user_id]:
                del self.user_sessions[user_id]

        logger.info(f"Client disconnected: {sid} (user: {user_id})")

    async def handle_join_conversation(self, sid: str, data: dict) -> None:
        """
        Join a conversation room.

        Expected data: {'conversation_id': '...'}
        """
        user_id = self.connections.get(sid)
        if not user_id:
            await self._emit_error(sid, 'Unauthorized')
            return

        conversation_id = (data or {}).get('conversation_id')
        if not conversation_id or not await self._is_participant(conversation_id, user_id):
            await self._emit_error(sid, 'Not a participant in this conversation')
            return

        await self.sio.enter_room(sid, conversation_room(conversation_id))
        await self.sio.emit('joined_conversation', {'conversation_id': conversation_id}, to=sid)

    async def handle_leave_conversation(self, sid: str, data: dict) -> None:
        conversation_id = (data or {}).get('conversation_id')
        if not conversation_id:
            return

        await self.sio.leave_room(sid, conversation_room(conversation_id))
        await self.sio.emit('left_conversation', {'conversation_id': conversation_id}, to=sid)

    async def handle_open_conversation(self, sid: str, data: dict) -> None:
        """
        The user is looking at a conversation: clear its badge locally.

        Expected data: {'conversation_id': '...'}
        """
        subscription = self.subscriptions.get(sid)
        conversation_id = (data or {}).get('conversation_id')
        if subscription and conversation_id:
            await subscription.clear_notifications_for_conversation(conversation_id)

    def _setup_handlers(self):
        """Setup Socket.IO event handlers."""

        @self.sio.event
        async def connect(sid, environ, auth=None):
            return await self.handle_connect(sid, environ, auth)

        @self.sio.event
        async def disconnect(sid, *args):
            await self.handle_disconnect(sid)

        @self.sio.event
        async def join_conversation(sid, data):
            try:
                await self.handle_join_conversation(sid, data)
            except Exception as e:
                logger.error(f"Error joining conversation: {e}", exc_info=True)
                await self._emit_error(sid, 'Failed to join conversation')

        @self.sio.event
        async def leave_conversation(sid, data):
            try:
                await self.handle_leave_conversation(sid, data)
            except Exception as e:
                logger.error(f"Error leaving conversation: {e}")

        @self.sio.event
        async def open_conversation(sid, data):
            try:
                await self.handle_open_conversation(sid, data)
            except Exception as e:
                logger.error(f"Error in open_conversation: {e}")

    async def broadcast_new_message(self, conversation_id: str, message) -> None:
        """
        Broadcast a new message to everyone in the conversation room
        (sender included).

        Args:
            conversation_id: Conversation ID
            message: Message model instance
        """
        payload = MessageResponse.model_validate(message).model_dump(mode="json", by_alias=True)
        await self.sio.emit('new_message', payload, room=conversation_room(conversation_id))
        logger.debug(f"Broadcast message {payload['id']} to {conversation_room(conversation_id)}")

    async def close(self) -> None:
        """Stop every live subscription (app shutdown)."""
        for sid in list(self.subscriptions):
            await self.handle_disconnect(sid)

    def get_asgi_app(self, fastapi_app):
        """
        Get the ASGI app for Socket.IO wrapping FastAPI.

        Socket.IO wraps FastAPI, not the other way around; clients connect
        to /socket.io/ and every other path falls through to FastAPI.
        """
        return socketio.ASGIApp(self.sio, fastapi_app)


# Global connection manager instance
connection_manager = ConnectionManager()
