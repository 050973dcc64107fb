"""
Conversation service containing business logic for direct conversations.

Covers the message-request lifecycle:

    (none) -> created (status unset) -> pending (first message)
           -> accepted | rejected (answer from the recipient)

plus message sending, read receipts and the per-user inbox previews.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.config import settings
from sortmyai.core.cache import invalidate_notification_summary
from sortmyai.core.events import ChangeKind, publish_change
from sortmyai.core.exceptions import (
    BackendError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
    wrap_store_errors,
)
from sortmyai.core.websocket import connection_manager
from sortmyai.models.conversation import Conversation, ConversationStatus
from sortmyai.models.message import AttachmentType, Message
from sortmyai.repositories.conversation_repo import ConversationRepository
from sortmyai.repositories.message_repo import MessageRepository
from sortmyai.repositories.user_repo import UserRepository
from sortmyai.schemas.conversation import MessagePreview, RequestDecision
from sortmyai.utils.datetime_utils import newest_first_key, utc_now
from sortmyai.utils.helpers import conversation_key

logger = logging.getLogger(__name__)

REQUEST_SENT_TEXT = "You sent a message request"
REQUEST_RECEIVED_TEXT = "Sent you a message request"
NO_MESSAGES_TEXT = "No messages yet"


class ConversationService:
    """Service for conversation operations with business logic."""

    def __init__(self, db: AsyncSession, enforce_requests: Optional[bool] = None):
        """
        Initialize conversation service.

        Args:
            db: Database session
            enforce_requests: Override the configured message request policy
        """
        self.db = db
        self.conversation_repo = ConversationRepository(db)
        self.message_repo = MessageRepository(db)
        self.user_repo = UserRepository(db)
        self.ws_manager = connection_manager
        self.enforce_requests = (
            settings.enforce_message_requests if enforce_requests is None else enforce_requests
        )

    async def _require_conversation(self, conversation_id: str) -> Conversation:
        conversation = await self.conversation_repo.get(conversation_id)
        if not conversation:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    async def _require_participant(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = await self._require_conversation(conversation_id)
        if not conversation.has_participant(user_id):
            raise NotAuthorizedError("You are not a participant in this conversation")
        return conversation

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise BackendError(f"Failed to {action}") from e

    async def _notify_change(
        self,
        kind: ChangeKind,
        conversation: Conversation,
        **payload
    ) -> None:
        """Publish a committed change and drop both participants' cached summaries."""
        publish_change(kind, conversation.id, tuple(conversation.participants), **payload)
        for user_id in conversation.participants:
            try:
                await invalidate_notification_summary(user_id)
            except Exception as e:
                logger.warning(f"Failed to invalidate notification cache for {user_id}: {e}")

    def _check_send_allowed(self, conversation: Conversation, sender_id: str) -> None:
        """Server-side request gate (only under the enforce policy)."""
        if not self.enforce_requests:
            return

        if conversation.status == ConversationStatus.REJECTED:
            raise InvalidStateError("This message request was declined")

        if (
            conversation.status == ConversationStatus.PENDING
            and conversation.requester_id != sender_id
        ):
            raise InvalidStateError("Accept the message request before replying")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @wrap_store_errors("open conversation")
    async def get_or_create_conversation(self, user_a: str, user_b: str) -> str:
        """
        Return the id of the conversation between two users, creating it
        if needed.

        The id is derived from the sorted pair, so both argument orders
        give the same conversation. An existing conversation is returned
        whatever its status.

        Raises:
            ValidationError: user_a == user_b
            NotFoundError: Either user does not exist
        """
        if user_a == user_b:
            raise ValidationError("Cannot start a conversation with yourself")

        for user_id in (user_a, user_b):
            if not await self.user_repo.exists(user_id):
                raise NotFoundError(f"User {user_id} not found")

        existing = await self.conversation_repo.find_by_pair(user_a, user_b)
        if existing:
            return existing.id

        try:
            conversation = await self.conversation_repo.create_for_pair(user_a, user_b)
            await self.db.commit()
        except IntegrityError:
            # Created concurrently by the other participant
            await self.db.rollback()
            return conversation_key(user_a, user_b)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BackendError("Failed to create conversation") from e

        logger.info(f"Conversation {conversation.id} created between {user_a} and {user_b}")
        await self._notify_change(ChangeKind.CONVERSATION_CREATED, conversation)
        return conversation.id

    @wrap_store_errors("send message")
    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        receiver_id: str,
        content: str,
        attachment_url: Optional[str] = None,
        attachment_type: Optional[AttachmentType] = None
    ) -> Message:
        """
        Append a message to a conversation.

        The first message turns the conversation into a pending request
        owned by the sender.

        Raises:
            NotFoundError: Conversation does not exist
            NotAuthorizedError: Sender is not a participant
            ValidationError: Receiver is not the other participant, or the
                message has neither content nor an attachment
            InvalidStateError: Blocked by the request gate
        """
        conversation = await self._require_participant(conversation_id, sender_id)

        if receiver_id != conversation.other_participant(sender_id):
            raise ValidationError("Receiver must be the other participant")

        content = content or ""
        if not content.strip() and not attachment_url:
            raise ValidationError("Message must have content or an attachment")

        self._check_send_allowed(conversation, sender_id)

        now = utc_now()
        if not conversation.has_messages:
            conversation.status = ConversationStatus.PENDING
            conversation.requester_id = sender_id

        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            attachment_url=attachment_url,
            attachment_type=attachment_type,
            read=False,
            created_at=now,
        )
        self.db.add(message)

        conversation.last_message_content = content
        conversation.last_message_sender_id = sender_id
        conversation.last_message_at = now
        conversation.updated_at = now

        await self._commit("send message")

        logger.info(f"Message {message.id} sent in conversation {conversation.id} by {sender_id}")
        await self._notify_change(
            ChangeKind.MESSAGE_CREATED,
            conversation,
            message_id=message.id,
            sender_id=sender_id,
        )

        try:
            await self.ws_manager.broadcast_new_message(conversation.id, message)
        except Exception as e:
            logger.error(f"Failed to broadcast message {message.id}: {e}", exc_info=True)

        return message

    @wrap_store_errors("respond to message request")
    async def respond_to_request(
        self,
        conversation_id: str,
        responder_id: str,
        decision: RequestDecision
    ) -> Conversation:
        """
        Accept or reject a pending message request.

        Authorization is checked before state: a requester answering their
        own request is refused even when the request is no longer pending.

        Raises:
            NotFoundError: Conversation does not exist
            NotAuthorizedError: Responder is not a participant, or is the requester
            InvalidStateError: Conversation is not pending
        """
        conversation = await self._require_participant(conversation_id, responder_id)

        if conversation.requester_id == responder_id:
            raise NotAuthorizedError("You cannot respond to your own message request")

        if conversation.status != ConversationStatus.PENDING:
            raise InvalidStateError("This conversation has no pending request")

        decision = RequestDecision(decision)
        conversation.status = (
            ConversationStatus.ACCEPTED
            if decision == RequestDecision.ACCEPT
            else ConversationStatus.REJECTED
        )
        conversation.updated_at = utc_now()

        await self._commit("respond to message request")

        logger.info(f"Request {conversation.id} {conversation.status.value} by {responder_id}")
        await self._notify_change(
            ChangeKind.CONVERSATION_UPDATED,
            conversation,
            status=conversation.status.value,
        )
        return conversation

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @wrap_store_errors("load conversation")
    async def get_conversation(self, conversation_id: str, user_id: str) -> Conversation:
        """Participant-only read of a conversation."""
        return await self._require_participant(conversation_id, user_id)

    @wrap_store_errors("load messages")
    async def get_messages(
        self,
        conversation_id: str,
        user_id: str,
        limit: int = 100
    ) -> List[Message]:
        """Latest messages of a conversation, oldest first."""
        await self._require_participant(conversation_id, user_id)
        return await self.message_repo.get_conversation_messages(conversation_id, limit=limit)

    async def get_message_previews(self, user_id: str) -> List[MessagePreview]:
        """
        Inbox previews for every conversation the user takes part in,
        newest first.

        Args:
            user_id: Viewing user

        Returns:
            One MessagePreview per conversation
        """
        try:
            conversations = await self.conversation_repo.get_user_conversations(user_id)
            unread = await self.message_repo.get_unread_counts(
                user_id, [conversation.id for conversation in conversations]
            )
            counterparts = {
                user.id: user
                for user in await self.user_repo.get_many(
                    [conversation.other_participant(user_id) for conversation in conversations]
                )
            }
        except SQLAlchemyError as e:
            raise BackendError("Failed to load conversations") from e

        previews = []
        for conversation in conversations:
            other_id = conversation.other_participant(user_id)
            other = counterparts.get(other_id)
            is_requester = conversation.requester_id == user_id

            previews.append(MessagePreview(
                conversation_id=conversation.id,
                participant_id=other_id,
                participant_name=other.name if other else "User",
                participant_avatar=other.avatar_url if other else None,
                last_message=_last_message_text(conversation, is_requester),
                timestamp=conversation.last_message_at or conversation.updated_at,
                unread_count=unread.get(conversation.id, 0),
                status=conversation.status,
                is_requester=is_requester,
            ))

        previews.sort(key=lambda preview: newest_first_key(preview.timestamp))
        return previews

    # ------------------------------------------------------------------
    # Read receipts
    # ------------------------------------------------------------------

    @wrap_store_errors("mark message read")
    async def mark_message_read(self, message_id: str, user_id: str) -> Message:
        """
        Mark one message read. Only its receiver may do so; repeating the
        call is a no-op.

        Raises:
            NotFoundError: Message does not exist
            NotAuthorizedError: user_id is not the receiver
        """
        message = await self.message_repo.get(message_id)
        if not message:
            raise NotFoundError(f"Message {message_id} not found")

        if message.receiver_id != user_id:
            raise NotAuthorizedError("Only the receiver can mark a message as read")

        if message.read:
            return message

        message.read = True
        await self._commit("mark message read")

        conversation = await self._require_conversation(message.conversation_id)
        await self._notify_change(ChangeKind.MESSAGES_READ, conversation, reader_id=user_id, count=1)
        return message

    @wrap_store_errors("mark conversation read")
    async def mark_conversation_read(self, conversation_id: str, user_id: str) -> int:
        """
        Mark every unread message addressed to user_id as read.

        Returns:
            Number of messages flipped
        """
        conversation = await self._require_participant(conversation_id, user_id)

        try:
            count = await self.message_repo.mark_conversation_read(conversation_id, user_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BackendError("Failed to mark conversation read") from e

        if count > 0:
            logger.info(f"Marked {count} message(s) read in {conversation_id} for {user_id}")
            await self._notify_change(
                ChangeKind.MESSAGES_READ, conversation, reader_id=user_id, count=count
            )
        return count


def _last_message_text(conversation: Conversation, is_requester: bool) -> str:
    """Inbox line for a conversation, with fallbacks when there is no text."""
    if conversation.last_message_content:
        return conversation.last_message_content

    if conversation.status == ConversationStatus.PENDING:
        return REQUEST_SENT_TEXT if is_requester else REQUEST_RECEIVED_TEXT

    return NO_MESSAGES_TEXT
