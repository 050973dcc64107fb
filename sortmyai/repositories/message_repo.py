"""
Message repository for database operations.
"""
from typing import Dict, List

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.models.message import Message
from sortmyai.repositories.base import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """Repository for message operations."""

    def __init__(self, db: AsyncSession):
        """Initialize message repository."""
        super().__init__(Message, db)

    async def get_conversation_messages(
        self,
        conversation_id: str,
        limit: int = 100,
        ascending: bool = True
    ) -> List[Message]:
        """
        Get the latest messages of a conversation.

        Args:
            conversation_id: Conversation id
            limit: Maximum messages to return
            ascending: Return oldest first (chat order) when True

        Returns:
            Up to `limit` most recent messages
        """
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        messages = list(result.scalars().all())
        if ascending:
            messages.reverse()
        return messages

    async def get_unread_counts(
        self,
        user_id: str,
        conversation_ids: List[str]
    ) -> Dict[str, int]:
        """
        Unread messages addressed to user_id, per conversation.

        Conversations without unread messages are absent from the result.
        """
        if not conversation_ids:
            return {}

        result = await self.db.execute(
            select(Message.conversation_id, func.count())
            .where(
                and_(
                    Message.conversation_id.in_(conversation_ids),
                    Message.receiver_id == user_id,
                    Message.read.is_(False),
                )
            )
            .group_by(Message.conversation_id)
        )
        return {conversation_id: count for conversation_id, count in result.all()}

    async def mark_conversation_read(self, conversation_id: str, user_id: str) -> int:
        """
        Flip every unread message addressed to user_id.

        Returns:
            Number of messages flipped
        """
        result = await self.db.execute(
            update(Message)
            .where(
                and_(
                    Message.conversation_id == conversation_id,
                    Message.receiver_id == user_id,
                    Message.read.is_(False),
                )
            )
            .values(read=True)
        )
        return result.rowcount or 0
