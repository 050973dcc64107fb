"""
Conversation repository for database operations.
"""
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.models.conversation import Conversation
from sortmyai.repositories.base import BaseRepository
from sortmyai.utils.helpers import conversation_key, sorted_pair


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for conversation operations."""

    def __init__(self, db: AsyncSession):
        """Initialize conversation repository."""
        super().__init__(Conversation, db)

    async def find_by_pair(self, user_a: str, user_b: str) -> Optional[Conversation]:
        """
        Find the conversation between two users, in either order.

        Example:
            ```python
            conv = await conversation_repo.find_by_pair(user1_id, user2_id)
            ```
        """
        return await self.get(conversation_key(user_a, user_b))

    async def create_for_pair(self, user_a: str, user_b: str) -> Conversation:
        """
        Insert a conversation for the pair with no request status.

        Raises:
            sqlalchemy.exc.IntegrityError: If the pair already has one
        """
        first, second = sorted_pair(user_a, user_b)
        return await self.create(
            id=conversation_key(first, second),
            participant_a=first,
            participant_b=second,
        )

    async def get_user_conversations(self, user_id: str) -> List[Conversation]:
        """All conversations the user takes part in (unordered)."""
        result = await self.db.execute(
            select(Conversation).where(
                or_(
                    Conversation.participant_a == user_id,
                    Conversation.participant_b == user_id,
                )
            )
        )
        return list(result.scalars().all())
