"""
Follow repository.
Edge storage and enumeration for the follow graph.
"""
from typing import Dict, List

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.models.follow import Follow
from sortmyai.models.user import User


class FollowRepository:
    """Repository for follow edges (composite key, so no BaseRepository)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, follower_id: str, followee_id: str) -> Follow:
        """
        Insert an edge and flush.

        Raises:
            sqlalchemy.exc.IntegrityError: If the edge already exists
        """
        edge = Follow(follower_id=follower_id, followee_id=followee_id)
        self.db.add(edge)
        await self.db.flush()
        return edge

    async def remove(self, follower_id: str, followee_id: str) -> bool:
        """
        Delete an edge.

        Returns:
            True if a row was deleted
        """
        result = await self.db.execute(
            delete(Follow).where(
                and_(
                    Follow.follower_id == follower_id,
                    Follow.followee_id == followee_id,
                )
            )
        )
        return result.rowcount > 0

    async def exists(self, follower_id: str, followee_id: str) -> bool:
        result = await self.db.execute(
            select(func.count()).select_from(Follow).where(
                and_(
                    Follow.follower_id == follower_id,
                    Follow.followee_id == followee_id,
                )
            )
        )
        return result.scalar() > 0

    async def get_following_ids(self, follower_id: str) -> List[str]:
        result = await self.db.execute(
            select(Follow.followee_id)
            .where(Follow.follower_id == follower_id)
            .order_by(Follow.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_followers(self, followee_id: str) -> List[User]:
        """Users following followee_id, most recent first."""
        result = await self.db.execute(
            select(User)
            .join(Follow, Follow.follower_id == User.id)
            .where(Follow.followee_id == followee_id)
            .order_by(Follow.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_following(self, follower_id: str) -> List[User]:
        """Users followed by follower_id, most recent first."""
        result = await self.db.execute(
            select(User)
            .join(Follow, Follow.followee_id == User.id)
            .where(Follow.follower_id == follower_id)
            .order_by(Follow.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_followers_by_user(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Follow.followee_id, func.count()).group_by(Follow.followee_id)
        )
        return {user_id: count for user_id, count in result.all()}

    async def count_following_by_user(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Follow.follower_id, func.count()).group_by(Follow.follower_id)
        )
        return {user_id: count for user_id, count in result.all()}
