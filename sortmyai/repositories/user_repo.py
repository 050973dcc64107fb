"""
User repository for database operations.
Handles user lookup, identity sync, search and counter maintenance.
"""
from typing import Optional, List, Dict, Any

from sqlalchemy import case, select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.models.user import User
from sortmyai.repositories.base import BaseRepository
from sortmyai.utils.datetime_utils import utc_now


class UserRepository(BaseRepository[User]):
    """Repository for user database operations."""

    def __init__(self, db: AsyncSession):
        """Initialize user repository."""
        super().__init__(User, db)

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.username) == username.lower())
        )
        return result.scalar_one_or_none()

    async def upsert_from_claims(self, user_id: str, claims: Dict[str, Any]) -> User:
        """
        Insert or refresh a user from identity token claims.

        Only claims that are present overwrite local values; a missing claim
        never blanks a field the user already has.

        Args:
            user_id: Opaque user id (token subject)
            claims: Decoded token payload

        Returns:
            The persisted user

        Example:
            ```python
            user = await user_repo.upsert_from_claims(
                "uid-123", {"username": "ada", "name": "Ada L."}
            )
            ```
        """
        fields = {
            "username": claims.get("username"),
            "display_name": claims.get("name"),
            "avatar_url": claims.get("picture"),
        }
        fields = {key: value for key, value in fields.items() if value}

        user = await self.get(user_id)
        now = utc_now()

        if user is None:
            return await self.create(id=user_id, last_synced_at=now, **fields)

        for key, value in fields.items():
            setattr(user, key, value)
        user.last_synced_at = now
        await self.db.flush()
        return user

    async def search(self, query: str, limit: int = 20) -> List[User]:
        """
        Search users by username or display name prefix/substring.

        Args:
            query: Search text (case-insensitive)
            limit: Maximum number of results
        """
        # Wildcards typed by the user match literally
        escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        result = await self.db.execute(
            select(User)
            .where(
                func.lower(User.username).like(pattern, escape="\\")
                | func.lower(User.display_name).like(pattern, escape="\\")
            )
            .order_by(User.followers_count.desc(), User.username)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_fresh(self, ids: Optional[List[str]] = None) -> List[User]:
        """
        Load users, overwriting any stale copies held by the session.

        Counter updates bypass the identity map, so anything that compares
        counters must read them through here.
        """
        query = select(User).order_by(User.id).execution_options(populate_existing=True)
        if ids is not None:
            query = query.where(User.id.in_(ids))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def adjust_counters(self, user_id: str, followers: int = 0, following: int = 0) -> None:
        """
        Atomically shift a user's follow counters.

        The arithmetic runs in the database (`c = c + delta`), never as a
        read-then-write. Counters are floored at zero.
        """
        values = {}
        if followers:
            values["followers_count"] = _shifted(User.followers_count, followers)
        if following:
            values["following_count"] = _shifted(User.following_count, following)
        if not values:
            return

        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def get_counters(self, user_id: str) -> Optional[Dict[str, int]]:
        result = await self.db.execute(
            select(User.followers_count, User.following_count).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return {"followers_count": row.followers_count, "following_count": row.following_count}


def _shifted(column, delta: int):
    if delta > 0:
        return column + delta
    return case((column + delta > 0, column + delta), else_=0)
