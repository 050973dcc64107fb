"""
User service: profiles, search and identity sync.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.core.cache import cache_user_profile, get_cached_user_profile, invalidate_user_profile
from sortmyai.core.exceptions import BackendError, NotFoundError, wrap_store_errors
from sortmyai.models.user import User
from sortmyai.repositories.follow_repo import FollowRepository
from sortmyai.repositories.user_repo import UserRepository
from sortmyai.schemas.user import UserResponse

logger = logging.getLogger(__name__)


class UserService:
    """Service for user profile operations."""

    def __init__(self, db: AsyncSession):
        """Initialize user service."""
        self.db = db
        self.user_repo = UserRepository(db)
        self.follow_repo = FollowRepository(db)

    async def sync_from_claims(self, user_id: str, claims: Dict[str, Any]) -> User:
        """
        Create or refresh the local user from identity token claims.

        Args:
            user_id: Token subject
            claims: Decoded token payload

        Returns:
            The local user record
        """
        try:
            user = await self.user_repo.upsert_from_claims(user_id, claims)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to sync user {user_id}: {e}", exc_info=True)
            raise BackendError("Failed to sync user") from e

        # Cached profiles carry the identity fields just overwritten
        try:
            await invalidate_user_profile(user_id)
        except Exception as e:
            logger.warning(f"Failed to invalidate profile cache for {user_id}: {e}")
        return user

    @wrap_store_errors("load user")
    async def get_user(self, user_id: str) -> User:
        user = await self.user_repo.get(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @wrap_store_errors("load profile")
    async def get_profile(self, user_id: str, viewer_id: Optional[str] = None) -> UserResponse:
        """
        Public profile with counters and the ids the user follows.

        The viewer-independent part is cached; `is_following` is always
        read from the store.
        """
        cached = await get_cached_user_profile(user_id)
        if cached:
            profile = UserResponse.model_validate(cached)
        else:
            users = await self.user_repo.list_fresh([user_id])
            if not users:
                raise NotFoundError(f"User {user_id} not found")

            profile = UserResponse.model_validate(users[0])
            profile.following = await self.follow_repo.get_following_ids(user_id)
            await cache_user_profile(user_id, profile.model_dump(mode="json"))

        if viewer_id and viewer_id != user_id:
            profile.is_following = await self.follow_repo.exists(viewer_id, user_id)
        return profile

    @wrap_store_errors("search users")
    async def search_users(self, query: Optional[str], limit: int = 20) -> List[User]:
        """Search by username or display name; an empty query returns nothing."""
        if not query or not query.strip():
            return []
        return await self.user_repo.search(query.strip(), limit=limit)
