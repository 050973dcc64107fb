"""
Follow service: the relationship ledger.

Maintains the directed follow graph and the denormalized follower/following
counters on each user. An edge insert or delete and both counter updates
always commit in one transaction, so the counters cannot drift through a
partially applied follow. reconcile_counters repairs rows that drifted
some other way (manual edits, imported data).
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.core.cache import invalidate_user_profile
from sortmyai.core.exceptions import (
    AlreadyFollowingError,
    BackendError,
    NotFollowingError,
    NotFoundError,
    SelfFollowError,
    wrap_store_errors,
)
from sortmyai.models.user import User
from sortmyai.repositories.follow_repo import FollowRepository
from sortmyai.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)


class FollowService:
    """Service for follow graph operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize follow service.

        Args:
            db: Database session
        """
        self.db = db
        self.user_repo = UserRepository(db)
        self.follow_repo = FollowRepository(db)

    async def _require_user(self, user_id: str) -> User:
        user = await self.user_repo.get(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def _counters(self, *users: User) -> Dict[str, Dict[str, int]]:
        """Reload the counters of the given users after a committed update."""
        counters = {}
        for user in users:
            await self.db.refresh(user, attribute_names=["followers_count", "following_count"])
            counters[user.id] = {
                "followers_count": user.followers_count,
                "following_count": user.following_count,
            }
        return counters

    async def _invalidate_profiles(self, *user_ids: str) -> None:
        for user_id in user_ids:
            try:
                await invalidate_user_profile(user_id)
            except Exception as e:
                logger.warning(f"Failed to invalidate profile cache for {user_id}: {e}")

    @wrap_store_errors("follow user")
    async def follow(self, actor_id: str, target_id: str) -> Dict[str, Any]:
        """
        Make actor follow target.

        Args:
            actor_id: User who follows
            target_id: User to follow

        Returns:
            Dict with the updated "actor" and "target" counters

        Raises:
            SelfFollowError: actor_id == target_id
            NotFoundError: Either user does not exist
            AlreadyFollowingError: The edge already exists
            BackendError: Store failure (nothing is written)
        """
        if actor_id == target_id:
            raise SelfFollowError("You cannot follow yourself")

        target = await self._require_user(target_id)
        actor = await self._require_user(actor_id)

        if await self.follow_repo.exists(actor_id, target_id):
            raise AlreadyFollowingError(f"Already following user {target_id}")

        try:
            await self.follow_repo.add(actor_id, target_id)
            await self.user_repo.adjust_counters(actor_id, following=1)
            await self.user_repo.adjust_counters(target_id, followers=1)
            await self.db.commit()
        except IntegrityError:
            # A concurrent identical follow won the insert
            await self.db.rollback()
            raise AlreadyFollowingError(f"Already following user {target_id}")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Follow {actor_id} -> {target_id} failed: {e}", exc_info=True)
            raise BackendError("Failed to follow user") from e

        logger.info(f"User {actor_id} followed {target_id}")
        await self._invalidate_profiles(actor_id, target_id)

        counters = await self._counters(actor, target)
        return {"actor": counters[actor_id], "target": counters[target_id]}

    @wrap_store_errors("unfollow user")
    async def unfollow(self, actor_id: str, target_id: str) -> Dict[str, Any]:
        """
        Remove the actor -> target edge.

        Counters are decremented in the same transaction and never go
        below zero.

        Raises:
            NotFollowingError: The edge does not exist
            BackendError: Store failure (nothing is written)
        """
        try:
            removed = await self.follow_repo.remove(actor_id, target_id)
            if not removed:
                await self.db.rollback()
                raise NotFollowingError(f"Not following user {target_id}")

            await self.user_repo.adjust_counters(actor_id, following=-1)
            await self.user_repo.adjust_counters(target_id, followers=-1)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Unfollow {actor_id} -> {target_id} failed: {e}", exc_info=True)
            raise BackendError("Failed to unfollow user") from e

        logger.info(f"User {actor_id} unfollowed {target_id}")
        await self._invalidate_profiles(actor_id, target_id)

        actor = await self._require_user(actor_id)
        target = await self._require_user(target_id)
        counters = await self._counters(actor, target)
        return {"actor": counters[actor_id], "target": counters[target_id]}

    @wrap_store_errors("read follow state")
    async def is_following(self, actor_id: str, target_id: str) -> bool:
        """True when actor follows target; False for unknown users."""
        return await self.follow_repo.exists(actor_id, target_id)

    @wrap_store_errors("list followers")
    async def list_followers(self, target_id: str) -> List[User]:
        """Users following target_id (empty for unknown users)."""
        return await self.follow_repo.list_followers(target_id)

    @wrap_store_errors("list following")
    async def list_following(self, actor_id: str) -> List[User]:
        """Users actor_id follows (empty for unknown users)."""
        return await self.follow_repo.list_following(actor_id)

    @wrap_store_errors("list following")
    async def get_following_ids(self, actor_id: str) -> List[str]:
        return await self.follow_repo.get_following_ids(actor_id)

    @wrap_store_errors("read follow stats")
    async def get_follow_stats(
        self,
        user_id: str,
        viewer_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Counters for a profile header.

        Args:
            user_id: Profile owner
            viewer_id: Current user, to report whether they follow the owner

        Raises:
            NotFoundError: Unknown user
        """
        counters = await self.user_repo.get_counters(user_id)
        if counters is None:
            raise NotFoundError(f"User {user_id} not found")

        is_followed = False
        if viewer_id and viewer_id != user_id:
            is_followed = await self.follow_repo.exists(viewer_id, user_id)

        return {"user_id": user_id, **counters, "is_followed_by_viewer": is_followed}

    @wrap_store_errors("reconcile follow counters")
    async def reconcile_counters(self, user_id: Optional[str] = None) -> int:
        """
        Recompute follow counters from the edge table.

        Args:
            user_id: Reconcile a single user, or every user when None

        Returns:
            Number of users whose counters were corrected
        """
        followers = await self.follow_repo.count_followers_by_user()
        following = await self.follow_repo.count_following_by_user()

        if user_id is not None:
            await self._require_user(user_id)
            users = await self.user_repo.list_fresh([user_id])
        else:
            users = await self.user_repo.list_fresh()

        corrected = []
        try:
            for user in users:
                expected_followers = followers.get(user.id, 0)
                expected_following = following.get(user.id, 0)
                if (user.followers_count, user.following_count) == (expected_followers, expected_following):
                    continue

                logger.warning(
                    f"Counter drift for user {user.id}: "
                    f"followers {user.followers_count}->{expected_followers}, "
                    f"following {user.following_count}->{expected_following}"
                )
                user.followers_count = expected_followers
                user.following_count = expected_following
                corrected.append(user.id)

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BackendError("Failed to reconcile follow counters") from e

        if corrected:
            logger.info(f"Reconciled follow counters for {len(corrected)} user(s)")
            await self._invalidate_profiles(*corrected)
        return len(corrected)
