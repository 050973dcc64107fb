"""
Unit tests for FollowService.
Tests the follow graph and its denormalized counters.
"""
import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from sortmyai.core.exceptions import (
    AlreadyFollowingError,
    BackendError,
    NotFollowingError,
    NotFoundError,
    SelfFollowError,
)
from sortmyai.models.follow import Follow
from sortmyai.models.user import User
from sortmyai.services.follow_service import FollowService


async def _counters(db_session, user_id):
    result = await db_session.execute(
        select(User.followers_count, User.following_count).where(User.id == user_id)
    )
    row = result.one()
    return row.followers_count, row.following_count


class TestFollow:
    """Tests for follow()."""

    async def test_follow_updates_edge_and_counters(self, db_session, test_user, test_user_2):
        """Following sets the edge and bumps both counters by one."""
        service = FollowService(db_session)

        result = await service.follow(test_user.id, test_user_2.id)

        assert await service.is_following(test_user.id, test_user_2.id)
        assert result["actor"] == {"followers_count": 0, "following_count": 1}
        assert result["target"] == {"followers_count": 1, "following_count": 0}
        assert await _counters(db_session, test_user.id) == (0, 1)
        assert await _counters(db_session, test_user_2.id) == (1, 0)

    async def test_follow_is_directed(self, db_session, test_user, test_user_2):
        service = FollowService(db_session)

        await service.follow(test_user.id, test_user_2.id)

        assert not await service.is_following(test_user_2.id, test_user.id)

    async def test_follow_self_raises(self, db_session, test_user):
        """Following yourself fails without touching the store."""
        service = FollowService(db_session)

        with pytest.raises(SelfFollowError):
            await service.follow(test_user.id, test_user.id)

        assert await _counters(db_session, test_user.id) == (0, 0)
        assert not await service.is_following(test_user.id, test_user.id)

    async def test_duplicate_follow_raises_and_changes_nothing(self, db_session, test_user, test_user_2):
        service = FollowService(db_session)
        await service.follow(test_user.id, test_user_2.id)

        with pytest.raises(AlreadyFollowingError):
            await service.follow(test_user.id, test_user_2.id)

        assert await _counters(db_session, test_user.id) == (0, 1)
        assert await _counters(db_session, test_user_2.id) == (1, 0)

    async def test_follow_unknown_target_raises(self, db_session, test_user):
        service = FollowService(db_session)

        with pytest.raises(NotFoundError):
            await service.follow(test_user.id, "ghost")

    async def test_follow_unknown_actor_raises(self, db_session, test_user_2):
        service = FollowService(db_session)

        with pytest.raises(NotFoundError):
            await service.follow("ghost", test_user_2.id)

        assert await _counters(db_session, test_user_2.id) == (0, 0)

    async def test_concurrent_duplicate_maps_to_already_following(
        self, db_session, test_user, test_user_2, mocker
    ):
        """An insert race lost to an identical follow is reported as AlreadyFollowing."""
        # The rollback expires the fixtures, so keep plain ids
        actor_id, target_id = test_user.id, test_user_2.id
        service = FollowService(db_session)
        db_session.add(Follow(follower_id=actor_id, followee_id=target_id))
        await db_session.commit()

        # Pretend the pre-check ran before the other follow committed
        mocker.patch.object(service.follow_repo, "exists", mocker.AsyncMock(return_value=False))

        with pytest.raises(AlreadyFollowingError):
            await service.follow(actor_id, target_id)

        assert await _counters(db_session, actor_id) == (0, 0)
        assert await _counters(db_session, target_id) == (0, 0)

    async def test_store_failure_raises_backend_error(self, db_session, test_user, test_user_2, mocker):
        actor_id, target_id = test_user.id, test_user_2.id
        service = FollowService(db_session)
        mocker.patch.object(
            service.user_repo,
            "adjust_counters",
            mocker.AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("db down"))),
        )

        with pytest.raises(BackendError) as exc_info:
            await service.follow(actor_id, target_id)

        assert isinstance(exc_info.value.__cause__, OperationalError)
        # Rolled back: no edge written
        assert not await FollowService(db_session).is_following(actor_id, target_id)

    async def test_lookup_failure_raises_backend_error(self, db_session, mocker):
        """A store failure while loading the users is a BackendError too, not a raw 500."""
        service = FollowService(db_session)
        mocker.patch.object(
            service.user_repo,
            "get",
            mocker.AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down"))),
        )

        with pytest.raises(BackendError) as exc_info:
            await service.follow("user_a", "user_b")

        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value.__cause__, OperationalError)

    async def test_existence_check_failure_raises_backend_error(
        self, db_session, test_user, test_user_2, mocker
    ):
        service = FollowService(db_session)
        mocker.patch.object(
            service.follow_repo,
            "exists",
            mocker.AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down"))),
        )

        with pytest.raises(BackendError):
            await service.follow(test_user.id, test_user_2.id)


class TestUnfollow:
    """Tests for unfollow()."""

    async def test_follow_then_unfollow_restores_counters(self, db_session, test_user, test_user_2):
        service = FollowService(db_session)
        await service.follow(test_user.id, test_user_2.id)

        result = await service.unfollow(test_user.id, test_user_2.id)

        assert not await service.is_following(test_user.id, test_user_2.id)
        assert result["actor"]["following_count"] == 0
        assert result["target"]["followers_count"] == 0
        assert await _counters(db_session, test_user.id) == (0, 0)
        assert await _counters(db_session, test_user_2.id) == (0, 0)

    async def test_unfollow_when_not_following_raises(self, db_session, test_user, test_user_2):
        service = FollowService(db_session)

        with pytest.raises(NotFollowingError):
            await service.unfollow(test_user.id, test_user_2.id)

    async def test_unfollow_floors_counters_at_zero(self, db_session, test_user, test_user_2):
        """Drifted counters never go negative."""
        db_session.add(Follow(follower_id=test_user.id, followee_id=test_user_2.id))
        await db_session.commit()
        service = FollowService(db_session)

        await service.unfollow(test_user.id, test_user_2.id)

        assert await _counters(db_session, test_user.id) == (0, 0)
        assert await _counters(db_session, test_user_2.id) == (0, 0)


class TestReads:
    """Tests for is_following and the list operations."""

    async def test_is_following_unknown_actor_is_false(self, db_session, test_user):
        service = FollowService(db_session)

        assert await service.is_following("ghost", test_user.id) is False

    async def test_list_followers_and_following(self, db_session, test_user, test_user_2, test_user_3):
        service = FollowService(db_session)
        await service.follow(test_user.id, test_user_3.id)
        await service.follow(test_user_2.id, test_user_3.id)
        await service.follow(test_user_3.id, test_user.id)

        followers = await service.list_followers(test_user_3.id)
        following = await service.list_following(test_user_3.id)

        assert {user.id for user in followers} == {test_user.id, test_user_2.id}
        assert [user.id for user in following] == [test_user.id]

    async def test_lists_are_empty_for_unknown_user(self, db_session):
        service = FollowService(db_session)

        assert await service.list_followers("ghost") == []
        assert await service.list_following("ghost") == []

    async def test_get_follow_stats(self, db_session, test_user, test_user_2):
        service = FollowService(db_session)
        await service.follow(test_user.id, test_user_2.id)

        stats = await service.get_follow_stats(test_user_2.id, viewer_id=test_user.id)

        assert stats == {
            "user_id": test_user_2.id,
            "followers_count": 1,
            "following_count": 0,
            "is_followed_by_viewer": True,
        }

    async def test_get_follow_stats_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await FollowService(db_session).get_follow_stats("ghost")


class TestReconcileCounters:
    """Tests for reconcile_counters()."""

    async def test_reconcile_fixes_drift(self, db_session, test_user, test_user_2, test_user_3):
        service = FollowService(db_session)
        await service.follow(test_user.id, test_user_2.id)
        await db_session.execute(
            update(User).where(User.id == test_user_2.id).values(followers_count=7)
        )
        await db_session.execute(
            update(User).where(User.id == test_user_3.id).values(following_count=2)
        )
        await db_session.commit()

        corrected = await service.reconcile_counters()

        assert corrected == 2
        assert await _counters(db_session, test_user_2.id) == (1, 0)
        assert await _counters(db_session, test_user_3.id) == (0, 0)
        # Idempotent
        assert await service.reconcile_counters() == 0

    async def test_reconcile_single_user(self, db_session, test_user, test_user_2):
        await db_session.execute(
            update(User).where(User.id.in_([test_user.id, test_user_2.id])).values(followers_count=3)
        )
        await db_session.commit()
        service = FollowService(db_session)

        assert await service.reconcile_counters(test_user.id) == 1
        assert await _counters(db_session, test_user.id) == (0, 0)
        assert await _counters(db_session, test_user_2.id) == (3, 0)

    async def test_reconcile_unknown_user_raises(self, db_session):
        with pytest.raises(NotFoundError):
            await FollowService(db_session).reconcile_counters("ghost")
