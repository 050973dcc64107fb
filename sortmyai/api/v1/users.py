"""
User API routes.
Profiles, search and the follow graph.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.core.database import get_db
from sortmyai.dependencies import get_current_user
from sortmyai.models.user import User
from sortmyai.schemas.follow import FollowResponse, FollowStatusResponse
from sortmyai.schemas.user import UserListResponse, UserResponse, UserSummary
from sortmyai.services.follow_service import FollowService
from sortmyai.services.user_service import UserService

router = APIRouter()


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Profile of the authenticated user, including follow counters."
)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await UserService(db).get_profile(current_user.id)


@router.get(
    "/",
    response_model=UserListResponse,
    summary="Search users",
    description="Search users by username or display name."
)
async def search_users(
    q: Optional[str] = Query(None, description="Search text"),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    users = await UserService(db).search_users(q, limit=limit)
    return UserListResponse(
        data=[UserSummary.model_validate(user) for user in users],
        total=len(users)
    )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user profile",
    description="Public profile with counters, the ids the user follows and whether you follow them."
)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await UserService(db).get_profile(user_id, viewer_id=current_user.id)


@router.post(
    "/{user_id}/follow",
    response_model=FollowResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Follow a user"
)
async def follow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Follow a user.

    - **400**: following yourself
    - **404**: unknown user
    - **409**: already following
    """
    result = await FollowService(db).follow(current_user.id, user_id)
    return FollowResponse(**result, is_following=True)


@router.delete(
    "/{user_id}/follow",
    response_model=FollowResponse,
    summary="Unfollow a user"
)
async def unfollow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Unfollow a user (**409** when not following)."""
    result = await FollowService(db).unfollow(current_user.id, user_id)
    return FollowResponse(**result, is_following=False)


@router.get(
    "/{user_id}/follow",
    response_model=FollowStatusResponse,
    summary="Check follow status"
)
async def get_follow_status(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    is_following = await FollowService(db).is_following(current_user.id, user_id)
    return FollowStatusResponse(user_id=user_id, is_following=is_following)


@router.get(
    "/{user_id}/followers",
    response_model=List[UserSummary],
    summary="List followers"
)
async def list_followers(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await FollowService(db).list_followers(user_id)


@router.get(
    "/{user_id}/following",
    response_model=List[UserSummary],
    summary="List followed users"
)
async def list_following(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await FollowService(db).list_following(user_id)
