"""
Pydantic schemas for user profiles.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from sortmyai.schemas.types import UTCDatetime, to_camel


class UserSummary(BaseModel):
    """Compact user identity for lists (followers, search results)."""

    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class UserResponse(UserSummary):
    """Full profile with follow counters."""

    followers_count: int = 0
    following_count: int = 0
    created_at: Optional[UTCDatetime] = None

    # Viewer-relative fields (filled by the route)
    following: List[str] = Field(default_factory=list, description="Ids this user follows")
    is_following: Optional[bool] = Field(None, description="Whether the viewer follows this user")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        json_schema_extra={
            "example": {
                "id": "uid-123",
                "username": "ada",
                "displayName": "Ada Lovelace",
                "avatarUrl": "https://example.com/ada.png",
                "followersCount": 12,
                "followingCount": 3,
                "following": ["uid-456"],
                "isFollowing": True
            }
        }
    )


class UserListResponse(BaseModel):
    data: List[UserSummary]
    total: int
