"""
Pydantic schemas for follow operations.
"""
from pydantic import BaseModel, ConfigDict, Field

from sortmyai.schemas.types import to_camel


class FollowCounters(BaseModel):
    followers_count: int
    following_count: int

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class FollowResponse(BaseModel):
    """Counters of both users after a follow or unfollow."""

    actor: FollowCounters = Field(..., description="Counters of the acting user")
    target: FollowCounters = Field(..., description="Counters of the followed user")
    is_following: bool

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        json_schema_extra={
            "example": {
                "actor": {"followersCount": 0, "followingCount": 1},
                "target": {"followersCount": 1, "followingCount": 0},
                "isFollowing": True
            }
        }
    )


class FollowStatusResponse(BaseModel):
    user_id: str
    is_following: bool

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)
