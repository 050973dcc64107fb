"""
Follow model - one directed edge of the follow graph.
"""
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sortmyai.models.base import Base
from sortmyai.utils.datetime_utils import utc_now


class Follow(Base):
    """
    follower_id follows followee_id.

    The composite primary key makes inserting an edge an atomic
    add-if-absent: a duplicate insert fails with an integrity error.
    """

    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        doc="User who follows"
    )

    followee_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        doc="User being followed"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Follow({self.follower_id} -> {self.followee_id})>"


# Reverse lookup (followers of a user)
Index("idx_follows_followee", Follow.followee_id, Follow.created_at.desc())
