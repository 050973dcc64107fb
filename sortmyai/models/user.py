"""
User model - local record of identity-provider users.

Profile fields are seeded from the identity token on first sight. The
follower/following counters are denormalized from the follows table.
"""
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sortmyai.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """A creator on the platform."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        doc="Opaque user id from the identity provider"
    )

    username: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Unique handle chosen by the user"
    )

    display_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Display name"
    )

    avatar_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        doc="Profile image URL"
    )

    followers_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
        doc="Number of users following this user"
    )

    following_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
        doc="Number of users this user follows"
    )

    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Last time the profile was refreshed from identity claims"
    )

    @property
    def name(self) -> str:
        """Name shown to other users."""
        return self.username or self.display_name or "User"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"


Index("idx_users_username", User.username)
