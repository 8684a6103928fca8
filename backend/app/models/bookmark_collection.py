"""
Tripmark Backend — Bookmark Collection Model
==============================================

What:  ORM model for `bookmark_collections`: named, visibility-scoped groups
       of bookmarks owned by a single user.

Visibility:
    PRIVATE       owner only
    FRIENDS_ONLY  owner + users with an ACCEPTED friend edge (either direction)
    PUBLIC        everyone

Index on (user_id, created_at):
    Every list endpoint filters by owner and returns newest first.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import TIMESTAMP, Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Visibility(str, enum.Enum):
    PRIVATE = "PRIVATE"
    FRIENDS_ONLY = "FRIENDS_ONLY"
    PUBLIC = "PUBLIC"


class BookmarkCollection(Base):
    """A user's named collection of bookmarks."""

    __tablename__ = "bookmark_collections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(Integer, nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility, name="visibility"),
        nullable=False,
        default=Visibility.PUBLIC,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_bookmark_collections_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<BookmarkCollection(id={self.id}, user_id={self.user_id}, "
            f"visibility='{self.visibility.value}')>"
        )
