"""
Tripmark Backend — Bookmark and Collection Map Models
=======================================================

What:  ORM models for `bookmarks` and the `bookmark_collection_map` join table.
Why:   A bookmark is "this place, with this note", owned by one user.
       Membership in collections lives in the join table so the same
       bookmark could belong to several collections.

Lifecycle:
    1. Created by a collection update for each submitted location+content pair
    2. Soft-deleted (deleted_at set) when its owner lists it for removal;
       the map entry is removed at the same time, the row stays for history
    3. Physically deleted only when its last collection is deleted

Query Patterns:
    - Live members of a collection:
      map JOIN bookmarks WHERE collection_id = :c AND deleted_at IS NULL
"""

from datetime import datetime, timezone

from sqlalchemy import TIMESTAMP, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Bookmark(Base):
    """A user's note attached to a shared Location."""

    __tablename__ = "bookmarks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Owner; user records live in the upstream auth service
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id"),
        nullable=False,
        index=True,
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Free-text note about the place",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # NULL = live. Set once; never cleared.
    deleted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
        default=None,
        comment="Soft-delete tombstone",
    )

    def __repr__(self) -> str:
        return (
            f"<Bookmark(id={self.id}, user_id={self.user_id}, "
            f"location_id={self.location_id}, deleted={self.deleted_at is not None})>"
        )


class BookmarkCollectionMap(Base):
    """Membership entry: bookmark B is currently in collection C."""

    __tablename__ = "bookmark_collection_map"

    collection_id: Mapped[int] = mapped_column(
        ForeignKey("bookmark_collections.id"),
        primary_key=True,
    )
    bookmark_id: Mapped[int] = mapped_column(
        ForeignKey("bookmarks.id"),
        primary_key=True,
    )

    __table_args__ = (
        Index("idx_bookmark_collection_map_bookmark_id", "bookmark_id"),
    )

    def __repr__(self) -> str:
        return f"<BookmarkCollectionMap(collection_id={self.collection_id}, bookmark_id={self.bookmark_id})>"
