"""
Tripmark Backend — Friend Invite Model
========================================

What:  ORM model for `friend_invites`: a directed edge inviter → invitee.

State machine:
    PENDING ──accept──▶ ACCEPTED
       │                   │
    decline              remove
       ▼                   ▼
    (row deleted)      (row deleted)

    Only ACCEPTED rows grant FRIENDS_ONLY visibility, and they do so in both
    directions: the edge is stored directed but read as an unordered pair.

    Every stored row is PENDING or ACCEPTED (answered-no rows are deleted),
    so uq_friend_invites_pair over (smaller id, larger id) allows at most one
    live edge per unordered pair, whichever user sent it.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import TIMESTAMP, Enum, Index, Integer, case
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class FriendInviteStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


class FriendInvite(Base):
    """An invitation from `user_id` to `friend_id`."""

    __tablename__ = "friend_invites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Inviter
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # Invitee
    friend_id: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[FriendInviteStatus] = mapped_column(
        Enum(FriendInviteStatus, name="friend_invite_status"),
        nullable=False,
        default=FriendInviteStatus.PENDING,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_friend_invites_user_friend", "user_id", "friend_id"),
        Index("idx_friend_invites_friend_user", "friend_id", "user_id"),
    )

    def other_party(self, user_id: int) -> int:
        """The user on the other end of this edge from `user_id`'s point of view."""
        return self.friend_id if self.user_id == user_id else self.user_id

    def __repr__(self) -> str:
        return (
            f"<FriendInvite(id={self.id}, {self.user_id}->{self.friend_id}, "
            f"status='{self.status.value}')>"
        )


# CASE instead of least()/greatest(): SQLite has neither
Index(
    "uq_friend_invites_pair",
    case(
        (FriendInvite.user_id < FriendInvite.friend_id, FriendInvite.user_id),
        else_=FriendInvite.friend_id,
    ),
    case(
        (FriendInvite.user_id < FriendInvite.friend_id, FriendInvite.friend_id),
        else_=FriendInvite.user_id,
    ),
    unique=True,
)
