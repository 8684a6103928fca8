"""
Tripmark Backend — Friend Service
===================================

What:  Invite / accept / decline / remove transitions of the friend graph,
       plus the friendship check used for FRIENDS_ONLY visibility.
Who:   Called by the friend routes and by CollectionService.

Edge Semantics:
    Rows are directed (user_id invited friend_id) but every rule here treats
    the pair as unordered:
    - at most one PENDING or ACCEPTED row per unordered pair
    - an ACCEPTED row in either direction makes both users friends

    `_pair_clause()` expresses the unordered pair in ONE predicate, so the
    check is a single query instead of two directional lookups combined in
    Python.
"""

import logging
from typing import List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import transaction, translate_db_errors
from app.exceptions import ConflictError, ValidationError
from app.models.friend_invite import FriendInvite, FriendInviteStatus
from app.schemas.friend import (
    FriendInviteListResponse,
    FriendInviteResponse,
    FriendListResponse,
    FriendResponse,
)
from app.services.guards import check_invitation_party, check_invitation_recipient

logger = logging.getLogger(__name__)


def _pair_clause(user_a: int, user_b: int):
    """Matches the edge between two users regardless of who invited whom."""
    return or_(
        and_(FriendInvite.user_id == user_a, FriendInvite.friend_id == user_b),
        and_(FriendInvite.user_id == user_b, FriendInvite.friend_id == user_a),
    )


class FriendService:
    """
    Friend graph operations.

    Every mutation loads the invitation, runs its guard, and only then
    writes, all inside one transaction() scope.
    """

    async def are_friends(self, db: AsyncSession, user_a: int, user_b: int) -> bool:
        """True when an ACCEPTED edge exists between the two users, in either direction."""
        if user_a == user_b:
            return False
        result = await db.execute(
            select(func.count(FriendInvite.id)).where(
                FriendInvite.status == FriendInviteStatus.ACCEPTED,
                _pair_clause(user_a, user_b),
            )
        )
        return (result.scalar() or 0) > 0

    async def send_invite(
        self, db: AsyncSession, user_id: int, friend_id: int
    ) -> FriendInviteResponse:
        """
        Create a PENDING invitation from user_id to friend_id.

        Raises:
            ValidationError: inviting yourself
            ConflictError: a PENDING or ACCEPTED edge already exists for the pair,
                including one inserted concurrently after the existence check
        """
        if user_id == friend_id:
            raise ValidationError(message="You cannot send a friend invitation to yourself", field="friend_id")

        with translate_db_errors("send the friend invitation", friend_id=friend_id):
            async with transaction(db):
                result = await db.execute(
                    select(FriendInvite)
                    .where(
                        _pair_clause(user_id, friend_id),
                        FriendInvite.status.in_(
                            [FriendInviteStatus.PENDING, FriendInviteStatus.ACCEPTED]
                        ),
                    )
                    .limit(1)
                )
                existing: Optional[FriendInvite] = result.scalar_one_or_none()
                if existing is not None:
                    if existing.status == FriendInviteStatus.ACCEPTED:
                        message = "You are already friends with this user"
                    else:
                        message = "A friend invitation between you and this user is already pending"
                    raise ConflictError(
                        message=message,
                        context={"invitation_id": existing.id, "status": existing.status.value},
                    )

                invitation = FriendInvite(
                    user_id=user_id,
                    friend_id=friend_id,
                    status=FriendInviteStatus.PENDING,
                )
                # A concurrent invite for the same pair can pass the check above;
                # uq_friend_invites_pair rejects the second insert
                try:
                    async with db.begin_nested():
                        db.add(invitation)
                        await db.flush()
                except IntegrityError as e:
                    logger.warning(
                        "Concurrent friend invitation for users %s and %s: %s",
                        user_id,
                        friend_id,
                        str(e),
                    )
                    raise ConflictError(
                        message="A friend invitation between you and this user already exists",
                        context={"user_id": user_id, "friend_id": friend_id},
                    ) from e

        logger.info("User %s invited user %s (invitation %s)", user_id, friend_id, invitation.id)
        return FriendInviteResponse.model_validate(invitation)

    async def accept_invitation(
        self, db: AsyncSession, user_id: int, invitation_id: int
    ) -> FriendInviteResponse:
        """PENDING → ACCEPTED. Only the invitee may accept."""
        with translate_db_errors("accept the friend invitation", invitation_id=invitation_id):
            async with transaction(db):
                invitation = await self._get_for_update(db, invitation_id)
                check_invitation_recipient(invitation, user_id, invitation_id).raise_for_denial()

                if invitation.status == FriendInviteStatus.ACCEPTED:
                    raise ConflictError(
                        message="This invitation has already been accepted",
                        context={"invitation_id": invitation_id},
                    )

                invitation.status = FriendInviteStatus.ACCEPTED
                await db.flush()

        logger.info("User %s accepted invitation %s", user_id, invitation_id)
        return FriendInviteResponse.model_validate(invitation)

    async def decline_invitation(
        self, db: AsyncSession, user_id: int, invitation_id: int
    ) -> FriendInviteResponse:
        """Invitee rejects a PENDING invitation; the row is removed."""
        with translate_db_errors("decline the friend invitation", invitation_id=invitation_id):
            async with transaction(db):
                invitation = await self._get_for_update(db, invitation_id)
                check_invitation_recipient(invitation, user_id, invitation_id).raise_for_denial()

                if invitation.status != FriendInviteStatus.PENDING:
                    raise ConflictError(
                        message="Only pending invitations can be declined",
                        context={"invitation_id": invitation_id},
                    )

                snapshot = FriendInviteResponse.model_validate(invitation)
                await db.delete(invitation)

        logger.info("User %s declined invitation %s", user_id, invitation_id)
        return snapshot

    async def remove_friend(
        self, db: AsyncSession, user_id: int, invitation_id: int
    ) -> FriendInviteResponse:
        """Either party ends an ACCEPTED friendship; the row is removed."""
        with translate_db_errors("remove the friend", invitation_id=invitation_id):
            async with transaction(db):
                invitation = await self._get_for_update(db, invitation_id)
                check_invitation_party(invitation, user_id, invitation_id).raise_for_denial()

                if invitation.status != FriendInviteStatus.ACCEPTED:
                    raise ConflictError(
                        message="This invitation has not been accepted yet",
                        context={"invitation_id": invitation_id},
                    )

                snapshot = FriendInviteResponse.model_validate(invitation)
                await db.delete(invitation)

        logger.info("User %s removed friendship %s", user_id, invitation_id)
        return snapshot

    async def list_friends(
        self, db: AsyncSession, user_id: int, page: int = 1, limit: int = 10
    ) -> FriendListResponse:
        """Accepted edges touching user_id, newest first, seen from user_id's side."""
        condition = and_(
            FriendInvite.status == FriendInviteStatus.ACCEPTED,
            or_(FriendInvite.user_id == user_id, FriendInvite.friend_id == user_id),
        )
        with translate_db_errors("list friends", user_id=user_id):
            invitations, total = await self._page(db, condition, page, limit)

        return FriendListResponse(
            items=[
                FriendResponse(
                    invitation_id=invitation.id,
                    friend_id=invitation.other_party(user_id),
                    since=invitation.created_at,
                )
                for invitation in invitations
            ],
            total_count=total,
        )

    async def list_received_invitations(
        self, db: AsyncSession, user_id: int, page: int = 1, limit: int = 10
    ) -> FriendInviteListResponse:
        condition = and_(
            FriendInvite.friend_id == user_id,
            FriendInvite.status == FriendInviteStatus.PENDING,
        )
        with translate_db_errors("list received invitations", user_id=user_id):
            invitations, total = await self._page(db, condition, page, limit)
        return FriendInviteListResponse(
            items=[FriendInviteResponse.model_validate(i) for i in invitations],
            total_count=total,
        )

    async def list_sent_invitations(
        self, db: AsyncSession, user_id: int, page: int = 1, limit: int = 10
    ) -> FriendInviteListResponse:
        condition = and_(
            FriendInvite.user_id == user_id,
            FriendInvite.status == FriendInviteStatus.PENDING,
        )
        with translate_db_errors("list sent invitations", user_id=user_id):
            invitations, total = await self._page(db, condition, page, limit)
        return FriendInviteListResponse(
            items=[FriendInviteResponse.model_validate(i) for i in invitations],
            total_count=total,
        )

    # ── Internals ─────────────────────────────────────────────────────────

    async def _get_for_update(self, db: AsyncSession, invitation_id: int) -> Optional[FriendInvite]:
        result = await db.execute(
            select(FriendInvite).where(FriendInvite.id == invitation_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def _page(self, db: AsyncSession, condition, page: int, limit: int):
        count_result = await db.execute(select(func.count(FriendInvite.id)).where(condition))
        total = count_result.scalar() or 0

        result = await db.execute(
            select(FriendInvite)
            .where(condition)
            .order_by(FriendInvite.created_at.desc(), FriendInvite.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        invitations: List[FriendInvite] = list(result.scalars().all())
        return invitations, total


# Stateless; one shared instance
friend_service = FriendService()
