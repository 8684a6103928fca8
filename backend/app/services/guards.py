"""
Tripmark Backend — Authorization Guards
=========================================

What:  Pure functions deciding whether a caller may touch a resource.
Why:   Every mutating operation asks its guards first and only then writes,
       so ownership failures can never leave a half-applied change.
How:   Guards return a tagged `GuardResult` instead of raising; the service
       turns a denial into the matching exception with `raise_for_denial()`.
       Nothing in this module performs I/O.

Guard Inventory:
    - check_collection_owner:   caller owns the collection
    - check_bookmark_owner:     caller owns the bookmark
    - check_invitation_recipient: caller is the invitee of an invitation
    - check_invitation_party:   caller is either end of an invitation
    - visible_visibilities:     which visibility levels a viewer may read
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from app.exceptions import AuthorizationError, NotFoundError
from app.models.bookmark import Bookmark
from app.models.bookmark_collection import BookmarkCollection, Visibility
from app.models.friend_invite import FriendInvite


@dataclass(frozen=True)
class GuardResult:
    """
    Outcome of a guard check.

    Attributes:
        allowed:  True when the caller may proceed
        reason:   Machine-readable denial tag ("missing", "not_owner", ...)
        context:  Resource details for the error raised on denial
    """
    allowed: bool
    reason: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls) -> "GuardResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, **context: Any) -> "GuardResult":
        return cls(allowed=False, reason=reason, context=context)

    def raise_for_denial(self) -> None:
        """Raise the error kind matching the denial tag; no-op when allowed."""
        if self.allowed:
            return
        resource = self.context.get("resource", "resource")
        resource_id = self.context.get("resource_id")
        if self.reason == "missing":
            raise NotFoundError(
                resource=resource,
                resource_id=str(resource_id) if resource_id is not None else None,
            )
        raise AuthorizationError(
            message=self.context.get("message", "You are not allowed to modify this resource"),
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
        )


def check_collection_owner(
    collection: Optional[BookmarkCollection],
    user_id: int,
    collection_id: int,
) -> GuardResult:
    """Only the owner of a collection may update or delete it."""
    if collection is None:
        return GuardResult.deny("missing", resource="bookmark collection", resource_id=collection_id)
    if collection.user_id != user_id:
        return GuardResult.deny(
            "not_owner",
            resource="bookmark collection",
            resource_id=collection_id,
            message="Only the owner of a bookmark collection can modify it",
        )
    return GuardResult.allow()


def check_bookmark_owner(
    bookmark: Optional[Bookmark],
    user_id: int,
    bookmark_id: int,
) -> GuardResult:
    """Soft-deleting a bookmark requires owning it."""
    if bookmark is None:
        return GuardResult.deny("missing", resource="bookmark", resource_id=bookmark_id)
    if bookmark.user_id != user_id:
        return GuardResult.deny(
            "not_owner",
            resource="bookmark",
            resource_id=bookmark_id,
            message="Only the owner of a bookmark can delete it",
        )
    return GuardResult.allow()


def check_invitation_recipient(
    invitation: Optional[FriendInvite],
    user_id: int,
    invitation_id: int,
) -> GuardResult:
    """Accepting or declining is reserved for the invitee."""
    if invitation is None:
        return GuardResult.deny("missing", resource="friend invitation", resource_id=invitation_id)
    if invitation.friend_id != user_id:
        return GuardResult.deny(
            "not_recipient",
            resource="friend invitation",
            resource_id=invitation_id,
            message="Only the invited user can answer this invitation",
        )
    return GuardResult.allow()


def check_invitation_party(
    invitation: Optional[FriendInvite],
    user_id: int,
    invitation_id: int,
) -> GuardResult:
    """Either end of a friendship may remove it."""
    if invitation is None:
        return GuardResult.deny("missing", resource="friend invitation", resource_id=invitation_id)
    if user_id not in (invitation.user_id, invitation.friend_id):
        return GuardResult.deny(
            "not_party",
            resource="friend invitation",
            resource_id=invitation_id,
            message="You are not part of this friendship",
        )
    return GuardResult.allow()


def visible_visibilities(viewer_id: int, owner_id: int, are_friends: bool) -> FrozenSet[Visibility]:
    """
    Visibility levels of `owner_id`'s collections that `viewer_id` may read.

    Owners see everything; friends additionally see FRIENDS_ONLY;
    everybody sees PUBLIC.
    """
    if viewer_id == owner_id:
        return frozenset(Visibility)
    if are_friends:
        return frozenset({Visibility.PUBLIC, Visibility.FRIENDS_ONLY})
    return frozenset({Visibility.PUBLIC})
