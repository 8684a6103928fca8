"""
Tripmark Backend — Guard Unit Tests
=====================================

What:  Tests for the pure ownership and visibility checks.
How:   Plain model instances, no session.
"""

import pytest

from app.exceptions import AuthorizationError, NotFoundError
from app.models.bookmark import Bookmark
from app.models.bookmark_collection import BookmarkCollection, Visibility
from app.models.friend_invite import FriendInvite, FriendInviteStatus
from app.services.guards import (
    GuardResult,
    check_bookmark_owner,
    check_collection_owner,
    check_invitation_party,
    check_invitation_recipient,
    visible_visibilities,
)


class TestGuardResult:

    def test_allow_does_not_raise(self):
        GuardResult.allow().raise_for_denial()

    def test_missing_raises_not_found(self):
        result = GuardResult.deny("missing", resource="bookmark", resource_id=7)
        with pytest.raises(NotFoundError) as exc_info:
            result.raise_for_denial()
        assert exc_info.value.context["resource_id"] == "7"

    def test_other_reasons_raise_authorization_error(self):
        result = GuardResult.deny("not_owner", resource="bookmark", resource_id=7, message="nope")
        with pytest.raises(AuthorizationError) as exc_info:
            result.raise_for_denial()
        assert exc_info.value.message == "nope"


class TestOwnershipGuards:

    def test_collection_owner_allowed(self):
        collection = BookmarkCollection(id=1, user_id=10, title="t", visibility=Visibility.PUBLIC)
        assert check_collection_owner(collection, 10, 1).allowed

    def test_collection_other_user_denied(self):
        collection = BookmarkCollection(id=1, user_id=10, title="t", visibility=Visibility.PUBLIC)
        result = check_collection_owner(collection, 11, 1)
        assert not result.allowed
        assert result.reason == "not_owner"

    def test_collection_missing(self):
        result = check_collection_owner(None, 10, 1)
        assert result.reason == "missing"

    def test_bookmark_owner(self):
        bookmark = Bookmark(id=3, user_id=10, location_id=1, content="")
        assert check_bookmark_owner(bookmark, 10, 3).allowed
        assert check_bookmark_owner(bookmark, 99, 3).reason == "not_owner"
        assert check_bookmark_owner(None, 10, 3).reason == "missing"


class TestInvitationGuards:

    def setup_method(self):
        self.invitation = FriendInvite(
            id=5, user_id=1, friend_id=2, status=FriendInviteStatus.PENDING
        )

    def test_only_invitee_is_recipient(self):
        assert check_invitation_recipient(self.invitation, 2, 5).allowed
        assert check_invitation_recipient(self.invitation, 1, 5).reason == "not_recipient"

    def test_both_ends_are_parties(self):
        assert check_invitation_party(self.invitation, 1, 5).allowed
        assert check_invitation_party(self.invitation, 2, 5).allowed
        assert check_invitation_party(self.invitation, 3, 5).reason == "not_party"

    def test_missing_invitation(self):
        assert check_invitation_recipient(None, 2, 5).reason == "missing"
        assert check_invitation_party(None, 2, 5).reason == "missing"


class TestVisibleVisibilities:

    def test_owner_sees_everything(self):
        assert visible_visibilities(1, 1, are_friends=False) == frozenset(Visibility)

    def test_friend_sees_public_and_friends_only(self):
        assert visible_visibilities(2, 1, are_friends=True) == frozenset(
            {Visibility.PUBLIC, Visibility.FRIENDS_ONLY}
        )

    def test_stranger_sees_public_only(self):
        assert visible_visibilities(2, 1, are_friends=False) == frozenset({Visibility.PUBLIC})
