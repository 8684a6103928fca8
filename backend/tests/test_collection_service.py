"""
Tripmark Backend — Collection Service Tests
=============================================

What:  Tests for the bookmark collection sync engine (create, update,
       delete, list, visibility).
How:   Runs CollectionService against in-memory SQLite (db_session fixture);
       a few error-translation cases use the mocked session.

What we test:
    ✅ Create returns the stored collection
    ✅ Update adds bookmarks, dedups locations, soft-deletes and unmaps
    ✅ Update by a non-owner, or touching a foreign bookmark, changes nothing
    ✅ Empty update changes only title and visibility
    ✅ Delete removes map entries and exclusive bookmarks, keeps shared ones
    ✅ Pagination, visibility filter and friend-gated listings
"""

from decimal import Decimal
from typing import Dict, List, Sequence
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.exceptions import (
    AuthorizationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from app.models.bookmark import Bookmark, BookmarkCollectionMap
from app.models.bookmark_collection import BookmarkCollection, Visibility
from app.models.friend_invite import FriendInvite
from app.models.location import Location
from app.schemas.collection import CollectionCreate, CollectionUpdate, LocationWithContent
from app.services.collection_service import CollectionService
from app.services.friend_service import friend_service


# ── Helpers ───────────────────────────────────────────────────────────────

async def _create(service, db, user_id, title="강릉 맛집", visibility=Visibility.PUBLIC):
    return await service.create_collection(
        db, user_id, CollectionCreate(title=title, visibility=visibility)
    )


def _payload(
    title: str = "강릉 맛집",
    visibility: Visibility = Visibility.PUBLIC,
    locations: Sequence[Dict] = (),
    delete_ids: Sequence[int] = (),
) -> CollectionUpdate:
    return CollectionUpdate(
        title=title,
        visibility=visibility,
        locations_with_content=[LocationWithContent(**loc) for loc in locations],
        bookmark_ids_to_delete=list(delete_ids),
    )


async def _count(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar()


async def _table_counts(db) -> Dict[str, int]:
    return {
        model.__tablename__: await _count(db, model)
        for model in (Location, Bookmark, BookmarkCollectionMap, BookmarkCollection, FriendInvite)
    }


async def _member_ids(db, collection_id) -> List[int]:
    result = await db.execute(
        select(BookmarkCollectionMap.bookmark_id)
        .where(BookmarkCollectionMap.collection_id == collection_id)
        .order_by(BookmarkCollectionMap.bookmark_id)
    )
    return list(result.scalars().all())


async def _bookmark(db, bookmark_id) -> Bookmark:
    result = await db.execute(select(Bookmark).where(Bookmark.id == bookmark_id))
    return result.scalar_one()


GANGNEUNG = {"latitude": "37.75", "longitude": "128.87", "content": "커피"}


class TestCreateCollection:

    def setup_method(self):
        self.service = CollectionService()

    @pytest.mark.asyncio
    async def test_create_returns_new_collection(self, db_session):
        created = await _create(self.service, db_session, user_id=1)

        assert created.id is not None
        assert created.user_id == 1
        assert created.title == "강릉 맛집"
        assert created.visibility == Visibility.PUBLIC

    @pytest.mark.asyncio
    async def test_visibility_defaults_to_public(self, db_session):
        created = await self.service.create_collection(
            db_session, 1, CollectionCreate(title="Seoul")
        )
        assert created.visibility == Visibility.PUBLIC

    @pytest.mark.asyncio
    async def test_title_too_long_rejected(self, db_session):
        data = CollectionCreate.model_construct(title="x" * 201, visibility=Visibility.PUBLIC)
        with pytest.raises(ValidationError):
            await self.service.create_collection(db_session, 1, data)
        assert await _count(db_session, BookmarkCollection) == 0


class TestUpdateCollection:

    def setup_method(self):
        self.service = CollectionService()

    @pytest.mark.asyncio
    async def test_add_location_creates_location_bookmark_and_map(self, db_session):
        created = await _create(self.service, db_session, user_id=1)

        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[GANGNEUNG])
        )

        assert await _count(db_session, Location) == 1
        assert await _count(db_session, Bookmark) == 1
        members = await _member_ids(db_session, created.id)
        assert len(members) == 1
        bookmark = await _bookmark(db_session, members[0])
        assert bookmark.user_id == 1
        assert bookmark.content == "커피"

    @pytest.mark.asyncio
    async def test_same_coordinates_reuse_location(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[GANGNEUNG])
        )

        second = {**GANGNEUNG, "content": "순두부"}
        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[second])
        )

        assert await _count(db_session, Location) == 1
        members = await _member_ids(db_session, created.id)
        assert len(members) == 2
        first_bm = await _bookmark(db_session, members[0])
        second_bm = await _bookmark(db_session, members[1])
        assert first_bm.location_id == second_bm.location_id
        assert second_bm.content == "순두부"

    @pytest.mark.asyncio
    async def test_duplicate_coordinates_in_one_request(self, db_session):
        created = await _create(self.service, db_session, user_id=1)

        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[GANGNEUNG, GANGNEUNG])
        )

        assert await _count(db_session, Location) == 1
        assert await _count(db_session, Bookmark) == 2

    @pytest.mark.asyncio
    async def test_empty_update_changes_only_title_and_visibility(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[GANGNEUNG])
        )
        before = await _member_ids(db_session, created.id)

        updated = await self.service.update_collection(
            db_session,
            1,
            created.id,
            _payload(title="Gangneung cafes", visibility=Visibility.PRIVATE),
        )

        assert updated.title == "Gangneung cafes"
        assert updated.visibility == Visibility.PRIVATE
        assert await _member_ids(db_session, created.id) == before
        assert await _count(db_session, Bookmark) == 1

    @pytest.mark.asyncio
    async def test_delete_ids_soft_delete_and_unmap(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[GANGNEUNG])
        )
        [bookmark_id] = await _member_ids(db_session, created.id)

        await self.service.update_collection(
            db_session, 1, created.id, _payload(delete_ids=[bookmark_id, bookmark_id])
        )

        assert await _member_ids(db_session, created.id) == []
        bookmark = await _bookmark(db_session, bookmark_id)
        assert bookmark.deleted_at is not None
        assert await _count(db_session, Location) == 1

    @pytest.mark.asyncio
    async def test_non_owner_update_changes_nothing(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[GANGNEUNG])
        )
        before = await _table_counts(db_session)

        with pytest.raises(AuthorizationError):
            await self.service.update_collection(
                db_session,
                2,
                created.id,
                _payload(title="hijacked", locations=[{"latitude": "1", "longitude": "2"}]),
            )

        assert await _table_counts(db_session) == before
        current = await self.service.get_collection(db_session, 1, created.id)
        assert current.title == "강릉 맛집"

    @pytest.mark.asyncio
    async def test_foreign_bookmark_in_delete_ids_changes_nothing(self, db_session):
        mine = await _create(self.service, db_session, user_id=1)
        theirs = await _create(self.service, db_session, user_id=2, title="Busan")
        await self.service.update_collection(
            db_session, 2, theirs.id, _payload(title="Busan", locations=[GANGNEUNG])
        )
        [their_bookmark] = await _member_ids(db_session, theirs.id)
        before = await _table_counts(db_session)

        with pytest.raises(AuthorizationError):
            await self.service.update_collection(
                db_session,
                1,
                mine.id,
                _payload(title="renamed", locations=[GANGNEUNG], delete_ids=[their_bookmark]),
            )

        assert await _table_counts(db_session) == before
        assert (await _bookmark(db_session, their_bookmark)).deleted_at is None
        assert (await self.service.get_collection(db_session, 1, mine.id)).title == "강릉 맛집"

    @pytest.mark.asyncio
    async def test_failure_after_soft_delete_rolls_back_everything(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[GANGNEUNG])
        )
        [bookmark_id] = await _member_ids(db_session, created.id)
        await db_session.commit()
        before = await _table_counts(db_session)

        # Tombstone and unmap have been flushed when the location step fails
        with patch(
            "app.services.collection_service.location_service.resolve",
            AsyncMock(side_effect=ConflictError()),
        ):
            with pytest.raises(ConflictError):
                await self.service.update_collection(
                    db_session,
                    1,
                    created.id,
                    _payload(
                        title="renamed",
                        visibility=Visibility.PRIVATE,
                        locations=[{"latitude": "1", "longitude": "2"}],
                        delete_ids=[bookmark_id],
                    ),
                )

        deleted_at = await db_session.execute(
            select(Bookmark.deleted_at).where(Bookmark.id == bookmark_id)
        )
        assert deleted_at.scalar_one() is None
        assert await _member_ids(db_session, created.id) == [bookmark_id]
        assert await _table_counts(db_session) == before
        row = await db_session.execute(
            select(BookmarkCollection.title, BookmarkCollection.visibility).where(
                BookmarkCollection.id == created.id
            )
        )
        assert tuple(row.one()) == ("강릉 맛집", Visibility.PUBLIC)

    @pytest.mark.asyncio
    async def test_unknown_bookmark_in_delete_ids(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        with pytest.raises(NotFoundError):
            await self.service.update_collection(
                db_session, 1, created.id, _payload(delete_ids=[999])
            )

    @pytest.mark.asyncio
    async def test_unknown_collection(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.update_collection(db_session, 1, 12345, _payload())


class TestDeleteCollection:

    def setup_method(self):
        self.service = CollectionService()

    @pytest.mark.asyncio
    async def test_delete_removes_collection_map_and_exclusive_bookmarks(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        await self.service.update_collection(
            db_session, 1, created.id, _payload(locations=[GANGNEUNG])
        )

        snapshot = await self.service.delete_collection(db_session, 1, created.id)

        assert snapshot.id == created.id
        assert await _count(db_session, BookmarkCollection) == 0
        assert await _count(db_session, BookmarkCollectionMap) == 0
        assert await _count(db_session, Bookmark) == 0
        assert await _count(db_session, Location) == 1

    @pytest.mark.asyncio
    async def test_delete_keeps_bookmarks_shared_with_other_collections(self, db_session):
        first = await _create(self.service, db_session, user_id=1)
        second = await _create(self.service, db_session, user_id=1, title="Also here")
        await self.service.update_collection(
            db_session, 1, first.id, _payload(locations=[GANGNEUNG])
        )
        [shared_id] = await _member_ids(db_session, first.id)
        db_session.add(BookmarkCollectionMap(collection_id=second.id, bookmark_id=shared_id))
        await db_session.commit()

        await self.service.delete_collection(db_session, 1, first.id)

        assert await _member_ids(db_session, second.id) == [shared_id]
        assert await _count(db_session, Bookmark) == 1

    @pytest.mark.asyncio
    async def test_delete_by_non_owner(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        with pytest.raises(AuthorizationError):
            await self.service.delete_collection(db_session, 2, created.id)
        assert await _count(db_session, BookmarkCollection) == 1

    @pytest.mark.asyncio
    async def test_delete_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.delete_collection(db_session, 1, 404)


class TestListCollections:

    def setup_method(self):
        self.service = CollectionService()

    @pytest.mark.asyncio
    async def test_own_list_newest_first_with_total(self, db_session):
        for title in ("one", "two", "three"):
            await _create(self.service, db_session, user_id=1, title=title)
        await _create(self.service, db_session, user_id=2, title="other")

        page1 = await self.service.list_own_collections(db_session, 1, page=1, limit=2)
        page2 = await self.service.list_own_collections(db_session, 1, page=2, limit=2)

        assert page1.total_count == 3
        assert [c.title for c in page1.items] == ["three", "two"]
        assert [c.title for c in page2.items] == ["one"]

    @pytest.mark.asyncio
    async def test_own_list_filtered_by_visibility(self, db_session):
        await _create(self.service, db_session, 1, title="pub", visibility=Visibility.PUBLIC)
        await _create(self.service, db_session, 1, title="priv", visibility=Visibility.PRIVATE)

        result = await self.service.list_own_collections(
            db_session, 1, visibility=Visibility.PRIVATE
        )

        assert result.total_count == 1
        assert result.items[0].title == "priv"

    @pytest.mark.asyncio
    async def test_list_all_own_is_unpaginated(self, db_session):
        for i in range(12):
            await _create(self.service, db_session, user_id=1, title=f"c{i}")

        result = await self.service.list_all_own_collections(db_session, 1)

        assert len(result) == 12
        assert result[0].title == "c11"

    @pytest.mark.asyncio
    async def test_stranger_sees_only_public(self, db_session):
        await _create(self.service, db_session, 1, title="pub", visibility=Visibility.PUBLIC)
        await _create(self.service, db_session, 1, title="friends", visibility=Visibility.FRIENDS_ONLY)
        await _create(self.service, db_session, 1, title="priv", visibility=Visibility.PRIVATE)

        result = await self.service.list_user_collections(db_session, viewer_id=2, owner_id=1)

        assert [c.title for c in result.items] == ["pub"]
        assert result.total_count == 1

    @pytest.mark.asyncio
    async def test_friend_sees_friends_only(self, db_session):
        await _create(self.service, db_session, 1, title="pub", visibility=Visibility.PUBLIC)
        friends_only = await _create(
            self.service, db_session, 1, title="friends", visibility=Visibility.FRIENDS_ONLY
        )
        await _create(self.service, db_session, 1, title="priv", visibility=Visibility.PRIVATE)

        # Edge created by the viewer; direction must not matter
        invite = await friend_service.send_invite(db_session, 2, 1)
        await friend_service.accept_invitation(db_session, 1, invite.id)

        result = await self.service.list_user_collections(db_session, viewer_id=2, owner_id=1)

        assert {c.title for c in result.items} == {"pub", "friends"}
        fetched = await self.service.get_collection(db_session, 2, friends_only.id)
        assert fetched.id == friends_only.id

    @pytest.mark.asyncio
    async def test_owner_sees_everything_via_user_listing(self, db_session):
        for visibility in Visibility:
            await _create(self.service, db_session, 1, title=visibility.value, visibility=visibility)

        result = await self.service.list_user_collections(db_session, viewer_id=1, owner_id=1)

        assert result.total_count == 3

    @pytest.mark.asyncio
    async def test_pending_invite_does_not_grant_friends_only(self, db_session):
        hidden = await _create(
            self.service, db_session, 1, title="friends", visibility=Visibility.FRIENDS_ONLY
        )
        await friend_service.send_invite(db_session, 1, 2)

        result = await self.service.list_user_collections(db_session, viewer_id=2, owner_id=1)

        assert result.total_count == 0
        with pytest.raises(NotFoundError):
            await self.service.get_collection(db_session, 2, hidden.id)


class TestListCollectionBookmarks:

    def setup_method(self):
        self.service = CollectionService()

    @pytest.mark.asyncio
    async def test_live_bookmarks_with_locations(self, db_session):
        created = await _create(self.service, db_session, user_id=1)
        await self.service.update_collection(
            db_session,
            1,
            created.id,
            _payload(locations=[GANGNEUNG, {"latitude": "37.8", "longitude": "128.9", "content": "beach"}]),
        )
        first_id = (await _member_ids(db_session, created.id))[0]
        await self.service.update_collection(
            db_session, 1, created.id, _payload(delete_ids=[first_id])
        )

        bookmarks = await self.service.list_collection_bookmarks(db_session, 2, created.id)

        assert [b.content for b in bookmarks] == ["beach"]
        assert bookmarks[0].location.latitude == Decimal("37.8")

    @pytest.mark.asyncio
    async def test_private_collection_hidden_from_others(self, db_session):
        created = await _create(self.service, db_session, 1, visibility=Visibility.PRIVATE)
        with pytest.raises(NotFoundError):
            await self.service.list_collection_bookmarks(db_session, 2, created.id)
        assert await self.service.list_collection_bookmarks(db_session, 1, created.id) == []


class TestDatabaseErrors:

    @pytest.mark.asyncio
    async def test_sqlalchemy_errors_become_database_error(self, mock_db_session):
        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT ...", {}, Exception("connection refused"))
        )
        with pytest.raises(DatabaseError) as exc_info:
            await CollectionService().get_collection(mock_db_session, 1, 1)
        assert exc_info.value.context["error_type"] == "OperationalError"
