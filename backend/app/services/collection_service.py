"""
Tripmark Backend — Bookmark Collection Service (Synchronization Engine)
=========================================================================

What:  Create / update / delete / list for bookmark collections. The update
       path reconciles a submitted desired state (locations with content,
       plus bookmark ids to delete) against what is stored.
Who:   Called by the collection route handlers.

Update Flow (one transaction):
    ┌───────────┐   ┌──────────┐   ┌──────────────┐   ┌─────────────┐   ┌──────────┐
    │ Load+lock │──▶│  Guards  │──▶│ Soft-delete  │──▶│ Resolve loc │──▶│ Bookmarks│
    │ collection│   │ (owner)  │   │ + unmap      │   │ (dedup)     │   │ + map    │
    └───────────┘   └──────────┘   └──────────────┘   └─────────────┘   └────┬─────┘
                                                                             ▼
                                                                   title / visibility

    Guards run before the first write, so an AuthorizationError or
    NotFoundError leaves every table untouched. Any later failure rolls the
    whole scope back through `transaction()`.

Full-replace semantic:
    Submitted locations always produce NEW bookmarks; existing members are
    only removed when listed in bookmark_ids_to_delete. No diffing.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import transaction, translate_db_errors
from app.exceptions import NotFoundError, ValidationError
from app.models.bookmark import Bookmark, BookmarkCollectionMap
from app.models.bookmark_collection import BookmarkCollection, Visibility
from app.models.location import Location
from app.schemas.bookmark import BookmarkResponse, LocationResponse
from app.schemas.collection import (
    CollectionCreate,
    CollectionListResponse,
    CollectionResponse,
    CollectionUpdate,
)
from app.services.friend_service import friend_service
from app.services.guards import (
    check_bookmark_owner,
    check_collection_owner,
    visible_visibilities,
)
from app.services.location_service import location_service

logger = logging.getLogger(__name__)


class CollectionService:
    """
    Business logic for bookmark collections.

    Stateless: every method receives the session it works in.
    Mutations are wrapped in `transaction()`; reads are plain queries.
    """

    # ══════════════════════════════════════════════════════════════════════
    # Mutations
    # ══════════════════════════════════════════════════════════════════════

    async def create_collection(
        self, db: AsyncSession, user_id: int, data: CollectionCreate
    ) -> CollectionResponse:
        """
        Insert a new collection owned by user_id.

        Raises:
            ValidationError: title outside [1, collection_title_max_length]
                (only reachable when a caller bypasses the request schema)
        """
        self._validate_title(data.title)

        with translate_db_errors("create the bookmark collection", user_id=user_id):
            async with transaction(db):
                collection = BookmarkCollection(
                    user_id=user_id,
                    title=data.title,
                    visibility=data.visibility,
                )
                db.add(collection)
                await db.flush()

        logger.info("User %s created bookmark collection %s", user_id, collection.id)
        return CollectionResponse.model_validate(collection)

    async def update_collection(
        self,
        db: AsyncSession,
        user_id: int,
        collection_id: int,
        data: CollectionUpdate,
    ) -> CollectionResponse:
        """
        Reconcile a collection with the submitted desired state.

        Steps:
            1. Load the collection with a row lock
            2. Guard ownership of the collection and of every bookmark to delete
            3. Soft-delete those bookmarks and drop their map entries
            4. Insert-or-fetch a Location per submitted entry
            5. Create one Bookmark per entry
            6. Map the new bookmarks into the collection
            7. Update title and visibility

        Raises:
            NotFoundError: collection or a listed bookmark does not exist
            AuthorizationError: caller does not own the collection or a listed bookmark
            ConflictError: a location stayed in a unique-constraint race after retrying
            ValidationError: title outside the allowed length
        """
        self._validate_title(data.title)
        delete_ids = list(dict.fromkeys(data.bookmark_ids_to_delete))

        with translate_db_errors("update the bookmark collection", collection_id=collection_id):
            async with transaction(db):
                # ── Steps 1-2: load and guard, no writes yet ──────────────
                collection = await self._get_collection(db, collection_id, lock=True)
                check_collection_owner(collection, user_id, collection_id).raise_for_denial()

                to_delete = await self._get_bookmarks(db, delete_ids)
                for bookmark_id in delete_ids:
                    check_bookmark_owner(
                        to_delete.get(bookmark_id), user_id, bookmark_id
                    ).raise_for_denial()

                # ── Step 3: prune ─────────────────────────────────────────
                if delete_ids:
                    now = datetime.now(timezone.utc)
                    for bookmark in to_delete.values():
                        if bookmark.deleted_at is None:
                            bookmark.deleted_at = now
                    await db.execute(
                        delete(BookmarkCollectionMap).where(
                            BookmarkCollectionMap.collection_id == collection_id,
                            BookmarkCollectionMap.bookmark_id.in_(delete_ids),
                        )
                    )

                # ── Steps 4-5: resolve locations, create bookmarks ────────
                new_bookmarks: List[Bookmark] = []
                for entry in data.locations_with_content:
                    location = await location_service.resolve(
                        db,
                        latitude=entry.latitude,
                        longitude=entry.longitude,
                        place_id=entry.place_id,
                    )
                    bookmark = Bookmark(
                        user_id=user_id,
                        location_id=location.id,
                        content=entry.content,
                    )
                    db.add(bookmark)
                    new_bookmarks.append(bookmark)
                await db.flush()

                # ── Step 6: membership ────────────────────────────────────
                db.add_all([
                    BookmarkCollectionMap(collection_id=collection_id, bookmark_id=bookmark.id)
                    for bookmark in new_bookmarks
                ])

                # ── Step 7: collection fields ─────────────────────────────
                collection.title = data.title
                collection.visibility = data.visibility
                await db.flush()

        logger.info(
            "User %s updated bookmark collection %s: %d removed, %d added",
            user_id,
            collection_id,
            len(delete_ids),
            len(new_bookmarks),
        )
        return CollectionResponse.model_validate(collection)

    async def delete_collection(
        self, db: AsyncSession, user_id: int, collection_id: int
    ) -> CollectionResponse:
        """
        Remove a collection and the bookmarks that only it referenced.

        Order: map entries → exclusively-owned bookmarks → collection row.
        Locations are shared and never deleted. Returns the snapshot taken
        before deletion.
        """
        with translate_db_errors("delete the bookmark collection", collection_id=collection_id):
            async with transaction(db):
                collection = await self._get_collection(db, collection_id, lock=True)
                check_collection_owner(collection, user_id, collection_id).raise_for_denial()
                snapshot = CollectionResponse.model_validate(collection)

                member_ids = await self._member_bookmark_ids(db, collection_id)

                await db.execute(
                    delete(BookmarkCollectionMap).where(
                        BookmarkCollectionMap.collection_id == collection_id
                    )
                )

                exclusive_ids: List[int] = []
                if member_ids:
                    still_mapped = await db.execute(
                        select(BookmarkCollectionMap.bookmark_id)
                        .where(BookmarkCollectionMap.bookmark_id.in_(member_ids))
                        .distinct()
                    )
                    shared = set(still_mapped.scalars().all())
                    exclusive_ids = [bid for bid in member_ids if bid not in shared]

                if exclusive_ids:
                    await db.execute(delete(Bookmark).where(Bookmark.id.in_(exclusive_ids)))

                await db.delete(collection)
                await db.flush()

        logger.info(
            "User %s deleted bookmark collection %s (%d bookmarks removed)",
            user_id,
            collection_id,
            len(exclusive_ids),
        )
        return snapshot

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def get_collection(
        self, db: AsyncSession, viewer_id: int, collection_id: int
    ) -> CollectionResponse:
        """
        Single collection, visibility-gated.

        A collection the viewer may not see is reported as missing so its
        existence is not leaked.
        """
        with translate_db_errors("retrieve the bookmark collection", collection_id=collection_id):
            collection = await self._get_visible_collection(db, viewer_id, collection_id)
        return CollectionResponse.model_validate(collection)

    async def list_own_collections(
        self,
        db: AsyncSession,
        user_id: int,
        page: int = 1,
        limit: int = 10,
        visibility: Optional[Visibility] = None,
    ) -> CollectionListResponse:
        """The caller's collections, newest first, optionally one visibility only."""
        levels = [visibility] if visibility is not None else list(Visibility)
        with translate_db_errors("list bookmark collections", user_id=user_id):
            return await self._list(db, user_id, levels, page, limit)

    async def list_all_own_collections(
        self, db: AsyncSession, user_id: int
    ) -> List[CollectionResponse]:
        """Every collection of the caller, unpaginated, newest first."""
        with translate_db_errors("list bookmark collections", user_id=user_id):
            result = await db.execute(
                select(BookmarkCollection)
                .where(BookmarkCollection.user_id == user_id)
                .order_by(BookmarkCollection.created_at.desc(), BookmarkCollection.id.desc())
            )
            collections = result.scalars().all()
        return [CollectionResponse.model_validate(c) for c in collections]

    async def list_user_collections(
        self,
        db: AsyncSession,
        viewer_id: int,
        owner_id: int,
        page: int = 1,
        limit: int = 10,
    ) -> CollectionListResponse:
        """
        Another user's collections as the viewer is entitled to see them.

        PUBLIC always; FRIENDS_ONLY when an ACCEPTED edge links the two
        users in either direction; everything when viewer is the owner.
        """
        with translate_db_errors("list bookmark collections", owner_id=owner_id):
            levels = await self._visible_levels(db, viewer_id, owner_id)
            return await self._list(db, owner_id, sorted(levels, key=lambda v: v.value), page, limit)

    async def list_collection_bookmarks(
        self, db: AsyncSession, viewer_id: int, collection_id: int
    ) -> List[BookmarkResponse]:
        """Live bookmarks of a collection, oldest first, with their locations."""
        with translate_db_errors("list bookmarks", collection_id=collection_id):
            await self._get_visible_collection(db, viewer_id, collection_id)
            result = await db.execute(
                select(Bookmark, Location)
                .join(Location, Location.id == Bookmark.location_id)
                .join(BookmarkCollectionMap, BookmarkCollectionMap.bookmark_id == Bookmark.id)
                .where(
                    BookmarkCollectionMap.collection_id == collection_id,
                    Bookmark.deleted_at.is_(None),
                )
                .order_by(Bookmark.created_at.asc(), Bookmark.id.asc())
            )
            rows = result.all()

        return [
            BookmarkResponse(
                id=bookmark.id,
                user_id=bookmark.user_id,
                content=bookmark.content,
                created_at=bookmark.created_at,
                location=LocationResponse.model_validate(location),
            )
            for bookmark, location in rows
        ]

    # ══════════════════════════════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════════════════════════════

    def _validate_title(self, title: str) -> None:
        if not 1 <= len(title) <= settings.collection_title_max_length:
            raise ValidationError(
                message=(
                    f"Title must be between 1 and {settings.collection_title_max_length} characters"
                ),
                field="title",
            )

    async def _get_collection(
        self, db: AsyncSession, collection_id: int, lock: bool = False
    ) -> Optional[BookmarkCollection]:
        query = select(BookmarkCollection).where(BookmarkCollection.id == collection_id)
        if lock:
            # Serializes concurrent updates of the same collection (no-op on SQLite)
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def _get_bookmarks(
        self, db: AsyncSession, bookmark_ids: Sequence[int]
    ) -> Dict[int, Bookmark]:
        if not bookmark_ids:
            return {}
        result = await db.execute(select(Bookmark).where(Bookmark.id.in_(bookmark_ids)))
        return {bookmark.id: bookmark for bookmark in result.scalars().all()}

    async def _member_bookmark_ids(self, db: AsyncSession, collection_id: int) -> List[int]:
        result = await db.execute(
            select(BookmarkCollectionMap.bookmark_id).where(
                BookmarkCollectionMap.collection_id == collection_id
            )
        )
        return list(result.scalars().all())

    async def _visible_levels(
        self, db: AsyncSession, viewer_id: int, owner_id: int
    ) -> FrozenSet[Visibility]:
        friends = False
        if viewer_id != owner_id:
            friends = await friend_service.are_friends(db, viewer_id, owner_id)
        return visible_visibilities(viewer_id, owner_id, friends)

    async def _get_visible_collection(
        self, db: AsyncSession, viewer_id: int, collection_id: int
    ) -> BookmarkCollection:
        collection = await self._get_collection(db, collection_id)
        if collection is None:
            raise NotFoundError(resource="bookmark collection", resource_id=str(collection_id))
        levels = await self._visible_levels(db, viewer_id, collection.user_id)
        if collection.visibility not in levels:
            raise NotFoundError(resource="bookmark collection", resource_id=str(collection_id))
        return collection

    async def _list(
        self,
        db: AsyncSession,
        owner_id: int,
        levels: Sequence[Visibility],
        page: int,
        limit: int,
    ) -> CollectionListResponse:
        condition = (
            (BookmarkCollection.user_id == owner_id)
            & BookmarkCollection.visibility.in_(list(levels))
        )

        count_result = await db.execute(
            select(func.count(BookmarkCollection.id)).where(condition)
        )
        total_count = count_result.scalar() or 0

        result = await db.execute(
            select(BookmarkCollection)
            .where(condition)
            .order_by(BookmarkCollection.created_at.desc(), BookmarkCollection.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        collections = result.scalars().all()

        return CollectionListResponse(
            items=[CollectionResponse.model_validate(c) for c in collections],
            total_count=total_count,
        )


# Stateless; one shared instance
collection_service = CollectionService()
