"""
Tripmark Backend — Bookmark Collection Route Handlers
=======================================================

What:  HTTP surface of the collection sync engine.
How:   Resolve the caller, delegate to CollectionService, return JSON.
Who:   Called by the mobile and web clients.

Route Table (prefix /api):
    POST   /users/me/bookmark-collections             create
    GET    /users/me/bookmark-collections             own, paginated
    GET    /users/me/bookmark-collections/all         own, unpaginated
    PATCH  /users/me/bookmark-collections/{id}        sync update
    DELETE /users/me/bookmark-collections/{id}        delete
    GET    /bookmark-collections/{id}                 single, visibility-gated
    GET    /bookmark-collections/{id}/bookmarks       live bookmarks
    GET    /users/{owner_id}/bookmark-collections     another user's, visibility-gated

    The /users/me/... routes are declared before /users/{owner_id}/... so
    "me" is never parsed as an owner id.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user_id, pagination_params
from app.models.bookmark_collection import Visibility
from app.schemas.bookmark import BookmarkResponse
from app.schemas.collection import (
    CollectionCreate,
    CollectionListResponse,
    CollectionResponse,
    CollectionUpdate,
)
from app.schemas.common import ErrorResponse, PaginationParams
from app.services.collection_service import collection_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Bookmark Collections"])

_MUTATION_ERRORS = {
    401: {"description": "Missing caller identity", "model": ErrorResponse},
    403: {"description": "Caller does not own the resource", "model": ErrorResponse},
    404: {"description": "Collection or bookmark not found", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


# ── Caller's own collections ──────────────────────────────────────────────

@router.post(
    "/users/me/bookmark-collections",
    status_code=201,
    response_model=CollectionResponse,
    responses={
        401: {"description": "Missing caller identity", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a bookmark collection",
)
async def create_collection(
    payload: CollectionCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionResponse:
    return await collection_service.create_collection(db, user_id, payload)


@router.get(
    "/users/me/bookmark-collections",
    response_model=CollectionListResponse,
    summary="List my bookmark collections",
    description=(
        "Newest first. Optionally restricted to one visibility level. "
        "The total is also returned in the X-Total-Count header."
    ),
)
async def list_own_collections(
    response: Response,
    visibility: Optional[Visibility] = Query(default=None, description="Only this visibility"),
    pagination: PaginationParams = Depends(pagination_params),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionListResponse:
    result = await collection_service.list_own_collections(
        db,
        user_id,
        page=pagination.page,
        limit=pagination.limit,
        visibility=visibility,
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/users/me/bookmark-collections/all",
    response_model=List[CollectionResponse],
    summary="List all my bookmark collections without pagination",
)
async def list_all_own_collections(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[CollectionResponse]:
    return await collection_service.list_all_own_collections(db, user_id)


@router.patch(
    "/users/me/bookmark-collections/{collection_id}",
    response_model=CollectionResponse,
    responses={**_MUTATION_ERRORS, 409: {"description": "Location conflict", "model": ErrorResponse}},
    summary="Synchronize a bookmark collection",
    description=(
        "Replaces title and visibility, soft-deletes the listed bookmarks, and "
        "adds one new bookmark per submitted location. All or nothing. "
        "An omitted visibility resets the collection to PUBLIC, so always send it."
    ),
)
async def update_collection(
    collection_id: int,
    payload: CollectionUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionResponse:
    """
    Example body:
        {
            "title": "강릉 맛집",
            "visibility": "PUBLIC",
            "locations_with_content": [
                {"latitude": 37.75, "longitude": 128.87, "content": "Tofu house"}
            ],
            "bookmark_ids_to_delete": []
        }
    """
    return await collection_service.update_collection(db, user_id, collection_id, payload)


@router.delete(
    "/users/me/bookmark-collections/{collection_id}",
    response_model=CollectionResponse,
    responses=_MUTATION_ERRORS,
    summary="Delete a bookmark collection",
)
async def delete_collection(
    collection_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionResponse:
    return await collection_service.delete_collection(db, user_id, collection_id)


# ── Reading any user's collections ────────────────────────────────────────

@router.get(
    "/bookmark-collections/{collection_id}",
    response_model=CollectionResponse,
    responses={404: {"description": "Collection not found or not visible", "model": ErrorResponse}},
    summary="Get a bookmark collection",
)
async def get_collection(
    collection_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionResponse:
    return await collection_service.get_collection(db, user_id, collection_id)


@router.get(
    "/bookmark-collections/{collection_id}/bookmarks",
    response_model=List[BookmarkResponse],
    responses={404: {"description": "Collection not found or not visible", "model": ErrorResponse}},
    summary="List the bookmarks of a collection",
)
async def list_collection_bookmarks(
    collection_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[BookmarkResponse]:
    return await collection_service.list_collection_bookmarks(db, user_id, collection_id)


@router.get(
    "/users/{owner_id}/bookmark-collections",
    response_model=CollectionListResponse,
    summary="List another user's bookmark collections",
    description=(
        "PUBLIC collections for everyone, FRIENDS_ONLY as well for friends "
        "of the owner, everything for the owner."
    ),
)
async def list_user_collections(
    owner_id: int,
    response: Response,
    pagination: PaginationParams = Depends(pagination_params),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionListResponse:
    result = await collection_service.list_user_collections(
        db,
        viewer_id=user_id,
        owner_id=owner_id,
        page=pagination.page,
        limit=pagination.limit,
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result
