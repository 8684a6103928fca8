"""
Tripmark Backend — Bookmark Collection Schemas
================================================

What:  Request and response models for the bookmark collection endpoints.
Why:   Field syntax (title length, enum membership, coordinate ranges) is
       rejected here, before the sync engine runs. The engine only checks
       what needs stored state: existence, ownership, dedup.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.bookmark_collection import Visibility


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CollectionCreate(BaseModel):
    """Body of POST /api/users/me/bookmark-collections."""
    title: str = Field(
        min_length=1,
        max_length=200,
        description="Collection title",
        examples=["강릉 맛집"],
    )
    visibility: Visibility = Field(
        default=Visibility.PUBLIC,
        description="PRIVATE, FRIENDS_ONLY or PUBLIC",
    )


class LocationWithContent(BaseModel):
    """
    One desired bookmark: a coordinate pair plus the note attached to it.

    Coordinates are Decimals so the (latitude, longitude) uniqueness rule
    compares exact values, never rounded floats.
    """
    latitude: Decimal = Field(ge=-90, le=90, max_digits=10, decimal_places=7)
    longitude: Decimal = Field(ge=-180, le=180, max_digits=10, decimal_places=7)
    content: str = Field(default="", description="Free-text note")
    place_id: Optional[str] = Field(
        default=None,
        max_length=255,
        description="External place identifier, stored only when the location is new",
    )


class CollectionUpdate(CollectionCreate):
    """
    Body of PATCH /api/users/me/bookmark-collections/{id}.

    Full-replace semantic: every entry in locations_with_content becomes a
    new bookmark; existing members are pruned only via bookmark_ids_to_delete.

    visibility is replaced too: leaving it out resets the collection to
    PUBLIC, so clients send the current value on every update.
    """
    locations_with_content: List[LocationWithContent] = Field(default_factory=list)
    bookmark_ids_to_delete: List[int] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CollectionResponse(BaseModel):
    """Snapshot of a collection row."""
    id: int
    user_id: int
    title: str
    visibility: Visibility
    created_at: datetime

    model_config = {"from_attributes": True}


class CollectionListResponse(BaseModel):
    """Paginated collection listing."""
    items: List[CollectionResponse] = Field(description="Collections on this page, newest first")
    total_count: int = Field(description="Total collections matching the filter")
