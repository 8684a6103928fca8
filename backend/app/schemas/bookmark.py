"""Response models for bookmarks listed inside a collection."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class LocationResponse(BaseModel):
    id: int
    latitude: Decimal
    longitude: Decimal
    place_id: Optional[str] = None

    model_config = {"from_attributes": True}


class BookmarkResponse(BaseModel):
    """A live bookmark together with the location it points at."""
    id: int
    user_id: int
    content: str
    created_at: datetime
    location: LocationResponse
