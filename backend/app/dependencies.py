"""
Tripmark Backend — Shared Route Dependencies
==============================================

What:  FastAPI dependencies used by more than one router.
Who:   Injected into route handlers with Depends().

    - get_current_user_id: caller identity from the X-User-ID header
    - pagination_params:   page / limit query parameters, bounded by settings
"""

from typing import Optional

from fastapi import Header, Query

from app.config import settings
from app.exceptions import AuthenticationError
from app.schemas.common import PaginationParams


async def get_current_user_id(
    x_user_id: Optional[str] = Header(
        default=None,
        alias="X-User-ID",
        description="Authenticated user id, injected by the upstream gateway",
    ),
) -> int:
    """
    Resolve the calling user.

    The gateway in front of this service authenticates the user and forwards
    their numeric id; it is trusted as-is.
    """
    if x_user_id is None or not x_user_id.strip().isdigit():
        raise AuthenticationError(
            message="A valid X-User-ID header is required",
            context={"header": "X-User-ID"},
        )
    user_id = int(x_user_id.strip())
    if user_id < 1:
        raise AuthenticationError(message="A valid X-User-ID header is required")
    return user_id


async def pagination_params(
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description=f"Items per page (max {settings.max_page_size})",
    ),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)
