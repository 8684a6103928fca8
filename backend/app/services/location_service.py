"""
Tripmark Backend — Location Service (Insert-or-Fetch)
=======================================================

What:  Resolves a (latitude, longitude) pair to its single Location row,
       creating it on first reference.
Who:   Called by the collection sync engine for every submitted location.

Dedup Under Race:
    1. SELECT the exact pair; return it if present
    2. Otherwise INSERT inside a SAVEPOINT
    3. If a concurrent request inserted the same pair first, the unique
       constraint raises IntegrityError; only the SAVEPOINT rolls back and
       the resolution is retried as a plain lookup (step 1 now succeeds)
    4. If that still fails, raise ConflictError

    The uniqueness constraint is the only race-proofing: there is no
    application-level lock, so two workers can both reach step 2 and exactly
    one of them wins.

Retry Policy:
    tenacity, settings.location_resolve_attempts total attempts (default 2:
    the first try plus one retry), no wait between attempts, retrying
    only on IntegrityError.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
)

from app.config import settings
from app.exceptions import ConflictError
from app.models.location import Location

logger = logging.getLogger(__name__)


class LocationService:
    """Shared-coordinate lookups; stateless."""

    async def find(
        self,
        db: AsyncSession,
        latitude: Decimal,
        longitude: Decimal,
    ) -> Optional[Location]:
        """Exact-match lookup on the (latitude, longitude) unique key."""
        result = await db.execute(
            select(Location).where(
                Location.latitude == latitude,
                Location.longitude == longitude,
            )
        )
        return result.scalar_one_or_none()

    async def resolve(
        self,
        db: AsyncSession,
        latitude: Decimal,
        longitude: Decimal,
        place_id: Optional[str] = None,
    ) -> Location:
        """
        Return the Location for this coordinate pair, creating it if needed.

        place_id is only written when the row is created; an existing row
        keeps whatever it was first created with.

        Raises:
            ConflictError: the pair could be neither found nor inserted
                within the configured number of attempts
        """
        try:
            return await self._resolve_with_retry(db, latitude, longitude, place_id)
        except RetryError as e:
            logger.error(
                "Location (%s, %s) still conflicting after %d attempts: %s",
                latitude,
                longitude,
                settings.location_resolve_attempts,
                str(e.last_attempt.exception()) if e.last_attempt else "unknown",
            )
            raise ConflictError(
                message="The location could not be saved because of a concurrent update. Please retry.",
                context={
                    "latitude": str(latitude),
                    "longitude": str(longitude),
                    "attempts": settings.location_resolve_attempts,
                },
            ) from e

    @retry(
        retry=retry_if_exception_type(IntegrityError),
        stop=stop_after_attempt(settings.location_resolve_attempts),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=False,
    )
    async def _resolve_with_retry(
        self,
        db: AsyncSession,
        latitude: Decimal,
        longitude: Decimal,
        place_id: Optional[str],
    ) -> Location:
        existing = await self.find(db, latitude, longitude)
        if existing is not None:
            return existing

        location = Location(latitude=latitude, longitude=longitude, place_id=place_id)
        # SAVEPOINT: a unique violation must not poison the caller's transaction
        async with db.begin_nested():
            db.add(location)
            await db.flush()

        logger.info("Created location %s for (%s, %s)", location.id, latitude, longitude)
        return location


# Stateless; one shared instance
location_service = LocationService()
