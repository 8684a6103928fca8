"""
Tripmark Backend — Location SQLAlchemy Model
==============================================

What:  ORM model for the `locations` table: shared geocoordinates.
Why:   Many users bookmark the same places; storing each coordinate pair
       once keeps the table from filling up with duplicates while every
       Bookmark stays a private annotation on top of it.
Who:   Written by LocationService (insert-or-fetch), read by the bookmark
       listing queries.

Table Design Rationale:
    - (latitude, longitude) is a UNIQUE constraint, not just an index.
      It is the only race-proofing for concurrent inserts of the same pair.
    - NUMERIC(10, 7): ~1cm precision, exact equality (floats would make the
      uniqueness rule depend on binary rounding).
    - place_id: optional external place identifier, set on first insert only.
    - Rows are never deleted: other users' bookmarks may point at them.
"""

from decimal import Decimal

from sqlalchemy import Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Location(Base):
    """A deduplicated coordinate pair, optionally tagged with a place id."""

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    latitude: Mapped[Decimal] = mapped_column(
        Numeric(10, 7),
        nullable=False,
        comment="Latitude in decimal degrees",
    )

    longitude: Mapped[Decimal] = mapped_column(
        Numeric(10, 7),
        nullable=False,
        comment="Longitude in decimal degrees",
    )

    place_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        default=None,
        comment="External place identifier (e.g. a maps provider id)",
    )

    __table_args__ = (
        UniqueConstraint("latitude", "longitude", name="uq_locations_latitude_longitude"),
    )

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, lat={self.latitude}, lon={self.longitude})>"
