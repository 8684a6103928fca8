"""Create location, bookmark, collection and friend tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema of the bookmark collection service.
How:   Five tables plus two PostgreSQL enum types (visibility,
       friend_invite_status).

Constraints that carry behavior:
    - uq_locations_latitude_longitude: the only guard against duplicate
      coordinates under concurrent inserts
    - bookmark_collection_map PK (collection_id, bookmark_id): a bookmark
      is mapped into a collection at most once
    - uq_friend_invites_pair: one live friend edge per unordered user pair

Rollback: downgrade() drops everything (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


visibility_enum = sa.Enum("PRIVATE", "FRIENDS_ONLY", "PUBLIC", name="visibility")
friend_invite_status_enum = sa.Enum("PENDING", "ACCEPTED", name="friend_invite_status")


def upgrade() -> None:
    # ── locations ─────────────────────────────────────────────────────────
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("latitude", sa.Numeric(10, 7), nullable=False),
        sa.Column("longitude", sa.Numeric(10, 7), nullable=False),
        sa.Column(
            "place_id",
            sa.String(255),
            nullable=True,
            comment="External place identifier, set when the location is first created",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("latitude", "longitude", name="uq_locations_latitude_longitude"),
    )

    # ── bookmarks ─────────────────────────────────────────────────────────
    op.create_table(
        "bookmarks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column(
            "content",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
            comment="Free-text note about the place",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "deleted_at",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="Soft-delete tombstone",
        ),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bookmarks_user_id", "bookmarks", ["user_id"])
    op.create_index("ix_bookmarks_location_id", "bookmarks", ["location_id"])

    # ── bookmark_collections ──────────────────────────────────────────────
    op.create_table(
        "bookmark_collections",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column(
            "visibility",
            visibility_enum,
            nullable=False,
            server_default=sa.text("'PUBLIC'"),
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # "my collections, newest first" is the dominant read
    op.create_index(
        "idx_bookmark_collections_user_created",
        "bookmark_collections",
        ["user_id", "created_at"],
    )

    # ── bookmark_collection_map ───────────────────────────────────────────
    op.create_table(
        "bookmark_collection_map",
        sa.Column("collection_id", sa.Integer(), nullable=False),
        sa.Column("bookmark_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["collection_id"], ["bookmark_collections.id"]),
        sa.ForeignKeyConstraint(["bookmark_id"], ["bookmarks.id"]),
        sa.PrimaryKeyConstraint("collection_id", "bookmark_id"),
    )
    op.create_index(
        "idx_bookmark_collection_map_bookmark_id",
        "bookmark_collection_map",
        ["bookmark_id"],
    )

    # ── friend_invites ────────────────────────────────────────────────────
    op.create_table(
        "friend_invites",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False, comment="Inviter"),
        sa.Column("friend_id", sa.Integer(), nullable=False, comment="Invitee"),
        sa.Column(
            "status",
            friend_invite_status_enum,
            nullable=False,
            server_default=sa.text("'PENDING'"),
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_friend_invites_user_friend", "friend_invites", ["user_id", "friend_id"])
    op.create_index("idx_friend_invites_friend_user", "friend_invites", ["friend_id", "user_id"])
    # At most one PENDING or ACCEPTED edge per unordered pair
    op.create_index(
        "uq_friend_invites_pair",
        "friend_invites",
        [
            sa.text("(CASE WHEN user_id < friend_id THEN user_id ELSE friend_id END)"),
            sa.text("(CASE WHEN user_id < friend_id THEN friend_id ELSE user_id END)"),
        ],
        unique=True,
    )


def downgrade() -> None:
    """Drop every table in reverse dependency order, then the enum types."""
    op.drop_index("uq_friend_invites_pair", table_name="friend_invites")
    op.drop_index("idx_friend_invites_friend_user", table_name="friend_invites")
    op.drop_index("idx_friend_invites_user_friend", table_name="friend_invites")
    op.drop_table("friend_invites")

    op.drop_index("idx_bookmark_collection_map_bookmark_id", table_name="bookmark_collection_map")
    op.drop_table("bookmark_collection_map")

    op.drop_index("idx_bookmark_collections_user_created", table_name="bookmark_collections")
    op.drop_table("bookmark_collections")

    op.drop_index("ix_bookmarks_location_id", table_name="bookmarks")
    op.drop_index("ix_bookmarks_user_id", table_name="bookmarks")
    op.drop_table("bookmarks")

    op.drop_table("locations")

    friend_invite_status_enum.drop(op.get_bind(), checkfirst=True)
    visibility_enum.drop(op.get_bind(), checkfirst=True)
