"""Initial tables for users, listings and favorites.

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

SEARCH_DOCUMENT = (
    "to_tsvector('simple', coalesce(name, '') || ' ' || coalesce(description, ''))"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=24), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=10), server_default="user", nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "listings",
        sa.Column("id", sa.String(length=24), nullable=False),
        sa.Column("slug", sa.String(length=80), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=40), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("latitude", sa.Numeric(precision=10, scale=7), nullable=True),
        sa.Column("longitude", sa.Numeric(precision=10, scale=7), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column("special_offers", sa.String(length=200), nullable=True),
        sa.Column(
            "images",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default="[]",
            nullable=False,
        ),
        sa.Column("paid_up_capital", sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column(
            "paid_up_capital_range",
            sa.String(length=20),
            server_default="Undisclosed",
            nullable=False,
        ),
        sa.Column(
            "manager_info", postgresql.JSONB(astext_type=sa.Text()), nullable=True
        ),
        sa.Column("license_number", sa.String(length=50), nullable=True),
        sa.Column("registration_number", sa.String(length=50), nullable=True),
        sa.Column("tin", sa.String(length=30), nullable=True),
        sa.Column("legal_status", sa.String(length=80), nullable=True),
        sa.Column("registered_date", sa.Date(), nullable=True),
        sa.Column("renewed_from", sa.String(length=20), nullable=True),
        sa.Column("region", sa.String(length=80), nullable=True),
        sa.Column("zone", sa.String(length=80), nullable=True),
        sa.Column("subcity_woreda", sa.String(length=80), nullable=True),
        sa.Column("kebele", sa.String(length=40), nullable=True),
        sa.Column("house_no", sa.String(length=20), nullable=True),
        sa.Column("meta_description", sa.String(length=200), nullable=True),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("favorite_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("uq_listings_slug", "listings", ["slug"], unique=True)
    op.create_index("idx_listings_category", "listings", ["category"])
    op.create_index(
        "idx_listings_capital_range", "listings", ["paid_up_capital_range"]
    )
    op.create_index("idx_listings_location", "listings", ["location"])
    op.create_index("idx_listings_active", "listings", ["is_active"])
    op.create_index(
        "idx_listings_search",
        "listings",
        [sa.text(SEARCH_DOCUMENT)],
        postgresql_using="gin",
    )

    op.create_table(
        "favorites",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=24), nullable=False),
        sa.Column("listing_id", sa.String(length=24), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "listing_id", name="uq_favorites_user_listing"),
    )
    op.create_index("idx_favorites_user", "favorites", ["user_id"])
    op.create_index("idx_favorites_listing", "favorites", ["listing_id"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("idx_favorites_listing", table_name="favorites")
    op.drop_index("idx_favorites_user", table_name="favorites")
    op.drop_table("favorites")

    op.drop_index("idx_listings_search", table_name="listings")
    op.drop_index("idx_listings_active", table_name="listings")
    op.drop_index("idx_listings_location", table_name="listings")
    op.drop_index("idx_listings_capital_range", table_name="listings")
    op.drop_index("idx_listings_category", table_name="listings")
    op.drop_index("uq_listings_slug", table_name="listings")
    op.drop_table("listings")

    op.drop_table("users")
