"""Listing table model."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from src.models.base import Base, new_object_id

TEXT_SEARCH_CONFIG = "simple"


class Listing(Base):
    """Business directory listing curated by administrators."""

    __tablename__ = "listings"
    __table_args__ = (
        Index("uq_listings_slug", "slug", unique=True),
        Index("idx_listings_category", "category"),
        Index("idx_listings_capital_range", "paid_up_capital_range"),
        Index("idx_listings_location", "location"),
        Index("idx_listings_active", "is_active"),
    )

    id: Mapped[str] = mapped_column(
        String(24), primary_key=True, default=new_object_id
    )
    slug: Mapped[str | None] = mapped_column(String(80), nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7), nullable=True)
    longitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)
    special_offers: Mapped[str | None] = mapped_column(String(200), nullable=True)
    images: Mapped[list[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default="[]"
    )
    paid_up_capital: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2), nullable=True
    )
    paid_up_capital_range: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Undisclosed", server_default="Undisclosed"
    )
    manager_info: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    license_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    tin: Mapped[str | None] = mapped_column(String(30), nullable=True)
    legal_status: Mapped[str | None] = mapped_column(String(80), nullable=True)
    registered_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    renewed_from: Mapped[str | None] = mapped_column(String(20), nullable=True)
    region: Mapped[str | None] = mapped_column(String(80), nullable=True)
    zone: Mapped[str | None] = mapped_column(String(80), nullable=True)
    subcity_woreda: Mapped[str | None] = mapped_column(String(80), nullable=True)
    kebele: Mapped[str | None] = mapped_column(String(40), nullable=True)
    house_no: Mapped[str | None] = mapped_column(String(20), nullable=True)

    meta_description: Mapped[str | None] = mapped_column(String(200), nullable=True)
    view_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    favorite_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


def search_document() -> ColumnElement[Any]:
    """Return the tsvector expression backing listing text search."""

    return func.to_tsvector(
        TEXT_SEARCH_CONFIG,
        func.coalesce(Listing.name, "")
        + " "
        + func.coalesce(Listing.description, ""),
    )


Index("idx_listings_search", search_document(), postgresql_using="gin")
