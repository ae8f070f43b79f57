"""Audience-specific listing projections.

Automated agents get :class:`CrawlerListingView`, which never carries contact
details, capital figures or registration metadata. Interactive callers get
:class:`ListingView`, the full record plus a caller-relative favorite flag.
Both are built from one :class:`ListingRecord`.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import date, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.listing import Listing


class Audience(StrEnum):
    CRAWLER = "crawler"
    INTERACTIVE = "interactive"


class _View(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class ManagerInfo(_View):
    manager_name: str | None = None
    manager_name_amh: str | None = None
    phone: str | None = None
    email: str | None = None


class PublicManagerInfo(_View):
    manager_name: str | None = None


class RegistrationInfo(_View):
    license_number: str | None = None
    registration_number: str | None = None
    tin: str | None = None
    legal_status: str | None = None
    registered_date: date | None = None
    renewed_from: str | None = None
    region: str | None = None
    zone: str | None = None
    subcity_woreda: str | None = None
    kebele: str | None = None
    house_no: str | None = None


class Coordinates(_View):
    latitude: float | None = None
    longitude: float | None = None


class ListingRecord(_View):
    """Every outward-facing field of a listing."""

    id: str
    slug: str | None = None
    name: str
    category: str
    description: str | None = None
    location: str
    coordinates: Coordinates | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    special_offers: str | None = None
    images: list[str] = Field(default_factory=list)
    paid_up_capital: float | None = None
    paid_up_capital_range: str
    manager_info: ManagerInfo | None = None
    registration_info: RegistrationInfo
    meta_description: str | None = None
    view_count: int = 0
    favorite_count: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_listing(cls, listing: Listing) -> ListingRecord:
        coordinates = None
        if listing.latitude is not None and listing.longitude is not None:
            coordinates = Coordinates(
                latitude=float(listing.latitude), longitude=float(listing.longitude)
            )
        return cls(
            id=listing.id,
            slug=listing.slug,
            name=listing.name,
            category=listing.category,
            description=listing.description,
            location=listing.location,
            coordinates=coordinates,
            phone=listing.phone,
            email=listing.email,
            website=listing.website,
            special_offers=listing.special_offers,
            images=list(listing.images or []),
            paid_up_capital=float(listing.paid_up_capital)
            if listing.paid_up_capital is not None
            else None,
            paid_up_capital_range=listing.paid_up_capital_range,
            manager_info=ManagerInfo.model_validate(listing.manager_info)
            if listing.manager_info
            else None,
            registration_info=RegistrationInfo(
                license_number=listing.license_number,
                registration_number=listing.registration_number,
                tin=listing.tin,
                legal_status=listing.legal_status,
                registered_date=listing.registered_date,
                renewed_from=listing.renewed_from,
                region=listing.region,
                zone=listing.zone,
                subcity_woreda=listing.subcity_woreda,
                kebele=listing.kebele,
                house_no=listing.house_no,
            ),
            meta_description=listing.meta_description,
            view_count=listing.view_count or 0,
            favorite_count=listing.favorite_count or 0,
            is_active=listing.is_active,
            created_at=listing.created_at,
            updated_at=listing.updated_at,
        )


class ListingView(ListingRecord):
    """Full listing as shown to interactive callers."""

    audience: Literal[Audience.INTERACTIVE] = Field(
        default=Audience.INTERACTIVE, exclude=True
    )
    is_favorite: bool = False


class CrawlerListingView(_View):
    """Reduced listing for search engines and other automated agents."""

    audience: Literal[Audience.CRAWLER] = Field(
        default=Audience.CRAWLER, exclude=True
    )
    id: str
    slug: str | None = None
    name: str
    category: str
    description: str | None = None
    location: str
    website: str | None = None
    special_offers: str | None = None
    images: list[str] = Field(default_factory=list)
    view_count: int = 0
    favorite_count: int = 0
    meta_description: str | None = None
    manager_info: PublicManagerInfo | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


ProjectedListing = ListingView | CrawlerListingView


def to_crawler_view(record: ListingRecord) -> CrawlerListingView:
    manager = None
    if record.manager_info is not None:
        manager = PublicManagerInfo(manager_name=record.manager_info.manager_name)
    return CrawlerListingView(
        id=record.id,
        slug=record.slug,
        name=record.name,
        category=record.category,
        description=record.description,
        location=record.location,
        website=record.website,
        special_offers=record.special_offers,
        images=list(record.images),
        view_count=record.view_count,
        favorite_count=record.favorite_count,
        meta_description=record.meta_description,
        manager_info=manager,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def to_listing_view(record: ListingRecord, *, is_favorite: bool) -> ListingView:
    return ListingView(**dict(record), is_favorite=is_favorite)


def project_listing(
    listing: Listing | ListingRecord,
    audience: Audience,
    favorite_ids: Collection[str] = frozenset(),
) -> ProjectedListing:
    """Shape one listing for ``audience``."""

    record = (
        listing
        if isinstance(listing, ListingRecord)
        else ListingRecord.from_listing(listing)
    )
    if audience is Audience.CRAWLER:
        return to_crawler_view(record)
    return to_listing_view(record, is_favorite=record.id in favorite_ids)


def project_listings(
    listings: Iterable[Listing | ListingRecord],
    audience: Audience,
    favorite_ids: Collection[str] = frozenset(),
) -> list[ProjectedListing]:
    return [project_listing(item, audience, favorite_ids) for item in listings]


def dump_projection(view: ProjectedListing) -> dict[str, Any]:
    """Serialize a projection with camelCase keys."""

    return view.model_dump(mode="json", by_alias=True)
