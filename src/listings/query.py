"""Translate listing search requests into store query plans."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement

from src.listings.classification import parse_capital_range, parse_category
from src.models.listing import TEXT_SEARCH_CONFIG, Listing, search_document

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class SortKey(StrEnum):
    NAME = "name"
    VIEWS = "views"
    FAVORITES = "favorites"
    CAPITAL = "capital"
    NEWEST = "newest"
    OLDEST = "oldest"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


_SORT_COLUMNS: dict[SortKey, tuple[Any, SortOrder]] = {
    SortKey.NAME: (Listing.name, SortOrder.ASC),
    SortKey.VIEWS: (Listing.view_count, SortOrder.DESC),
    SortKey.FAVORITES: (Listing.favorite_count, SortOrder.DESC),
    SortKey.CAPITAL: (Listing.paid_up_capital, SortOrder.DESC),
    SortKey.NEWEST: (Listing.created_at, SortOrder.DESC),
    SortKey.OLDEST: (Listing.created_at, SortOrder.ASC),
}

# These keys encode their own direction.
_FIXED_DIRECTION = frozenset({SortKey.NEWEST, SortKey.OLDEST})


@dataclass(slots=True)
class ListingQuery:
    """Caller filters, sort and pagination for a listing search."""

    search: str | None = None
    category: str | None = None
    location: str | None = None
    paid_up_capital_range: str | None = None
    min_capital: Decimal | None = None
    max_capital: Decimal | None = None
    sort_by: str | None = None
    sort_order: str | None = None
    page: int = 1
    limit: int | None = None


@dataclass(slots=True)
class QueryPlan:
    """Predicate, ordering and window ready to run against the store."""

    where: list[ColumnElement[bool]]
    order_by: list[Any]
    skip: int
    limit: int
    page: int
    sort: tuple[str, str]
    search: str | None = None
    rank: ColumnElement[Any] | None = field(default=None, repr=False)


@dataclass(slots=True, frozen=True)
class Pagination:
    """Pagination metadata for one result page."""

    current_page: int
    items_per_page: int
    total_items: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.items_per_page)

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def as_dict(self) -> dict[str, int | bool]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalItems": self.total_items,
            "itemsPerPage": self.items_per_page,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_sort_key(value: str | None) -> SortKey | None:
    if not value:
        return None
    try:
        return SortKey(value.strip().lower())
    except ValueError:
        return None


def _parse_sort_order(value: str | None) -> SortOrder | None:
    if not value:
        return None
    try:
        return SortOrder(value.strip().lower())
    except ValueError:
        return None


def clamp_page_size(
    limit: int | None,
    *,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> int:
    if limit is None or limit < 1:
        return min(default_limit, max_limit)
    return min(limit, max_limit)


def build_query_plan(
    query: ListingQuery,
    *,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> QueryPlan:
    """Build the store plan for a listing search.

    Without an explicit sort key, a search term ranks by descending text
    relevance and everything else falls back to name ascending.
    """

    page = max(query.page or 1, 1)
    limit = clamp_page_size(
        query.limit, default_limit=default_limit, max_limit=max_limit
    )

    where: list[ColumnElement[bool]] = [Listing.is_active.is_(True)]

    search = (query.search or "").strip() or None
    rank: ColumnElement[Any] | None = None
    if search:
        ts_query = func.websearch_to_tsquery(TEXT_SEARCH_CONFIG, search)
        where.append(search_document().op("@@")(ts_query))
        rank = func.ts_rank(search_document(), ts_query)

    category = parse_category(query.category)
    if category is not None:
        where.append(Listing.category == category.value)

    location = (query.location or "").strip()
    if location:
        where.append(
            Listing.location.ilike(f"%{_escape_like(location)}%", escape="\\")
        )

    tier = parse_capital_range(query.paid_up_capital_range)
    if tier is not None:
        where.append(Listing.paid_up_capital_range == tier.value)

    if query.min_capital is not None:
        where.append(Listing.paid_up_capital >= query.min_capital)

    if query.max_capital is not None:
        where.append(Listing.paid_up_capital <= query.max_capital)

    sort_key = _parse_sort_key(query.sort_by)
    order_by: list[Any]
    if sort_key is not None:
        column, default_order = _SORT_COLUMNS[sort_key]
        order = default_order
        if sort_key not in _FIXED_DIRECTION:
            order = _parse_sort_order(query.sort_order) or default_order
        ordered = column.asc() if order is SortOrder.ASC else column.desc()
        if sort_key is SortKey.CAPITAL:
            ordered = ordered.nulls_last()
        order_by = [ordered]
        sort = (sort_key.value, order.value)
    elif rank is not None:
        order_by = [rank.desc()]
        sort = ("relevance", SortOrder.DESC.value)
    else:
        order_by = [Listing.name.asc()]
        sort = (SortKey.NAME.value, SortOrder.ASC.value)
    order_by.append(Listing.id.asc())

    return QueryPlan(
        where=where,
        order_by=order_by,
        skip=(page - 1) * limit,
        limit=limit,
        page=page,
        sort=sort,
        search=search,
        rank=rank,
    )
