"""Keyword categorization and paid-up capital bucketing for listings."""

from __future__ import annotations

import unicodedata
from decimal import Decimal
from enum import StrEnum


class Category(StrEnum):
    """Closed set of business categories."""

    HOSPITALS = "Hospitals"
    RESTAURANTS = "Restaurants"
    IMPORT_EXPORT = "Import/Export"
    RETAIL = "Retail"
    TECHNOLOGY = "Technology"
    EDUCATION = "Education"
    ENTERTAINMENT = "Entertainment"
    AUTOMOTIVE = "Automotive"
    REAL_ESTATE = "Real Estate"
    FINANCE = "Finance"
    LEGAL = "Legal"
    MANUFACTURING = "Manufacturing"
    CONSTRUCTION = "Construction"
    AGRICULTURE = "Agriculture"
    TRANSPORTATION = "Transportation"
    TELECOMMUNICATIONS = "Telecommunications"
    ENERGY = "Energy"
    MINING = "Mining"
    TOURISM = "Tourism"
    SERVICES = "Services"
    OTHER = "Other"


class CapitalRange(StrEnum):
    """Ordered paid-up capital bands, lowest first."""

    UNDER_1K = "Under $1K"
    FROM_1K_TO_5K = "$1K - $5K"
    FROM_5K_TO_10K = "$5K - $10K"
    FROM_10K_TO_50K = "$10K - $50K"
    FROM_50K_TO_100K = "$50K - $100K"
    FROM_100K_TO_500K = "$100K - $500K"
    FROM_500K_TO_1M = "$500K - $1M"
    FROM_1M_TO_5M = "$1M - $5M"
    FROM_5M_TO_10M = "$5M - $10M"
    OVER_10M = "Over $10M"
    UNDISCLOSED = "Undisclosed"


# Order matters: the first category with a keyword hit wins.
CATEGORY_KEYWORDS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.HOSPITALS, ("hospital", "clinic", "medical", "pharmacy", "diagnostic")),
    (Category.RESTAURANTS, ("restaurant", "cafe", "bar", "pizza", "bakery", "coffee")),
    (Category.IMPORT_EXPORT, ("import", "export", "trading", "cargo", "freight")),
    (
        Category.RETAIL,
        ("shop", "store", "market", "supermarket", "boutique", "fashion"),
    ),
    (
        Category.TECHNOLOGY,
        ("tech", "software", "computer", "it", "digital", "system"),
    ),
    (Category.EDUCATION, ("school", "college", "university", "academy", "training")),
    (
        Category.ENTERTAINMENT,
        ("cinema", "theatre", "gaming", "sport", "entertainment"),
    ),
    (Category.AUTOMOTIVE, ("auto", "car", "garage", "vehicle", "mechanic")),
    (
        Category.REAL_ESTATE,
        ("real estate", "property", "developer", "construction"),
    ),
    (Category.FINANCE, ("bank", "insurance", "loan", "credit", "financial")),
    (Category.LEGAL, ("law", "legal", "attorney", "advocate", "court")),
    (
        Category.MANUFACTURING,
        ("factory", "manufacturing", "production", "textile"),
    ),
    (
        Category.CONSTRUCTION,
        ("construction", "contractor", "engineering", "builder"),
    ),
    (Category.AGRICULTURE, ("farm", "agriculture", "crop", "livestock", "dairy")),
    (
        Category.TRANSPORTATION,
        ("transport", "logistics", "delivery", "shipping", "taxi"),
    ),
    (
        Category.TELECOMMUNICATIONS,
        ("telecom", "mobile", "network", "communication"),
    ),
    (Category.ENERGY, ("energy", "power", "solar", "fuel", "electricity")),
    (Category.MINING, ("mining", "quarry", "mineral", "extraction", "geological")),
    (Category.TOURISM, ("tourism", "travel", "resort", "guide", "lodge")),
)

# Lower bound (inclusive) of each monetary band, highest first.
CAPITAL_THRESHOLDS: tuple[tuple[Decimal, CapitalRange], ...] = (
    (Decimal("10000000"), CapitalRange.OVER_10M),
    (Decimal("5000000"), CapitalRange.FROM_5M_TO_10M),
    (Decimal("1000000"), CapitalRange.FROM_1M_TO_5M),
    (Decimal("500000"), CapitalRange.FROM_500K_TO_1M),
    (Decimal("100000"), CapitalRange.FROM_100K_TO_500K),
    (Decimal("50000"), CapitalRange.FROM_50K_TO_100K),
    (Decimal("10000"), CapitalRange.FROM_10K_TO_50K),
    (Decimal("5000"), CapitalRange.FROM_5K_TO_10K),
    (Decimal("1000"), CapitalRange.FROM_1K_TO_5K),
)


def normalize_text(value: str) -> str:
    """Lowercase and strip combining accents."""

    decomposed = unicodedata.normalize("NFD", value.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def categorize(name: str | None, description: str | None = None) -> Category:
    """Derive a category from free text by ordered keyword matching."""

    haystack = normalize_text(f"{name or ''} {description or ''}")
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return category
    return Category.OTHER


def capital_range(amount: Decimal | int | float | None) -> CapitalRange:
    """Map a paid-up capital amount to its band.

    Band lower bounds are inclusive, so ``1000`` lands in ``$1K - $5K``.
    Missing, zero and negative amounts are ``Undisclosed``.
    """

    if amount is None:
        return CapitalRange.UNDISCLOSED
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    if not value.is_finite() or value <= 0:
        return CapitalRange.UNDISCLOSED
    for lower_bound, band in CAPITAL_THRESHOLDS:
        if value >= lower_bound:
            return band
    return CapitalRange.UNDER_1K


def parse_category(value: str | None) -> Category | None:
    """Return the matching category, or None for unknown values."""

    if not value:
        return None
    try:
        return Category(value)
    except ValueError:
        return None


def parse_capital_range(value: str | None) -> CapitalRange | None:
    """Return the matching capital band, or None for unknown values."""

    if not value:
        return None
    try:
        return CapitalRange(value)
    except ValueError:
        return None
