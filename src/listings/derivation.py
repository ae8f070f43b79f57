"""Derived listing fields computed on every write.

The write path calls :func:`derive_listing_fields` before persisting, so the
slug base, capital band, default category and meta description never depend
on a database hook and can be exercised without a store.
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Mapping
from typing import Any

from src.listings.classification import capital_range, categorize

SLUG_MAX_LENGTH = 60
SLUG_SUFFIX_BYTES = 3
META_DESCRIPTION_MAX_LENGTH = 160

# Keeps ASCII alphanumerics, Latin-1 accented letters and the Ethiopic block.
_SLUG_DISALLOWED = re.compile(r"[^a-z0-9\u00e0-\u00f6\u00f8-\u00ff\u1200-\u137f\s_-]")
_SLUG_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(value: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Return the URL slug base for a display name (may be empty)."""

    lowered = value.strip().lower()
    stripped = _SLUG_DISALLOWED.sub("", lowered)
    hyphenated = _SLUG_SEPARATORS.sub("-", stripped).strip("-")
    return hyphenated[:max_length].strip("-")


def with_slug_suffix(base: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Append a random disambiguator while staying within ``max_length``."""

    suffix = secrets.token_hex(SLUG_SUFFIX_BYTES)
    head = base[: max_length - len(suffix) - 1].rstrip("-")
    return f"{head}-{suffix}" if head else suffix


def build_meta_description(
    *,
    name: str,
    category: str,
    location: str | None,
    description: str | None,
    max_length: int = META_DESCRIPTION_MAX_LENGTH,
) -> str:
    """Build the short SEO description used when none is supplied."""

    text = " ".join((description or "").split())
    if text:
        if len(text) <= max_length:
            return text
        head = text[: max_length - 3].rsplit(" ", 1)[0].rstrip(",.;:")
        return f"{head}..."

    fallback = f"{name} - {category} business"
    if location:
        fallback = f"{fallback} in {location}"
    return fallback[:max_length]


def derive_listing_fields(
    values: Mapping[str, Any], current: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Return ``values`` plus the fields derived from them.

    ``current`` holds the persisted state for updates and is None on create.
    The returned ``slug`` is only a base; the write path makes it unique.
    """

    derived = dict(values)
    # The capital band is owned by this pipeline, never by callers.
    derived.pop("paid_up_capital_range", None)
    merged: dict[str, Any] = {**(current or {}), **derived}

    if current is None or "paid_up_capital" in values:
        derived["paid_up_capital_range"] = capital_range(
            merged.get("paid_up_capital")
        ).value

    if current is None and not merged.get("category"):
        derived["category"] = categorize(
            merged.get("name"), merged.get("description")
        ).value
        merged["category"] = derived["category"]

    name_changed = current is not None and (
        "name" in values and values["name"] != current.get("name")
    )
    if current is None or name_changed or not current.get("slug"):
        base = slugify(str(merged.get("name") or ""))
        derived["slug"] = base or None

    supplied_meta = values.get("meta_description")
    if not supplied_meta and (
        current is None
        or "meta_description" in values
        or not current.get("meta_description")
    ):
        derived["meta_description"] = build_meta_description(
            name=str(merged.get("name") or ""),
            category=str(merged.get("category") or ""),
            location=merged.get("location"),
            description=merged.get("description"),
        )

    return derived
