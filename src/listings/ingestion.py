"""Map raw business registry rows into listing payloads."""

from __future__ import annotations

import csv
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from src.listings.classification import categorize
from src.listings.schemas import ListingCreate

LOCATION_FALLBACK = "Location not specified"
_ADDRESS_KEYS = ("region", "zone", "subcity_woreda", "kebele", "house_no")


@dataclass(slots=True)
class ImportResult:
    """Outcome of a bulk import; failed rows never abort the batch."""

    count: int = 0
    listing_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _text(record: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = record.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _capital(record: Mapping[str, Any]) -> Decimal | None:
    for key in ("paid_up_capital", "paidup_capital", "capital"):
        raw = record.get(key)
        if raw in (None, ""):
            continue
        try:
            value = Decimal(str(raw).replace(",", ""))
        except InvalidOperation:
            continue
        if value > 0:
            return value
    return None


def _registered_date(record: Mapping[str, Any]) -> str | None:
    raw = _text(record, "registered_date")
    # Registry exports carry full timestamps; only the date part matters.
    return raw[:10] if raw else None


def record_to_payload(record: Mapping[str, Any]) -> ListingCreate:
    """Build a validated create payload from one registry row.

    Raises:
        ValueError: the row has no usable business name.
        pydantic.ValidationError: a field fails listing validation.
    """

    name = _text(record, "trade_name", "name_eng", "name")
    if not name:
        raise ValueError("missing trade name")
    description = _text(record, "description")

    address = [_text(record, key) for key in _ADDRESS_KEYS]
    location = ", ".join(part for part in address if part) or LOCATION_FALLBACK

    manager_name = _text(
        record, "manager_name_eng_x", "manager_name", "manager_name_eng_y"
    )
    manager_name_amh = _text(record, "manager_name_amh")
    manager_info = None
    if manager_name or manager_name_amh:
        manager_info = {
            "manager_name": manager_name,
            "manager_name_amh": manager_name_amh,
        }

    return ListingCreate.model_validate(
        {
            "name": name[:100],
            "category": categorize(name, description).value,
            "description": description,
            "location": location,
            "phone": _text(record, "phone", "mobile", "phone_number"),
            "email": _text(record, "email"),
            "website": _text(record, "website"),
            "paid_up_capital": _capital(record),
            "manager_info": manager_info,
            "registration_info": {
                "license_number": _text(record, "license_number", "license_no"),
                "registration_number": _text(record, "registration_number"),
                "tin": _text(record, "tin"),
                "legal_status": _text(record, "legal_status"),
                "registered_date": _registered_date(record),
                "renewed_from": _text(record, "renewed_from_raw", "renewed_from"),
                **dict(zip(_ADDRESS_KEYS, address)),
            },
        }
    )


def parse_records(
    records: Iterable[Mapping[str, Any]],
) -> tuple[list[tuple[int, ListingCreate]], list[str]]:
    """Validate every row, returning ``(row_number, payload)`` pairs and errors."""

    payloads: list[tuple[int, ListingCreate]] = []
    errors: list[str] = []
    for index, record in enumerate(records, start=1):
        try:
            payloads.append((index, record_to_payload(record)))
        except ValidationError as exc:
            fields = ", ".join(
                ".".join(str(part) for part in err["loc"]) for err in exc.errors()
            )
            errors.append(f"row {index}: invalid fields ({fields})")
        except ValueError as exc:
            errors.append(f"row {index}: {exc}")
    return payloads, errors


def load_records(path: Path) -> list[dict[str, Any]]:
    """Load registry rows from a JSON array or a CSV file with a header row."""

    if path.suffix.lower() == ".csv":
        with path.open(newline="", encoding="utf-8-sig") as handle:
            return [dict(row) for row in csv.DictReader(handle)]

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("records") or data.get("data") or []
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of records")
    return [row for row in data if isinstance(row, dict)]
