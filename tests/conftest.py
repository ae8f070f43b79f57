"""Test fixtures for Taskiq, async runtime and listing rows."""

import os
import sys
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

os.environ["TASKIQ_TESTING"] = "1"

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest

from src.listings.classification import capital_range
from src.models.base import new_object_id
from src.models.listing import Listing
from src.taskiq_app.broker import broker
from src.taskiq_app.dedup import _MEMORY_LOCKS


@pytest.fixture(scope="function", autouse=True)
async def init_taskiq(anyio_backend: str) -> AsyncIterator[None]:
    """Initialize broker per test when using InMemoryBroker."""

    _ = anyio_backend
    _MEMORY_LOCKS.clear()
    await broker.startup()
    yield
    await broker.shutdown()
    _MEMORY_LOCKS.clear()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def _make_listing(**overrides: Any) -> Listing:
    capital = overrides.get("paid_up_capital")
    values: dict[str, Any] = {
        "id": new_object_id(),
        "slug": "sample-business",
        "name": "Sample Business",
        "category": "Technology",
        "description": "Software consulting and support",
        "location": "Bole, Addis Ababa",
        "phone": "+251 911 000 000",
        "email": "info@sample.example",
        "website": "https://sample.example",
        "images": [],
        "paid_up_capital": Decimal(str(capital)) if capital is not None else None,
        "paid_up_capital_range": capital_range(capital).value,
        "manager_info": {"manager_name": "Abebe Kebede", "phone": "+251 911 111 111"},
        "license_number": "LIC-001",
        "tin": "0012345678",
        "meta_description": "Software consulting and support",
        "view_count": 0,
        "favorite_count": 0,
        "is_active": True,
        "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        "updated_at": datetime(2026, 1, 1, tzinfo=UTC),
    }
    values.update(overrides)
    return Listing(**values)


@pytest.fixture
def make_listing() -> Callable[..., Listing]:
    """Build detached ``Listing`` rows with realistic defaults."""

    return _make_listing
