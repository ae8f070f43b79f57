"""Statement-level tests for repository helpers."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from src.db.repositories import (
    adjust_favorite_count,
    delete_favorite,
    fetch_similar_listings,
    increment_view_count,
    insert_favorite,
    fetch_users_page,
    update_listing,
    update_user,
)


def _session_returning(
    value: object = None, rows: list[object] | None = None
) -> AsyncMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalars.return_value.all.return_value = rows or []
    session = AsyncMock()
    session.execute.return_value = result
    session.get_bind = MagicMock()
    session.get_bind.return_value.dialect.name = "postgresql"
    return session


def _compiled(session: AsyncMock, call_index: int = 0) -> str:
    stmt = session.execute.call_args_list[call_index].args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.mark.anyio
async def test_increment_view_count_is_atomic_and_keeps_updated_at() -> None:
    session = _session_returning(8)

    view_count = await increment_view_count(session, "a" * 24)
    sql = _compiled(session)

    assert view_count == 8
    assert "view_count=(listings.view_count +" in sql
    assert "updated_at=listings.updated_at" in sql
    assert "RETURNING listings.view_count" in sql
    session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_adjust_favorite_count_clamps_at_zero() -> None:
    session = _session_returning(0)

    count = await adjust_favorite_count(session, "a" * 24, -1)
    sql = _compiled(session)

    assert count == 0
    assert "greatest(listings.favorite_count +" in sql
    assert "RETURNING listings.favorite_count" in sql


@pytest.mark.anyio
async def test_insert_favorite_on_conflict_leaves_counter_alone() -> None:
    session = _session_returning(None)

    inserted = await insert_favorite(session, "u" * 24, "a" * 24)

    assert inserted is False
    assert session.execute.await_count == 1
    assert "ON CONFLICT ON CONSTRAINT uq_favorites_user_listing DO NOTHING" in (
        _compiled(session)
    )
    session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_insert_favorite_bumps_counter_in_same_transaction() -> None:
    session = _session_returning(42)

    inserted = await insert_favorite(session, "u" * 24, "a" * 24)

    assert inserted is True
    assert session.execute.await_count == 2
    assert "UPDATE listings SET favorite_count=greatest(" in _compiled(session, 1)
    session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_delete_missing_favorite_rolls_back_without_decrement() -> None:
    session = _session_returning(rows=[])

    deleted = await delete_favorite(session, "u" * 24, "a" * 24)

    assert deleted is False
    assert session.execute.await_count == 1
    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()


@pytest.mark.anyio
async def test_delete_favorite_decrements_with_clamp() -> None:
    session = _session_returning(rows=[7])

    deleted = await delete_favorite(session, "u" * 24, "a" * 24)

    assert deleted is True
    assert "greatest(listings.favorite_count +" in _compiled(session, 1)
    session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_fetch_similar_orders_by_engagement_and_filters_tier() -> None:
    session = _session_returning(rows=[])

    await fetch_similar_listings(
        session,
        category="Technology",
        exclude_ids=["a" * 24],
        limit=5,
        capital_range="$1M - $5M",
    )
    sql = _compiled(session)

    assert "listings.category = %(category_1)s" in sql
    assert "listings.id NOT IN" in sql
    assert "listings.paid_up_capital_range = %(paid_up_capital_range_1)s" in sql
    assert (
        "ORDER BY listings.view_count DESC, listings.favorite_count DESC, "
        "listings.id ASC" in sql
    )


@pytest.mark.anyio
async def test_fetch_similar_with_no_room_skips_query() -> None:
    session = _session_returning(rows=[])

    rows = await fetch_similar_listings(
        session, category="Technology", exclude_ids=[], limit=0
    )

    assert rows == []
    session.execute.assert_not_awaited()


@pytest.mark.anyio
async def test_update_listing_refreshes_rows_already_in_session() -> None:
    refreshed = object()
    session = _session_returning(refreshed)

    listing = await update_listing(
        session, "a" * 24, {"name": "Red Sea Trading", "slug": "red-sea-trading"}
    )
    stmt = session.execute.call_args.args[0]
    sql = _compiled(session)

    assert listing is refreshed
    assert stmt.get_execution_options()["populate_existing"] is True
    assert "UPDATE listings SET name=" in sql
    assert "RETURNING listings.id" in sql
    session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_update_user_returns_stored_row() -> None:
    stored = object()
    session = _session_returning(stored)

    user = await update_user(session, "b" * 24, {"first_name": "Hana"})
    stmt = session.execute.call_args.args[0]
    sql = _compiled(session)

    assert user is stored
    assert stmt.get_execution_options()["populate_existing"] is True
    assert "UPDATE users SET first_name=" in sql
    assert "RETURNING users.id" in sql
    session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_fetch_users_page_counts_favorites_per_active_user() -> None:
    session = _session_returning()
    user = object()
    session.execute.return_value.all.return_value = [(user, 3)]

    rows = await fetch_users_page(session, skip=20, limit=10)
    sql = _compiled(session)

    assert rows == [(user, 3)]
    assert "count(favorites.id)" in sql
    assert "LEFT OUTER JOIN favorites ON favorites.user_id = users.id" in sql
    assert "GROUP BY users.id" in sql
    assert "ORDER BY users.created_at DESC, users.id ASC" in sql
