"""Repository helpers for listing, user and favorite persistence."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.listings.query import QueryPlan
from src.models.favorite import Favorite
from src.models.listing import Listing
from src.models.user import User


async def fetch_listing_page(session: AsyncSession, plan: QueryPlan) -> list[Listing]:
    """Fetch one page of listings for a query plan."""

    stmt = (
        select(Listing)
        .where(*plan.where)
        .order_by(*plan.order_by)
        .offset(plan.skip)
        .limit(plan.limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_listings(session: AsyncSession, plan: QueryPlan) -> int:
    """Count every listing matching the plan predicate, ignoring the window."""

    stmt = select(func.count()).select_from(Listing).where(*plan.where)
    return int((await session.execute(stmt)).scalar_one_or_none() or 0)


async def fetch_listing_by_id(
    session: AsyncSession, listing_id: str, *, is_active: bool | None = True
) -> Listing | None:
    stmt = select(Listing).where(Listing.id == listing_id)
    if is_active is not None:
        stmt = stmt.where(Listing.is_active == is_active)
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_listing_by_slug(
    session: AsyncSession, slug: str, *, is_active: bool | None = True
) -> Listing | None:
    stmt = select(Listing).where(Listing.slug == slug)
    if is_active is not None:
        stmt = stmt.where(Listing.is_active == is_active)
    return (await session.execute(stmt)).scalar_one_or_none()


async def slug_exists(
    session: AsyncSession, slug: str, *, exclude_id: str | None = None
) -> bool:
    """Return True when any listing, active or not, already owns ``slug``."""

    stmt = select(Listing.id).where(Listing.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Listing.id != exclude_id)
    return (await session.execute(stmt.limit(1))).first() is not None


async def insert_listing(session: AsyncSession, values: dict[str, Any]) -> Listing:
    """Insert a listing and return it with server defaults loaded."""

    listing = Listing(**values)
    session.add(listing)
    await session.commit()
    await session.refresh(listing)
    return listing


async def update_listing(
    session: AsyncSession, listing_id: str, values: dict[str, Any]
) -> Listing | None:
    """Apply a partial update and return the stored row, or None if missing."""

    stmt = (
        update(Listing)
        .where(Listing.id == listing_id)
        .values(**values)
        .returning(Listing)
        # Overwrite any copy already loaded in this session with the new row.
        .execution_options(synchronize_session=False, populate_existing=True)
    )
    listing = (await session.execute(stmt)).scalar_one_or_none()
    await session.commit()
    return listing


async def increment_view_count(session: AsyncSession, listing_id: str) -> int | None:
    """Atomically bump the view counter without touching ``updated_at``."""

    stmt = (
        update(Listing)
        .where(Listing.id == listing_id)
        .values(view_count=Listing.view_count + 1, updated_at=Listing.updated_at)
        .returning(Listing.view_count)
    )
    view_count = (await session.execute(stmt)).scalar_one_or_none()
    await session.commit()
    return view_count


def _favorite_count_update(listing_id: str, delta: int) -> Any:
    return (
        update(Listing)
        .where(Listing.id == listing_id)
        .values(
            favorite_count=func.greatest(Listing.favorite_count + delta, 0),
            updated_at=Listing.updated_at,
        )
        .returning(Listing.favorite_count)
    )


async def adjust_favorite_count(
    session: AsyncSession, listing_id: str, delta: int
) -> int | None:
    """Atomically shift the favorite counter, never below zero."""

    count = (
        await session.execute(_favorite_count_update(listing_id, delta))
    ).scalar_one_or_none()
    await session.commit()
    return count


async def fetch_similar_listings(
    session: AsyncSession,
    *,
    category: str,
    exclude_ids: Iterable[str],
    limit: int,
    capital_range: str | None = None,
) -> list[Listing]:
    """Fetch active same-category listings ranked by engagement."""

    if limit <= 0:
        return []

    stmt = (
        select(Listing)
        .where(Listing.is_active.is_(True))
        .where(Listing.category == category)
        .where(Listing.id.not_in(list(exclude_ids)))
        .order_by(
            Listing.view_count.desc(),
            Listing.favorite_count.desc(),
            Listing.id.asc(),
        )
        .limit(limit)
    )
    if capital_range is not None:
        stmt = stmt.where(Listing.paid_up_capital_range == capital_range)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def _count_active_by(session: AsyncSession, column: Any) -> dict[str, int]:
    stmt = (
        select(column, func.count(Listing.id))
        .where(Listing.is_active.is_(True))
        .group_by(column)
    )
    rows = (await session.execute(stmt)).all()
    return {str(row[0]): int(row[1]) for row in rows}


async def count_by_category(session: AsyncSession) -> dict[str, int]:
    """Count active listings per category."""

    return await _count_active_by(session, Listing.category)


async def count_by_capital_range(session: AsyncSession) -> dict[str, int]:
    """Count active listings per paid-up capital band."""

    return await _count_active_by(session, Listing.paid_up_capital_range)


async def fetch_user_by_id(
    session: AsyncSession, user_id: str, *, is_active: bool | None = True
) -> User | None:
    stmt = select(User).where(User.id == user_id)
    if is_active is not None:
        stmt = stmt.where(User.is_active == is_active)
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_user_by_email(session: AsyncSession, email: str) -> User | None:
    stmt = select(User).where(User.email == email.strip().lower())
    return (await session.execute(stmt)).scalar_one_or_none()


async def insert_user(session: AsyncSession, values: dict[str, Any]) -> User:
    user = User(**values)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def update_user(
    session: AsyncSession, user_id: str, values: dict[str, Any]
) -> User | None:
    """Apply profile changes and return the stored account."""

    stmt = (
        update(User)
        .where(User.id == user_id)
        .values(**values)
        .returning(User)
        .execution_options(synchronize_session=False, populate_existing=True)
    )
    user = (await session.execute(stmt)).scalar_one_or_none()
    await session.commit()
    return user


async def count_active_users(session: AsyncSession) -> int:
    stmt = select(func.count()).select_from(User).where(User.is_active.is_(True))
    return int((await session.execute(stmt)).scalar_one())


async def fetch_users_page(
    session: AsyncSession, *, skip: int, limit: int
) -> list[tuple[User, int]]:
    """Active users, newest first, each paired with its favorite count."""

    favorites_count = func.count(Favorite.id)
    stmt = (
        select(User, favorites_count)
        .outerjoin(Favorite, Favorite.user_id == User.id)
        .where(User.is_active.is_(True))
        .group_by(User.id)
        .order_by(User.created_at.desc(), User.id.asc())
        .offset(skip)
        .limit(limit)
    )
    rows = (await session.execute(stmt)).all()
    return [(row[0], int(row[1])) for row in rows]


async def insert_favorite(session: AsyncSession, user_id: str, listing_id: str) -> bool:
    """Insert a favorite and bump the listing counter in one transaction.

    Returns False when the pair already exists; the counter is left alone.
    """

    dialect_name = session.get_bind().dialect.name

    if dialect_name == "postgresql":
        stmt = (
            pg_insert(Favorite)
            .values(user_id=user_id, listing_id=listing_id)
            .on_conflict_do_nothing(constraint="uq_favorites_user_listing")
            .returning(Favorite.id)
        )
        inserted = (await session.execute(stmt)).scalar_one_or_none() is not None
    else:
        exists_stmt = (
            select(Favorite.id)
            .where(Favorite.user_id == user_id)
            .where(Favorite.listing_id == listing_id)
        )
        inserted = (await session.execute(exists_stmt)).scalar_one_or_none() is None
        if inserted:
            session.add(Favorite(user_id=user_id, listing_id=listing_id))

    if inserted:
        await session.execute(_favorite_count_update(listing_id, 1))
    await session.commit()
    return inserted


async def delete_favorite(session: AsyncSession, user_id: str, listing_id: str) -> bool:
    """Delete a favorite and decrement the listing counter, clamped at zero."""

    delete_stmt = (
        delete(Favorite)
        .where(Favorite.user_id == user_id)
        .where(Favorite.listing_id == listing_id)
        .returning(Favorite.id)
    )
    deleted = (await session.execute(delete_stmt)).scalars().all()

    if not deleted:
        await session.rollback()
        return False

    await session.execute(_favorite_count_update(listing_id, -1))
    await session.commit()
    return True


async def fetch_favorite_listing_ids(
    session: AsyncSession, user_id: str, listing_ids: Iterable[str] | None = None
) -> set[str]:
    """Return the caller's favorite listing IDs, optionally narrowed."""

    stmt = select(Favorite.listing_id).where(Favorite.user_id == user_id)
    if listing_ids is not None:
        wanted = list(listing_ids)
        if not wanted:
            return set()
        stmt = stmt.where(Favorite.listing_id.in_(wanted))
    result = await session.execute(stmt)
    return set(result.scalars().all())


async def fetch_favorite_listings(
    session: AsyncSession, user_id: str, *, limit: int = 200
) -> list[Listing]:
    """Fetch the caller's active favorite listings, newest favorite first."""

    stmt = (
        select(Listing)
        .join(Favorite, Favorite.listing_id == Listing.id)
        .where(Favorite.user_id == user_id)
        .where(Listing.is_active.is_(True))
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
