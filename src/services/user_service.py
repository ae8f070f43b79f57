"""Account listing and profile maintenance."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.db.repositories import (
    count_active_users,
    fetch_user_by_email,
    fetch_user_by_id,
    fetch_users_page,
    update_user,
)
from src.errors import BadRequestError
from src.listings.query import Pagination, clamp_page_size
from src.models.user import User

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserPage:
    items: list[tuple[User, int]]
    pagination: Pagination


class UserService:
    """Service layer for account reads and profile updates."""

    def __init__(
        self, session: AsyncSession, settings: Settings | None = None
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()

    async def list_users(self, page: int = 1, limit: int | None = None) -> UserPage:
        """Active accounts, newest first, with their favorite counts."""

        page = max(page, 1)
        limit = clamp_page_size(
            limit,
            default_limit=self._settings.listing_page_size_default,
            max_limit=self._settings.listing_page_size_max,
        )
        rows = await fetch_users_page(
            self._session, skip=(page - 1) * limit, limit=limit
        )
        total = await count_active_users(self._session)
        return UserPage(
            items=rows,
            pagination=Pagination(
                current_page=page, items_per_page=limit, total_items=total
            ),
        )

    async def get_user(self, user_id: str) -> User | None:
        return await fetch_user_by_id(self._session, user_id)

    async def update_profile(
        self,
        user: User,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
    ) -> User:
        """Change name or email; a new email must not belong to another account.

        Raises:
            BadRequestError: ``EMAIL_EXISTS`` when the email is taken.
        """

        values: dict[str, str] = {}
        if first_name is not None:
            values["first_name"] = first_name
        if last_name is not None:
            values["last_name"] = last_name
        if email is not None:
            email = email.strip().lower()
            if email != user.email:
                if await fetch_user_by_email(self._session, email) is not None:
                    raise BadRequestError("Email already in use", code="EMAIL_EXISTS")
                values["email"] = email

        if not values:
            return user

        updated = await update_user(self._session, user.id, values)
        if updated is None:
            return user
        logger.info("Updated profile %s fields=%s", user.id, sorted(values))
        return updated
