"""Account directory and profile routes."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.auth import user_payload
from src.api.dependencies import get_current_user, get_optional_user, require_admin
from src.api.responses import paginated_response, success_response
from src.api.schemas import UpdateProfileRequest
from src.db.session import get_db_session
from src.errors import AuthorizationError, NotFoundError
from src.listings.projection import dump_projection
from src.models.user import User
from src.services.favorite_service import FavoriteService
from src.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def _public_payload(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "fullName": user.full_name,
    }


async def _owner_payload(session: AsyncSession, user: User) -> dict[str, Any]:
    favorites = await FavoriteService(session).list_favorites(user.id)
    return {
        **user_payload(user),
        "favorites": [dump_projection(view) for view in favorites],
    }


@router.get("")
async def list_users(
    page: int = 1,
    limit: int | None = None,
    _admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    result = await UserService(session).list_users(page, limit)
    items = [
        {
            **_public_payload(user),
            "email": user.email,
            "role": user.role,
            "favoritesCount": favorites_count,
            "createdAt": user.created_at.isoformat() if user.created_at else None,
        }
        for user, favorites_count in result.items
    ]
    return paginated_response(
        items, result.pagination, "Users retrieved successfully"
    )


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    viewer: User | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    user = await UserService(session).get_user(user_id)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    # Strangers only see the name card.
    if viewer is not None and (viewer.id == user.id or viewer.is_admin):
        data = await _owner_payload(session, user)
    else:
        data = _public_payload(user)
    return success_response(data, "User retrieved successfully")


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    payload: UpdateProfileRequest,
    viewer: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    service = UserService(session)
    user = await service.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    if viewer.id != user.id and not viewer.is_admin:
        raise AuthorizationError(
            "Not authorized to update this profile", code="UNAUTHORIZED"
        )

    updated = await service.update_profile(
        user,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
    )
    data = await _owner_payload(session, updated)
    return success_response(data, "Profile updated successfully")
