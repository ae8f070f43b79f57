"""Per-user favorite routes; only the owner may read or change them."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_current_user
from src.api.responses import success_response
from src.api.schemas import FavoriteRequest
from src.db.session import get_db_session
from src.errors import AuthorizationError, ConflictError, NotFoundError
from src.listings.projection import dump_projection
from src.models.user import User
from src.services.favorite_service import FavoriteService

router = APIRouter(prefix="/users", tags=["favorites"])


def _ensure_owner(user: User, user_id: str) -> None:
    if user.id != user_id:
        raise AuthorizationError(
            "Not authorized to modify favorites", code="UNAUTHORIZED"
        )


async def _favorites_payload(
    service: FavoriteService, user_id: str
) -> list[dict[str, Any]]:
    return [dump_projection(view) for view in await service.list_favorites(user_id)]


@router.get("/{user_id}/favorites")
async def list_favorites(
    user_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    if user.id != user_id and not user.is_admin:
        raise AuthorizationError(
            "Not authorized to view favorites", code="UNAUTHORIZED"
        )
    favorites = await _favorites_payload(FavoriteService(session), user_id)
    return success_response(favorites, "Favorites retrieved successfully")


@router.post("/{user_id}/favorites")
async def add_favorite(
    user_id: str,
    payload: FavoriteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    _ensure_owner(user, user_id)
    service = FavoriteService(session)
    result = await service.add_favorite(user_id, payload.business_id.lower())
    if result["status"] == "not_found":
        raise NotFoundError(str(result["message"]), code="BUSINESS_NOT_FOUND")
    if result["status"] == "already_exists":
        raise ConflictError(str(result["message"]), code="ALREADY_FAVORITE")

    favorites = await _favorites_payload(service, user_id)
    return success_response(favorites, str(result["message"]))


@router.delete("/{user_id}/favorites/{business_id}")
async def remove_favorite(
    user_id: str,
    business_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    _ensure_owner(user, user_id)
    service = FavoriteService(session)
    result = await service.remove_favorite(user_id, business_id.lower())
    if result["status"] == "not_found":
        raise NotFoundError(str(result["message"]), code="NOT_FAVORITE")

    favorites = await _favorites_payload(service, user_id)
    return success_response(favorites, str(result["message"]))
