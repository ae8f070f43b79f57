"""Account registration, login and profile routes."""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_current_user
from src.api.responses import success_response
from src.api.schemas import LoginRequest, RegisterRequest
from src.config import Settings, get_settings
from src.db.session import get_db_session
from src.models.user import User
from src.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def user_payload(user: User) -> dict[str, Any]:
    """Public account fields; never includes the password hash."""

    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "fullName": user.full_name,
        "email": user.email,
        "role": user.role,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    result = await AuthService(session, settings).register(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
    )
    return success_response(
        {"user": user_payload(result.user), "token": result.token},
        "User registered successfully",
    )


@router.post("/login")
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    result = await AuthService(session, settings).login(
        email=payload.email.lower(), password=payload.password
    )
    return success_response(
        {"user": user_payload(result.user), "token": result.token},
        "Login successful",
    )


@router.get("/profile")
async def profile(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return success_response(user_payload(user), "Profile retrieved successfully")
