"""Password hashing, access tokens and account registration."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.db.repositories import fetch_user_by_email, fetch_user_by_id, insert_user
from src.errors import AuthenticationError, ConflictError
from src.models.user import User

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(BCRYPT_ROUNDS)).decode()


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        return False


def create_access_token(
    user_id: str, role: str = "user", *, settings: Settings | None = None
) -> str:
    """Create a signed access token for ``user_id``."""

    settings = settings or get_settings()
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "role": role,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(
        payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )


def decode_access_token(
    token: str, *, settings: Settings | None = None
) -> dict[str, Any]:
    """Verify and decode an access token.

    Raises:
        AuthenticationError: expired, malformed or wrongly signed token.
    """

    settings = settings or get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid token") from exc


@dataclass(slots=True)
class AuthResult:
    user: User
    token: str


class AuthService:
    """Registration, login and token resolution."""

    def __init__(
        self, session: AsyncSession, settings: Settings | None = None
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()

    async def register(
        self, *, first_name: str, last_name: str, email: str, password: str
    ) -> AuthResult:
        email = email.strip().lower()
        if await fetch_user_by_email(self._session, email) is not None:
            raise ConflictError(
                "User with this email already exists", code="USER_EXISTS"
            )

        password_hash = await asyncio.to_thread(hash_password, password)
        user = await insert_user(
            self._session,
            {
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "password_hash": password_hash,
                "role": "user",
            },
        )
        logger.info("Registered user %s", user.id)
        token = create_access_token(user.id, user.role, settings=self._settings)
        return AuthResult(user=user, token=token)

    async def login(self, *, email: str, password: str) -> AuthResult:
        user = await fetch_user_by_email(self._session, email)
        if user is None or not user.is_active:
            raise AuthenticationError(
                "Invalid email or password", code="INVALID_CREDENTIALS"
            )

        matches = await asyncio.to_thread(
            verify_password, password, user.password_hash
        )
        if not matches:
            raise AuthenticationError(
                "Invalid email or password", code="INVALID_CREDENTIALS"
            )

        token = create_access_token(user.id, user.role, settings=self._settings)
        return AuthResult(user=user, token=token)

    async def user_from_token(self, token: str) -> User:
        """Resolve the active user behind a bearer token."""

        claims = decode_access_token(token, settings=self._settings)
        user = await fetch_user_by_id(self._session, str(claims["sub"]))
        if user is None:
            raise AuthenticationError("Invalid token. User not found.")
        return user
