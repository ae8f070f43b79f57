"""FastAPI dependencies for callers: identity, role and audience."""

import logging

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.db.session import get_db_session
from src.errors import AuthenticationError, AuthorizationError
from src.listings.projection import Audience
from src.models.user import User
from src.services.auth_service import AuthService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

CRAWLER_CACHE_HEADERS = {
    "Cache-Control": "public, max-age=3600, s-maxage=7200",
    "X-Robots-Tag": "index, follow, noarchive",
    "Vary": "User-Agent",
}


def is_crawler_request(request: Request, patterns: list[str]) -> bool:
    """Classify a request as an indexing client rather than an interactive one.

    A request counts as a crawler when its user agent matches a known pattern,
    when it sends no ``Accept`` header or only ``*/*``, when it is a ``HEAD``
    request, or when it asks for HTML without JSON and without
    ``X-Requested-With``.
    """

    user_agent = request.headers.get("user-agent", "").lower()
    if any(pattern in user_agent for pattern in patterns):
        return True

    accept = request.headers.get("accept", "").strip()
    if not accept or accept == "*/*":
        return True
    if request.method == "HEAD":
        return True

    wants_html_only = "text/html" in accept and "application/json" not in accept
    return wants_html_only and "x-requested-with" not in request.headers


def get_audience(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
) -> Audience:
    if not is_crawler_request(request, settings.crawler_user_agent_patterns):
        return Audience.INTERACTIVE

    response.headers.update(CRAWLER_CACHE_HEADERS)
    logger.debug(
        "Crawler detected: %s accessing %s",
        request.headers.get("user-agent", ""),
        request.url.path,
    )
    return Audience.CRAWLER


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """Resolve the caller when a valid token is present; ignore bad tokens."""

    if credentials is None:
        return None
    try:
        user = await AuthService(session, settings).user_from_token(
            credentials.credentials
        )
    except AuthenticationError:
        return None
    return user if user.is_active else None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> User:
    if credentials is None:
        raise AuthenticationError("Access denied. No token provided.")
    user = await AuthService(session, settings).user_from_token(
        credentials.credentials
    )
    if not user.is_active:
        raise AuthenticationError("Account is deactivated.")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError("Access denied. Admin privileges required.")
    return user
