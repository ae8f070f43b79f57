"""Response envelopes shared by every API route."""

from datetime import UTC, datetime
from typing import Any

from src.listings.query import Pagination


def _timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def success_response(
    data: Any = None, message: str = "Success", **meta: Any
) -> dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        **meta,
        "timestamp": _timestamp(),
    }


def paginated_response(
    data: list[Any],
    pagination: Pagination,
    message: str = "Success",
    **meta: Any,
) -> dict[str, Any]:
    return success_response(
        data, message, pagination=pagination.as_dict(), **meta
    )


def error_response(
    message: str = "An error occurred",
    code: str = "UNKNOWN_ERROR",
    details: Any = None,
) -> dict[str, Any]:
    return {
        "success": False,
        "error": {"message": message, "code": code, "details": details},
        "timestamp": _timestamp(),
    }
