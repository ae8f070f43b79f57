"""Domain exceptions surfaced to the HTTP layer."""


class DirectoryError(Exception):
    """Base error carrying an HTTP status and a stable error code."""

    status_code = 500
    code = "SERVER_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(DirectoryError):
    status_code = 404
    code = "RESOURCE_NOT_FOUND"


class AuthenticationError(DirectoryError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"


class AuthorizationError(DirectoryError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"


class ConflictError(DirectoryError):
    status_code = 409
    code = "DUPLICATE_RESOURCE"


class SlugCollisionError(ConflictError):
    """No free slug was found within the allowed attempts."""

    code = "SLUG_COLLISION"


class BadRequestError(DirectoryError):
    status_code = 400
    code = "BAD_REQUEST"
