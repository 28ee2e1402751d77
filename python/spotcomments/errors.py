"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.

Taxonomy:
- InvalidArgument (400): client must fix the request
- Conflict (400): store constraint violation surfaced with a specific message
- Unauthorized (401): missing or invalid session
- Forbidden (403): authenticated but not the resource owner
- NotFound (404)
- Internal (500/503): unexpected, logged, generic message returned
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"
    E_INVALID_TOKEN = "E_INVALID_TOKEN"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_COMMENT_NOT_FOUND = "E_COMMENT_NOT_FOUND"
    E_USER_NOT_FOUND = "E_USER_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_PLAYLIST_ID_REQUIRED = "E_PLAYLIST_ID_REQUIRED"
    E_INVALID_TRACK_URI = "E_INVALID_TRACK_URI"
    E_COMMENT_TEXT_INVALID = "E_COMMENT_TEXT_INVALID"
    E_TOO_MANY_TRACK_URIS = "E_TOO_MANY_TRACK_URIS"
    E_DEV_LOGIN_DISABLED = "E_DEV_LOGIN_DISABLED"

    # Conflict errors (constraint violations, surfaced as 400)
    E_CONSTRAINT_VIOLATION = "E_CONSTRAINT_VIOLATION"

    # Server errors
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_INVALID_TOKEN: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_COMMENT_NOT_FOUND: 404,
    ApiErrorCode.E_USER_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_PLAYLIST_ID_REQUIRED: 400,
    ApiErrorCode.E_INVALID_TRACK_URI: 400,
    ApiErrorCode.E_COMMENT_TEXT_INVALID: 400,
    ApiErrorCode.E_TOO_MANY_TRACK_URIS: 400,
    ApiErrorCode.E_DEV_LOGIN_DISABLED: 400,
    ApiErrorCode.E_CONSTRAINT_VIOLATION: 400,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Authorization failure error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class UnauthorizedError(ApiError):
    """Missing or invalid session."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_UNAUTHENTICATED,
        message: str = "Authentication required",
    ):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Store constraint violation, reported to the caller as a bad request."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_CONSTRAINT_VIOLATION,
        message: str = "Constraint violation",
    ):
        super().__init__(code, message)
