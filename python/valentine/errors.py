"""API error codes and the exceptions routes raise.

Services raise ApiError subclasses; responses.api_error_handler turns them
into the error envelope. Integration failures (storage, rasterizer, email,
duplicate acceptance) have their own exception types next to the clients
that raise them and are never sent to clients directly.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Error codes exposed in the error envelope. Format: E_CATEGORY_NAME."""

    E_NOT_FOUND = "E_NOT_FOUND"
    E_PAGE_NOT_FOUND = "E_PAGE_NOT_FOUND"
    E_ARTIFACT_UNAVAILABLE = "E_ARTIFACT_UNAVAILABLE"

    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_SENDER_NAME_REQUIRED = "E_SENDER_NAME_REQUIRED"
    E_INVALID_THEME = "E_INVALID_THEME"

    E_NOT_ACCEPTED = "E_NOT_ACCEPTED"

    E_INTERNAL = "E_INTERNAL"
    E_NOTIFY_FAILED = "E_NOTIFY_FAILED"


ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_PAGE_NOT_FOUND: 404,
    ApiErrorCode.E_ARTIFACT_UNAVAILABLE: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_SENDER_NAME_REQUIRED: 400,
    ApiErrorCode.E_INVALID_THEME: 400,
    ApiErrorCode.E_NOT_ACCEPTED: 409,
    ApiErrorCode.E_INTERNAL: 500,
    # Upstream email provider failed
    ApiErrorCode.E_NOTIFY_FAILED: 502,
}


class ApiError(Exception):
    """Error rendered as an envelope; status_code is derived from code."""

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value}, {self.message!r})"


class NotFoundError(ApiError):
    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class ConflictError(ApiError):
    """The page is not in a state that allows the operation."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_NOT_ACCEPTED, message: str = "Not accepted yet"
    ):
        super().__init__(code, message)
