"""Error taxonomy for vframes-client."""

from http import HTTPStatus


class VFramesError(Exception):
    """Base exception for all client errors."""


class ApiError(VFramesError):
    """Application-level error answered by the remote service."""

    def __init__(
        self,
        message: str,
        status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR,
        code: str | None = None,
    ) -> None:
        """Initialize API error."""
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR


class ValidationError(ApiError):
    """Register or upload payload rejected by the service."""

    def __init__(self, message: str, code: str | None = None) -> None:
        """Initialize validation error."""
        super().__init__(message, status_code=HTTPStatus.BAD_REQUEST, code=code)


class InvalidCredentials(ApiError):
    """Login rejected."""

    def __init__(
        self, message: str = "Invalid email or password", code: str | None = None
    ) -> None:
        """Initialize invalid credentials error."""
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code=code)


class SessionExpired(VFramesError):
    """Refresh exhausted; credentials were cleared and the user must log in again."""

    def __init__(self, message: str = "Session expired, please log in again") -> None:
        """Initialize session expired error."""
        self.message = message
        super().__init__(self.message)


class TransientNetworkError(VFramesError):
    """Timeout or connectivity failure."""


class UnsupportedFileType(VFramesError):
    """Upload rejected because the payload is not a supported video."""


class FileTooLarge(VFramesError):
    """Upload rejected because the payload exceeds the size limit."""
