class ClientError(Exception):
    """Base class for errors raised by the client library."""


class ValidationError(ClientError):  # noqa: N818
    """
    Input rejected before any storage or network call.

    ``reason`` is one of ``missing_file``, ``image_limit``, ``file_type``,
    ``file_size``, ``comment_limit`` or ``invalid``.
    """

    def __init__(self, message: str, reason: str = "invalid"):
        self.reason = reason
        super().__init__(message)


class NotFound(ClientError):  # noqa: N818
    """A local note has no image at the requested index."""


class ApiError(ClientError):
    """The server answered with an error status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class SessionExpired(ApiError):  # noqa: N818
    """The server rejected the session credential (HTTP 401)."""


class InvalidCredentials(ApiError):  # noqa: N818
    """Login or registration was refused (wrong password, bad username)."""
