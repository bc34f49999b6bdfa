class GeomapError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(GeomapError):  # noqa: N818
    """
    Bad input shape, size or type. The message is shown to the user verbatim.

    ``reason`` distinguishes the upload sub-cases: ``file_type``,
    ``file_size``, ``image_limit`` and ``missing_file``; ``foreign_image``
    marks a note naming a hosted image from another user or country.
    """

    status_code = 400

    def __init__(self, message: str, reason: str = "invalid"):
        self.reason = reason
        super().__init__(message)


class Unauthorized(GeomapError):  # noqa: N818
    """Missing, malformed, expired or revoked session credential."""

    status_code = 401
    message = "Authentication failed"


class InvalidCredentials(Unauthorized):  # noqa: N818
    """Unknown username or wrong password. Both cases share one message."""

    message = "Invalid credentials"


class Conflict(GeomapError):  # noqa: N818
    """Username already taken."""

    status_code = 400
    message = "Username already exists"


class RateLimited(GeomapError):  # noqa: N818
    """Too many uploads inside the rolling window."""

    status_code = 429
    message = "Upload limit reached, please try again later"


class UpstreamFailure(GeomapError):  # noqa: N818
    """The external media host is unreachable or returned an error."""

    status_code = 502
    message = "Failed to upload image"


class NotFound(GeomapError):  # noqa: N818
    """Exception raised when a resource does not exist."""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: int | str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found")
