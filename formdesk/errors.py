"""Request-level error taxonomy.

Each error maps to one HTTP status and carries a short message that is safe to
show to the caller. Anything more specific (upstream bodies, missing setting
names) is logged server-side by whoever raises the error.
"""

from fastapi import HTTPException


class ServiceError(HTTPException):
    """Base class: ``status_code`` and ``message`` are set per subclass."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=message or self.message)


class BadRequest(ServiceError):
    status_code = 400
    message = "Bad request"


class Forbidden(ServiceError):
    status_code = 403
    message = "Forbidden"


class MethodNotAllowed(ServiceError):
    status_code = 405
    message = "Method not allowed"


class RateLimited(ServiceError):
    status_code = 429
    message = "Too many requests. Please wait a moment."


class InternalError(ServiceError):
    status_code = 500
    message = "Internal server error"


class ServerMisconfiguration(ServiceError):
    status_code = 500
    message = "Server configuration error"


class FormParseError(ServiceError):
    status_code = 500
    message = "Failed to process submission"


class UpstreamFailure(ServiceError):
    status_code = 502
    message = "Upstream service unavailable"
