"""
Application error types.

Handlers and services raise these; a single exception handler in
``bistro.main`` maps each one to its HTTP status and a JSON body of the
form ``{"message": ...}``.
"""

from typing import Optional


class BistroError(Exception):
    """Base class for errors that map to a client-visible response."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(BistroError):
    status_code = 400
    default_message = "Bad request"


class InvalidIdentifier(BadRequest):
    """A caller-supplied string is not a valid document identifier."""

    default_message = "Invalid identifier"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid identifier: {value!r}")


class Unauthorized(BistroError):
    status_code = 401
    default_message = "unauthorized access"


class Forbidden(BistroError):
    status_code = 403
    default_message = "forbidden access"


class NotFound(BistroError):
    status_code = 404
    default_message = "Not found"


class PaymentFailed(BistroError):
    status_code = 402
    default_message = "Payment could not be processed"
