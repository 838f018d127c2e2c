"""
Gateway exceptions.

Every failure the chat endpoint can report is a ``GatewayError`` carrying the
HTTP status it maps to and a message that is safe to show the caller. Errors
found before streaming starts become the response status; errors found after
the 200 has been committed are written into the body as ``{"error": message}``.

Usage:
    from chatgate.utils.exceptions import Forbidden

    raise Forbidden()
"""

from chatgate.config.usage_limits import QUOTA_EXCEEDED_MESSAGE

INTERNAL_ERROR_MESSAGE = "Internal Error"


class GatewayError(Exception):
    """Base class for caller-visible gateway failures."""

    status_code = 500
    default_message = INTERNAL_ERROR_MESSAGE

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> dict[str, str]:
        return {"error": self.message}


class Unauthenticated(GatewayError):
    """401 - no bearer credential was supplied."""

    status_code = 401
    default_message = "Missing bearer token in Authorization header"


class Forbidden(GatewayError):
    """403 - a credential was supplied but did not verify."""

    status_code = 403
    default_message = "Invalid token"


class QuotaExceeded(GatewayError):
    """429 - the user or global monthly ceiling has been reached."""

    status_code = 429
    default_message = QUOTA_EXCEEDED_MESSAGE


class InvalidInput(GatewayError):
    """400 - the body is not JSON or does not match the history schema."""

    status_code = 400
    default_message = "Invalid JSON format in the request body"


class UpstreamAccessDenied(GatewayError):
    """The model provider refused access; only ever reported in-body."""

    default_message = (
        "Access denied to the model provider - "
        "please ensure the model is enabled for this account."
    )


class UpstreamStreamError(GatewayError):
    """The provider ended the stream with an embedded error; only ever reported in-body."""

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message or kind)


class InternalError(GatewayError):
    """500 - opaque failure; the message is fixed so no detail leaks."""

    def __init__(self):
        super().__init__(INTERNAL_ERROR_MESSAGE)


class UsageStoreError(Exception):
    """Raised by usage stores when the backend cannot be read or written."""
