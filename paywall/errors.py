"""Error taxonomy shared by handlers, services and external clients.

Every error carries the HTTP status it maps to; ``paywall.main`` turns them
into JSON responses.
"""

from fastapi import status


class PaywallError(Exception):
    """Base class for errors with a well-defined HTTP mapping."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadRequest(PaywallError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class Unauthorized(PaywallError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "API key is required"


class NotFound(PaywallError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class RateLimited(PaywallError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many requests"

    def __init__(self, retry_after: int, detail: str | None = None) -> None:
        super().__init__(detail)
        self.retry_after = retry_after


class InvalidSignature(PaywallError):
    """Webhook payload failed provider signature verification."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid signature"


class ServerMisconfigured(PaywallError):
    """A required secret or setting is missing.

    ``reason`` is for the logs only; clients always get the generic detail so
    configuration state is not leaked.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Server configuration error"

    def __init__(self, reason: str) -> None:
        super().__init__()
        self.reason = reason


class UpstreamFailure(PaywallError):
    default_detail = "Upstream service failure"


class DirectoryError(UpstreamFailure):
    default_detail = "User directory request failed"


class BillingError(UpstreamFailure):
    default_detail = "Billing provider request failed"
