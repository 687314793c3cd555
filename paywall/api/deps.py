"""Shared API dependencies: single import point for all routers.

Re-exports authentication and rate limiting dependencies so that router
modules can import everything they need from one place::

    from paywall.api.deps import PROTECTED, get_directory
"""

from fastapi import Depends, Request

from paywall.auth.api_key import require_api_key
from paywall.auth.rate_limit import limit_by_api_key, limit_by_client
from paywall.directory import UserDirectory


def get_directory(request: Request) -> UserDirectory:
    """The directory client created in the application lifespan."""
    return request.app.state.directory


# Gateway limiter, then per-key limiter, then the API key check.
PROTECTED = [
    Depends(limit_by_client),
    Depends(limit_by_api_key),
    Depends(require_api_key),
]

__all__ = [
    "PROTECTED",
    "get_directory",
    "limit_by_api_key",
    "limit_by_client",
    "require_api_key",
]
