"""Shared-secret API key authentication for the GPT action endpoints."""

import logging
import secrets

from fastapi import Request

from paywall.config import settings
from paywall.errors import ServerMisconfigured, Unauthorized

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
_BEARER_PREFIX = "bearer "


def extract_api_key(request: Request) -> str | None:
    """Return the presented credential, if any.

    ``X-API-Key`` wins over ``Authorization: Bearer <key>`` when both are sent.
    """
    header_key = request.headers.get(API_KEY_HEADER)
    if header_key:
        return header_key

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith(_BEARER_PREFIX):
        return auth_header[len(_BEARER_PREFIX):].strip() or None
    return None


async def require_api_key(request: Request) -> str:
    """FastAPI dependency: reject the request unless it carries the configured key.

    Raises:
        Unauthorized: no credential, or a credential that does not match.
        ServerMisconfigured: ``GPT_API_KEY`` is not configured.
    """
    api_key = extract_api_key(request)
    if not api_key:
        raise Unauthorized("API key is required")

    expected = settings.gpt_api_key
    if not expected:
        raise ServerMisconfigured("GPT_API_KEY is not set in environment variables")

    if not secrets.compare_digest(api_key.encode(), expected.encode()):
        logger.warning("Rejected request with invalid API key on %s", request.url.path)
        raise Unauthorized("Invalid API key")

    return api_key
