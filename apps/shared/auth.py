"""
API Key Authentication

Static API key check for mutating blog endpoints.
The Authorization header must equal the configured key exactly; there is
no "Bearer" prefix parsing.
"""

import hmac
import logging
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader

from apps.shared.config import Settings, get_settings
from apps.shared.errors import Unauthorized

# Setup logging
logger = logging.getLogger(__name__)

# API key header name
API_KEY_HEADER = "Authorization"

# FastAPI dependency for API key
api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def is_valid_api_key(api_key: Optional[str], expected: str) -> bool:
    """Exact match using constant-time comparison."""
    if api_key is None:
        return False
    return hmac.compare_digest(api_key.encode(), expected.encode())


async def require_api_key(
    api_key: Optional[str] = Security(api_key_header),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Dependency to validate the API key from the Authorization header

    Without a configured key every request is rejected: 401 in development,
    RuntimeError (500) in production.

    Usage in endpoints:
    @router.post("/protected")
    def protected_endpoint(api_key: str = Depends(require_api_key)):
        # This endpoint requires valid API key
        pass
    """
    if not settings.blog_api_key:
        if settings.is_production:
            raise RuntimeError(
                "BLOG_API_KEY must be set in production. "
                "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        # Development mode - log warning and reject
        logger.warning(
            "BLOG_API_KEY is not set - rejecting request. "
            "Set BLOG_API_KEY environment variable to enable blog mutations."
        )
        raise Unauthorized()

    if not is_valid_api_key(api_key, settings.blog_api_key):
        logger.info("Unauthorized request - invalid API key")
        raise Unauthorized()

    return api_key
