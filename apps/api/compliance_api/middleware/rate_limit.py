"""
Rate limiting for compliance endpoints
"""
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
import logging

from ..core.config import settings

logger = logging.getLogger(__name__)


def get_client_key(request: Request) -> str:
    """Rate limit key for a request, the client address"""
    return f"ip:{get_remote_address(request)}"


# Create limiter instance
limiter = Limiter(
    key_func=get_client_key,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED
)

# Endpoint specific rate limits
RATE_LIMITS = {
    "upload": "10 per minute",   # Rules document ingestion is expensive (one embedding call per chunk)
    "check": "60 per minute",    # Compliance checks and lookups
    "search": "30 per minute"    # Semantic search embeds every query
}


def setup_rate_limiting(app):
    """Setup rate limiting for the FastAPI application"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info(f"Rate limiting configured (enabled: {settings.RATE_LIMIT_ENABLED})")
