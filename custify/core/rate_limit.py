"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

# Storefront traffic reaches the proxy through Shopify, so limits are per shopper IP
PROXY_RATE_LIMIT = "60/minute"
INSTALL_RATE_LIMIT = "20/minute"


def _get_real_client_ip(request: Request) -> str:
    """Extract the real client IP behind a reverse proxy."""
    return (
        request.headers.get("CF-Connecting-IP")
        or request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        or (request.client.host if request.client else "127.0.0.1")
    )


limiter = Limiter(key_func=_get_real_client_ip)
