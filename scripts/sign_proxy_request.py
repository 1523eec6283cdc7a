"""Signing helper for simulating Shopify app-proxy requests.

Looks up the shop's stored access token and prints a query string signed the
same way the proxy endpoint verifies it.

Usage:
    uv run python -m scripts.sign_proxy_request my-store.myshopify.com customerId=42

    # Full curl example:
    QS=$(uv run python -m scripts.sign_proxy_request my-store.myshopify.com customerId=42)
    curl "http://localhost:8000/apps/custify-proxy?$QS"
"""

import asyncio
import sys
import time
from urllib.parse import urlencode

from custify.core.database import async_session_maker
from custify.integrations.shopify.signatures import (
    APP_PROXY_EXCLUDED,
    canonicalize,
    compute_signature,
)
from custify.services.token_store import TokenStore


def sign(params: dict[str, str], access_token: str) -> str:
    """Return ``params`` as a query string with a ``signature`` appended."""
    signature = compute_signature(canonicalize(params, APP_PROXY_EXCLUDED), access_token)
    return urlencode({**params, "signature": signature})


async def _load_token(shop: str) -> str | None:
    async with async_session_maker() as session:
        return await TokenStore(session).get(shop)


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__, file=sys.stderr)
        sys.exit(1)

    shop = sys.argv[1]
    extra = dict(arg.split("=", 1) for arg in sys.argv[2:] if "=" in arg)

    token = asyncio.run(_load_token(shop))
    if not token:
        print(f"ERROR: no stored access token for {shop}", file=sys.stderr)
        sys.exit(1)

    params = {"shop": shop, "timestamp": str(int(time.time())), **extra}
    print(sign(params, token), end="")


if __name__ == "__main__":
    main()
