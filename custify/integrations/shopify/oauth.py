"""Shopify OAuth helpers for authorization URLs and token exchange."""

import logging
from urllib.parse import quote, urlencode

import httpx
from pydantic import ValidationError

from custify.core.config import AppConfig
from custify.core.exceptions import TokenExchangeFailed
from custify.schemas.shopify import AccessTokenResponse

logger = logging.getLogger(__name__)

SHOP_DOMAIN_SUFFIX = ".myshopify.com"
CALLBACK_PATH = "/auth/callback"
TOKEN_EXCHANGE_TIMEOUT = 10.0  # seconds


def is_valid_shop_domain(shop: str | None) -> bool:
    """True for a non-empty ``*.myshopify.com`` domain."""
    return bool(shop) and shop.endswith(SHOP_DOMAIN_SUFFIX)


def build_auth_url(config: AppConfig, shop: str, nonce: str) -> str:
    """Build the Shopify OAuth authorization URL.

    Args:
        config: App config with api_key, app_url, and scopes set.
        shop: The shop domain (e.g. mystore.myshopify.com).
        nonce: Random state parameter for CSRF protection.

    Returns:
        The full authorization URL to redirect the merchant to.
    """
    params = urlencode(
        {
            "client_id": config.api_key,
            "scope": ",".join(config.scopes),
            "redirect_uri": f"{config.app_url}{CALLBACK_PATH}",
            "state": nonce,
        },
        quote_via=quote,
    )
    return f"https://{shop}/admin/oauth/authorize?{params}"


def admin_app_url(config: AppConfig, shop: str) -> str:
    """URL of the embedded app inside the shop's admin."""
    return f"https://{shop}/admin/apps/{config.api_key}"


async def exchange_code_for_token(config: AppConfig, shop: str, code: str) -> AccessTokenResponse:
    """Exchange the OAuth authorization code for an access token.

    Not retried; the merchant can restart the install instead.

    Raises:
        TokenExchangeFailed: On a non-2xx response, a transport error, or a body
            without an access token.
    """
    url = f"https://{shop}/admin/oauth/access_token"
    try:
        async with httpx.AsyncClient(timeout=TOKEN_EXCHANGE_TIMEOUT) as client:
            response = await client.post(url, json={
                "client_id": config.api_key,
                "client_secret": config.api_secret,
                "code": code,
            })
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(
            "Token exchange for %s rejected with status %s", shop, e.response.status_code
        )
        raise TokenExchangeFailed() from e
    except httpx.HTTPError as e:
        logger.error("Token exchange for %s failed: %s", shop, e)
        raise TokenExchangeFailed() from e

    try:
        token = AccessTokenResponse.model_validate(data)
    except ValidationError as e:
        logger.error("Token exchange for %s returned no access token", shop)
        raise TokenExchangeFailed() from e

    logger.info(
        "Received %s access token for %s", "online" if token.is_online else "offline", shop
    )
    return token
