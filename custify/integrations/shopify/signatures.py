"""HMAC-SHA256 verification of Shopify-signed query strings.

Two modes share one canonicalization:

- OAuth callback: keyed with the app's API secret, signature in ``hmac``.
- App proxy: keyed with the shop's stored offline access token, signature in
  ``signature``. Shopify adds tracking parameters that are not part of the
  signed payload, so those are excluded too.
"""

import hashlib
import hmac
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from custify.core.exceptions import StoreUnavailable

if TYPE_CHECKING:
    from custify.services.token_store import TokenStore

logger = logging.getLogger(__name__)

OAUTH_CALLBACK_EXCLUDED = frozenset({"hmac", "signature"})

APP_PROXY_EXCLUDED = frozenset({
    "signature",
    "path_prefix",
    "logged_in_customer_id",
    "_shopify_sa_p",
    "_shopify_sa_t",
    "_shopify_y",
    "_shopify_s",
    "_shopify_d",
})


def collect_params(items: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Flatten query items into a dict, joining repeated keys with commas."""
    grouped: dict[str, list[str]] = {}
    for key, value in items:
        grouped.setdefault(key, []).append(value)
    return {key: ",".join(values) for key, values in grouped.items()}


def canonicalize(params: Mapping[str, str], excluded: Iterable[str]) -> str:
    """Rebuild the signed message: sorted ``key=value`` pairs joined by ``&``.

    Keys sort by code point. Values are used as received, without re-encoding.
    """
    skip = frozenset(excluded)
    pairs = sorted((k, v) for k, v in params.items() if k not in skip)
    return "&".join(f"{k}={v}" for k, v in pairs)


def compute_signature(message: str, key: str) -> str:
    """Hex HMAC-SHA256 of ``message`` under ``key``."""
    return hmac.new(
        key.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def signatures_match(computed: str, received: str) -> bool:
    """Constant-time, case-insensitive comparison of two hex digests.

    Compares UTF-8 bytes so a non-ASCII ``received`` value is a mismatch
    rather than a ``TypeError``.
    """
    return hmac.compare_digest(
        computed.lower().encode("utf-8"),
        received.lower().encode("utf-8"),
    )


def verify_oauth_callback(
    params: Mapping[str, str],
    secret: str,
    *,
    log_details: bool = False,
) -> bool:
    """Verify the ``hmac`` parameter of an OAuth callback.

    Args:
        params: All query parameters from the callback URL.
        secret: The app's API secret.
        log_details: Also log the computed digest on mismatch.

    Returns:
        True if the signature matches.
    """
    received = params.get("hmac", "")
    if not received or not secret:
        return False

    message = canonicalize(params, OAUTH_CALLBACK_EXCLUDED)
    computed = compute_signature(message, secret)
    valid = signatures_match(computed, received)

    if not valid:
        logger.warning(
            "OAuth callback HMAC mismatch for shop %s (message=%r)",
            params.get("shop"),
            message,
        )
        if log_details:
            logger.debug("OAuth callback HMAC computed=%s received=%s", computed, received)
    return valid


async def verify_app_proxy(
    params: Mapping[str, str],
    token_store: "TokenStore",
    *,
    log_details: bool = False,
) -> bool:
    """Verify an app-proxy request against the shop's stored access token.

    Fails closed: a missing shop, signature, or stored token, or a storage
    fault during lookup, all count as an invalid signature.
    """
    shop = params.get("shop")
    received = params.get("signature", "")
    if not shop or not received:
        logger.warning("App proxy request without shop or signature (shop=%s)", shop)
        return False

    try:
        access_token = await token_store.get(shop)
    except StoreUnavailable:
        logger.exception("Token lookup failed during proxy verification for %s", shop)
        return False

    if not access_token:
        logger.warning("No access token stored for shop %s, rejecting proxy request", shop)
        return False

    message = canonicalize(params, APP_PROXY_EXCLUDED)
    computed = compute_signature(message, access_token)
    valid = signatures_match(computed, received)

    if not valid:
        logger.warning(
            "App proxy signature mismatch for shop %s (message=%r, params=%s)",
            shop,
            message,
            sorted(params),
        )
        if log_details:
            logger.debug("App proxy signature computed=%s received=%s", computed, received)
    return valid
