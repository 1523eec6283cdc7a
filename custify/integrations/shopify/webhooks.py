"""Shopify webhook HMAC verification."""

import base64
import hashlib
import hmac


def verify_webhook(data: bytes, hmac_header: str, secret: str) -> bool:
    """Verify a Shopify webhook's HMAC-SHA256 signature.

    Args:
        data: The raw request body bytes.
        hmac_header: The X-Shopify-Hmac-Sha256 header value.
        secret: The webhook secret (or the app's API secret).

    Returns:
        True if the signature is valid.
    """
    if not hmac_header or not secret:
        return False

    computed = base64.b64encode(
        hmac.new(
            secret.encode("utf-8"),
            data,
            hashlib.sha256,
        ).digest()
    )

    # Bytes compare: a non-ASCII header is a mismatch, not a TypeError
    return hmac.compare_digest(computed, hmac_header.encode("utf-8"))
