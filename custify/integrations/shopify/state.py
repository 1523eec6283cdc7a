"""Short-lived OAuth state nonces kept in Redis.

The install step issues a nonce bound to the shop (pending). The callback
consumes it exactly once (completed); an expired or already used nonce is gone.
"""

import logging
import secrets

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from custify.core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

NONCE_TTL_SECONDS = 600  # 10 minutes
KEY_PREFIX = "shopify_oauth:"


class OAuthStateStore:
    """Issue and consume OAuth ``state`` values."""

    def __init__(self, redis: aioredis.Redis, ttl: int = NONCE_TTL_SECONDS) -> None:
        self.redis = redis
        self.ttl = ttl

    async def issue(self, shop: str) -> str:
        """Create a pending state for ``shop`` and return the nonce."""
        nonce = secrets.token_urlsafe(16)
        try:
            await self.redis.set(f"{KEY_PREFIX}{nonce}", shop, ex=self.ttl)
        except RedisError as e:
            logger.exception("Failed to persist OAuth state for %s", shop)
            raise StoreUnavailable("State storage unavailable") from e
        return nonce

    async def consume(self, nonce: str | None, shop: str) -> bool:
        """Complete a pending state. True only if it exists and belongs to ``shop``.

        The nonce is deleted whether or not the shop matches.
        """
        if not nonce:
            return False

        key = f"{KEY_PREFIX}{nonce}"
        try:
            stored = await self.redis.get(key)
            await self.redis.delete(key)
        except RedisError as e:
            logger.exception("Failed to read OAuth state for %s", shop)
            raise StoreUnavailable("State storage unavailable") from e

        if stored is None:
            logger.warning("Unknown or expired OAuth state for shop %s", shop)
            return False
        if isinstance(stored, bytes):
            stored = stored.decode("utf-8")
        if stored != shop:
            logger.warning("OAuth state issued for %s presented by %s", stored, shop)
            return False
        return True
