"""Dependency injection for FastAPI routes."""

from collections.abc import AsyncGenerator
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from custify.core.config import AppConfig, build_app_config, settings
from custify.core.database import get_async_session
from custify.integrations.shopify.state import OAuthStateStore
from custify.services.oauth_service import OAuthHandshake
from custify.services.token_store import TokenStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Alias for get_async_session so tests can override one name."""
    async for session in get_async_session():
        yield session


# Shared Redis connection pool
_redis_pool: aioredis.ConnectionPool | None = None


def _get_redis_pool() -> aioredis.ConnectionPool:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(
            settings.redis_url, decode_responses=True
        )
    return _redis_pool


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """Yield a Redis client from the shared connection pool."""
    pool = _get_redis_pool()
    r = aioredis.Redis(connection_pool=pool)
    try:
        yield r
    finally:
        await r.aclose()


def get_app_config(request: Request) -> AppConfig:
    """Return the process-wide app config, built on first use."""
    config: AppConfig | None = getattr(request.app.state, "app_config", None)
    if config is None:
        config = build_app_config(settings)
        request.app.state.app_config = config
    return config


DBSession = Annotated[AsyncSession, Depends(get_db)]
RedisClient = Annotated[aioredis.Redis, Depends(get_redis)]
Config = Annotated[AppConfig, Depends(get_app_config)]


def get_token_store(db: DBSession) -> TokenStore:
    return TokenStore(db)


Tokens = Annotated[TokenStore, Depends(get_token_store)]


def get_oauth_handshake(config: Config, tokens: Tokens, r: RedisClient) -> OAuthHandshake:
    return OAuthHandshake(config, tokens, OAuthStateStore(r))


Handshake = Annotated[OAuthHandshake, Depends(get_oauth_handshake)]


__all__ = [
    "Config",
    "DBSession",
    "Handshake",
    "RedisClient",
    "Tokens",
    "get_app_config",
    "get_db",
    "get_oauth_handshake",
    "get_redis",
    "get_token_store",
]
