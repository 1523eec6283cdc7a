"""Pytest configuration and fixtures for the Custify API test suite.

Provides:
- In-memory SQLite database per test (tables created from the models)
- Mock Redis (fakeredis)
- Disabled rate limiting
- A fixed AppConfig injected through dependency overrides
- Signing helpers for OAuth callbacks, app-proxy requests, and webhooks
- Factories for ShopSession and CustomerField rows
"""

import base64
import hashlib
import hmac
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from custify.core.config import AppConfig
from custify.core.deps import get_app_config, get_db, get_redis
from custify.core.rate_limit import limiter
from custify.integrations.shopify.signatures import (
    APP_PROXY_EXCLUDED,
    OAUTH_CALLBACK_EXCLUDED,
    canonicalize,
)
from custify.main import app
from custify.models.base import Base
from custify.models.customer_field import CustomerField
from custify.services.token_store import TokenStore

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SHOPIFY_TEST_API_KEY = "test-shopify-api-key"
SHOPIFY_TEST_API_SECRET = "test-shopify-api-secret"
SHOPIFY_TEST_WEBHOOK_SECRET = "test-shopify-webhook-secret"
SHOPIFY_TEST_APP_URL = "https://custify.example.com"
SHOPIFY_TEST_SHOP = "test-store.myshopify.com"
SHOPIFY_TEST_ACCESS_TOKEN = "shpat_test_access_token_123"
SHOPIFY_TEST_SCOPES = ("read_customers", "write_customers")

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database with all tables, shared across one test's sessions.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Database session for test setup and assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def token_store(db_session: AsyncSession) -> TokenStore:
    return TokenStore(db_session)


# ---------------------------------------------------------------------------
# Fake Redis
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Provide a fresh fakeredis instance per test."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


# ---------------------------------------------------------------------------
# App config
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config() -> AppConfig:
    """Fully populated Shopify config used by route tests."""
    return AppConfig(
        api_key=SHOPIFY_TEST_API_KEY,
        api_secret=SHOPIFY_TEST_API_SECRET,
        app_url=SHOPIFY_TEST_APP_URL,
        scopes=SHOPIFY_TEST_SCOPES,
        webhook_secret=SHOPIFY_TEST_WEBHOOK_SECRET,
    )


# ---------------------------------------------------------------------------
# Client (overrides DB, Redis, config)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: fakeredis.aioredis.FakeRedis,
    app_config: AppConfig,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with all dependencies overridden."""

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as s:
            yield s

    async def _override_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_db] = _override_session
    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_app_config] = lambda: app_config

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def installed_shop(token_store: TokenStore) -> Callable[..., Any]:
    """Factory that stores an offline token for a shop, as a finished install would."""

    async def _install(
        shop: str = SHOPIFY_TEST_SHOP,
        access_token: str = SHOPIFY_TEST_ACCESS_TOKEN,
    ) -> str:
        assert await token_store.store(shop, access_token)
        return access_token

    return _install


@pytest.fixture
def customer_field_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates CustomerField rows in the test database."""

    async def _create(
        *,
        shop: str = SHOPIFY_TEST_SHOP,
        customer_id: str = "42",
        points: int = 150,
        coupon_code: str | None = "LOYAL10",
        note: str | None = None,
    ) -> CustomerField:
        field = CustomerField(
            shop=shop,
            customer_id=customer_id,
            points=points,
            coupon_code=coupon_code,
            note=note,
        )
        db_session.add(field)
        await db_session.commit()
        return field

    return _create


# ---------------------------------------------------------------------------
# Shopify signing helpers
# ---------------------------------------------------------------------------


def _hex_hmac(message: str, key: str) -> str:
    return hmac.new(key.encode(), message.encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def shopify_oauth_hmac() -> Callable[[dict[str, str]], str]:
    """Generate a valid OAuth callback HMAC for query params.

    Usage:
        params = {"code": "abc", "shop": "store.myshopify.com", "state": "nonce123"}
        params["hmac"] = shopify_oauth_hmac(params)
    """

    def _compute(params: dict[str, str]) -> str:
        return _hex_hmac(canonicalize(params, OAUTH_CALLBACK_EXCLUDED), SHOPIFY_TEST_API_SECRET)

    return _compute


@pytest.fixture
def shopify_proxy_signature() -> Callable[..., str]:
    """Generate a valid app-proxy ``signature`` using a shop's access token."""

    def _compute(params: dict[str, str], access_token: str = SHOPIFY_TEST_ACCESS_TOKEN) -> str:
        return _hex_hmac(canonicalize(params, APP_PROXY_EXCLUDED), access_token)

    return _compute


@pytest.fixture
def shopify_webhook_headers() -> Callable[..., dict[str, str]]:
    """Generate Shopify webhook headers for a given body and shop.

    Usage:
        body = b'{"id": 123}'
        headers = shopify_webhook_headers(body, "my-store.myshopify.com")
    """

    def _headers(
        body: bytes,
        shop: str = SHOPIFY_TEST_SHOP,
        secret: str = SHOPIFY_TEST_WEBHOOK_SECRET,
    ) -> dict[str, str]:
        signature = base64.b64encode(
            hmac.new(secret.encode(), body, hashlib.sha256).digest()
        ).decode()
        return {
            "X-Shopify-Hmac-Sha256": signature,
            "X-Shopify-Shop-Domain": shop,
            "Content-Type": "application/json",
        }

    return _headers


# ---------------------------------------------------------------------------
# Outbound HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_shopify_token_exchange() -> Generator[AsyncMock, None, None]:
    """Mock the Shopify OAuth token exchange HTTP call.

    Patches httpx.AsyncClient in oauth.py to return a mock access token + scopes.
    """
    with patch("custify.integrations.shopify.oauth.httpx.AsyncClient") as mock_class:
        mock_client = AsyncMock()
        mock_class.return_value.__aenter__.return_value = mock_client

        mock_response = MagicMock()
        mock_response.json.return_value = {
            "access_token": SHOPIFY_TEST_ACCESS_TOKEN,
            "scope": "read_customers,write_customers",
        }
        mock_response.raise_for_status = MagicMock()
        mock_client.post.return_value = mock_response

        yield mock_client
