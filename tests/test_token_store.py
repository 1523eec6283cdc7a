"""Tests for TokenStore (per-shop offline sessions)."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from custify.core.encryption import encrypt_token
from custify.core.exceptions import StoreUnavailable
from custify.models.base import Base
from custify.models.session import ShopSession, offline_session_id
from custify.schemas.shopify import SessionMetadata
from custify.services.token_store import TokenStore
from tests.conftest import SHOPIFY_TEST_SHOP

OTHER_SHOP = "other-store.myshopify.com"


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("database is locked"))


class TestGet:
    async def test_absent(self, token_store: TokenStore) -> None:
        """Unknown shop returns None rather than raising."""
        assert await token_store.get(SHOPIFY_TEST_SHOP) is None

    async def test_round_trip(self, token_store: TokenStore) -> None:
        assert await token_store.store(SHOPIFY_TEST_SHOP, "shpat_one") is True

        assert await token_store.get(SHOPIFY_TEST_SHOP) == "shpat_one"

    async def test_isolated_per_shop(self, token_store: TokenStore) -> None:
        await token_store.store(SHOPIFY_TEST_SHOP, "shpat_one")
        await token_store.store(OTHER_SHOP, "shpat_two")

        assert await token_store.get(SHOPIFY_TEST_SHOP) == "shpat_one"
        assert await token_store.get(OTHER_SHOP) == "shpat_two"

    async def test_ignores_online_sessions(
        self, token_store: TokenStore, db_session: AsyncSession
    ) -> None:
        db_session.add(ShopSession(
            id="online-session-1",
            shop=SHOPIFY_TEST_SHOP,
            state="authenticated",
            is_online=True,
            access_token=encrypt_token("shpua_online"),
        ))
        await db_session.commit()

        assert await token_store.get(SHOPIFY_TEST_SHOP) is None

    async def test_storage_failure_raises(self) -> None:
        db = AsyncMock(spec=AsyncSession)
        db.execute.side_effect = _db_error()

        with pytest.raises(StoreUnavailable):
            await TokenStore(db).get(SHOPIFY_TEST_SHOP)

    async def test_undecryptable_token_raises(
        self, token_store: TokenStore, db_session: AsyncSession
    ) -> None:
        db_session.add(ShopSession(
            id=offline_session_id(SHOPIFY_TEST_SHOP),
            shop=SHOPIFY_TEST_SHOP,
            state="authenticated",
            is_online=False,
            access_token="not-a-fernet-token",
        ))
        await db_session.commit()

        with pytest.raises(StoreUnavailable):
            await token_store.get(SHOPIFY_TEST_SHOP)


class TestStore:
    async def test_encrypts_at_rest(
        self, token_store: TokenStore, db_session: AsyncSession
    ) -> None:
        await token_store.store(SHOPIFY_TEST_SHOP, "shpat_secret")

        raw = await db_session.scalar(
            select(ShopSession.access_token).where(ShopSession.shop == SHOPIFY_TEST_SHOP)
        )
        assert raw is not None
        assert raw != "shpat_secret"

    async def test_second_store_overwrites(
        self, token_store: TokenStore, db_session: AsyncSession
    ) -> None:
        """Reinstalling replaces the token instead of adding a row."""
        await token_store.store(SHOPIFY_TEST_SHOP, "shpat_old", SessionMetadata(scope="read_customers"))
        await token_store.store(
            SHOPIFY_TEST_SHOP, "shpat_new", SessionMetadata(scope="read_customers,write_customers")
        )

        count = await db_session.scalar(
            select(func.count()).select_from(ShopSession).where(ShopSession.shop == SHOPIFY_TEST_SHOP)
        )
        assert count == 1
        assert await token_store.get(SHOPIFY_TEST_SHOP) == "shpat_new"

        session = await db_session.get(ShopSession, offline_session_id(SHOPIFY_TEST_SHOP))
        assert session is not None
        assert session.scope == "read_customers,write_customers"

    async def test_writes_metadata(
        self, token_store: TokenStore, db_session: AsyncSession
    ) -> None:
        await token_store.store(
            SHOPIFY_TEST_SHOP,
            "shpat_x",
            SessionMetadata(scope="read_customers", state="authenticated", locale="en"),
        )

        session = await db_session.get(ShopSession, f"offline_{SHOPIFY_TEST_SHOP}")
        assert session is not None
        assert session.shop == SHOPIFY_TEST_SHOP
        assert session.is_online is False
        assert session.state == "authenticated"
        assert session.scope == "read_customers"
        assert session.locale == "en"
        assert session.account_owner is False

    async def test_concurrent_stores_last_writer_wins(self, tmp_path: Path) -> None:
        """Two installs racing on separate connections both succeed, leaving one row."""
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tokens.sqlite'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async def _store(token: str) -> bool:
            async with factory() as session:
                return await TokenStore(session).store(SHOPIFY_TEST_SHOP, token)

        try:
            results = await asyncio.gather(_store("shpat_first"), _store("shpat_second"))
            async with factory() as session:
                count = await session.scalar(select(func.count()).select_from(ShopSession))
                token = await TokenStore(session).get(SHOPIFY_TEST_SHOP)
        finally:
            await engine.dispose()

        assert results == [True, True]
        assert count == 1
        assert token in {"shpat_first", "shpat_second"}

    async def test_storage_failure_returns_false(self) -> None:
        """Write faults are reported, not raised, and the session is rolled back."""
        db = AsyncMock(spec=AsyncSession)
        db.commit.side_effect = _db_error()

        assert await TokenStore(db).store(SHOPIFY_TEST_SHOP, "shpat_x") is False
        db.rollback.assert_awaited_once()


class TestRemove:
    async def test_remove_then_get_absent(self, token_store: TokenStore) -> None:
        await token_store.store(SHOPIFY_TEST_SHOP, "shpat_one")

        assert await token_store.remove(SHOPIFY_TEST_SHOP) is True
        assert await token_store.get(SHOPIFY_TEST_SHOP) is None

    async def test_removes_every_session_for_shop(
        self, token_store: TokenStore, db_session: AsyncSession
    ) -> None:
        await token_store.store(SHOPIFY_TEST_SHOP, "shpat_one")
        await token_store.store(OTHER_SHOP, "shpat_two")
        db_session.add(ShopSession(
            id="online-session-1",
            shop=SHOPIFY_TEST_SHOP,
            state="authenticated",
            is_online=True,
            access_token=encrypt_token("shpua_online"),
        ))
        await db_session.commit()

        await token_store.remove(SHOPIFY_TEST_SHOP)

        remaining = (await db_session.scalars(select(ShopSession.shop))).all()
        assert remaining == [OTHER_SHOP]

    async def test_remove_unknown_shop(self, token_store: TokenStore) -> None:
        assert await token_store.remove("nobody.myshopify.com") is True

    async def test_storage_failure_returns_false(self) -> None:
        db = AsyncMock(spec=AsyncSession)
        db.execute.side_effect = _db_error()

        assert await TokenStore(db).remove(SHOPIFY_TEST_SHOP) is False
