"""Persistence of per-shop offline access tokens."""

import logging
from typing import Any

from cryptography.fernet import InvalidToken
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from custify.core.encryption import decrypt_token, encrypt_token
from custify.core.exceptions import StoreUnavailable
from custify.models.session import ShopSession, offline_session_id
from custify.schemas.shopify import SessionMetadata

logger = logging.getLogger(__name__)


def _dialect_insert(dialect_name: str) -> Any:
    """``insert`` construct supporting ON CONFLICT for the bound database."""
    if dialect_name == "sqlite":
        return sqlite_insert
    return postgresql_insert


class TokenStore:
    """Read and write shop sessions. Every call goes to the database."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, shop: str) -> str | None:
        """Return the most recently written offline token for ``shop``.

        Returns:
            The decrypted access token, or None if the shop has no session.

        Raises:
            StoreUnavailable: If the database query fails or the stored token
                cannot be decrypted.
        """
        stmt = (
            select(ShopSession.access_token)
            .where(ShopSession.shop == shop, ShopSession.is_online.is_(False))
            .order_by(ShopSession.updated_at.desc())
            .limit(1)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("Error fetching access token for shop %s", shop)
            raise StoreUnavailable() from e

        encrypted = result.scalar_one_or_none()
        if encrypted is None:
            return None

        try:
            return decrypt_token(encrypted)
        except InvalidToken as e:
            logger.error("Stored access token for shop %s cannot be decrypted", shop)
            raise StoreUnavailable() from e

    async def store(
        self,
        shop: str,
        access_token: str,
        metadata: SessionMetadata | None = None,
    ) -> bool:
        """Upsert the shop's offline session in one statement, overwriting every field.

        Concurrent installs for the same shop resolve last-writer-wins.

        Returns:
            True on success, False if the write failed.
        """
        metadata = metadata or SessionMetadata()
        session_id = offline_session_id(shop)
        values = {
            "shop": shop,
            "is_online": False,
            "access_token": encrypt_token(access_token),
            **metadata.model_dump(),
        }

        try:
            insert = _dialect_insert(self.db.get_bind().dialect.name)
            stmt = insert(ShopSession).values(id=session_id, **values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[ShopSession.id],
                set_={**values, "updated_at": func.now()},
            )
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError:
            logger.exception("Error storing access token for shop %s", shop)
            await self.db.rollback()
            return False

        logger.info("Stored access token for shop %s", shop)
        return True

    async def remove(self, shop: str) -> bool:
        """Delete every session (offline and online) for ``shop``.

        Returns:
            True on success, False if the delete failed.
        """
        try:
            result = await self.db.execute(delete(ShopSession).where(ShopSession.shop == shop))
            await self.db.commit()
        except SQLAlchemyError:
            logger.exception("Error removing access tokens for shop %s", shop)
            await self.db.rollback()
            return False

        logger.info("Removed %s session(s) for shop %s", result.rowcount, shop)
        return True
