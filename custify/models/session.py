"""Shop session model holding the OAuth access token per installation."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from custify.models.base import Base

OFFLINE_SESSION_PREFIX = "offline_"


def offline_session_id(shop: str) -> str:
    """Deterministic session id for a shop's offline token."""
    return f"{OFFLINE_SESSION_PREFIX}{shop}"


class ShopSession(Base):
    """One row per shop installation.

    Offline sessions are keyed by ``offline_<shop>`` so reinstalling overwrites
    the previous token. The user columns are reserved for online (staff-scoped)
    sessions, which this app does not create.
    """

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    shop: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(64), nullable=False, default="authenticated")
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    scope: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Encrypted with custify.core.encryption
    access_token: Mapped[str] = mapped_column(Text, nullable=False)

    # Online-session metadata
    user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_owner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locale: Mapped[str | None] = mapped_column(String(32), nullable=True)
    collaborator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<ShopSession {self.id}>"
