"""SQLAlchemy models."""

from custify.models.base import Base
from custify.models.customer_field import CustomerField
from custify.models.session import ShopSession, offline_session_id

__all__ = [
    "Base",
    "ShopSession",
    "offline_session_id",
    "CustomerField",
]
