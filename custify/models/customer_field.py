"""Custom loyalty fields attached to a shop's customers."""

import uuid

from sqlalchemy import Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from custify.models.base import Base


class CustomerField(Base):
    """Points, coupon code, and note for one customer of one shop.

    Written by the embedded admin UI; this service only reads it for the
    storefront proxy.
    """

    __tablename__ = "customer_fields"
    __table_args__ = (UniqueConstraint("shop", "customer_id", name="uq_customer_fields_shop_customer"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shop: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # Numeric Shopify customer id, stored as text
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    coupon_code: Mapped[str | None] = mapped_column(String(255), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<CustomerField {self.shop}:{self.customer_id}>"
