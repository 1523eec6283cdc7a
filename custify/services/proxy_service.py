"""Customer loyalty lookups for the storefront app proxy."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custify.models.customer_field import CustomerField
from custify.schemas.shopify import ProxyCustomerResponse

logger = logging.getLogger(__name__)


class ProxyService:
    """Reads customer fields for already-verified proxy requests."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_customer_fields(self, shop: str, customer_id: int) -> ProxyCustomerResponse:
        """Return the customer's points and coupon code, zeroed if none are set.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: On database failure.
        """
        stmt = select(CustomerField).where(
            CustomerField.shop == shop,
            CustomerField.customer_id == str(customer_id),
        )
        result = await self.db.execute(stmt)
        field = result.scalar_one_or_none()

        logger.debug("Customer fields lookup %s:%s found=%s", shop, customer_id, field is not None)

        if field is None:
            return ProxyCustomerResponse()
        return ProxyCustomerResponse(
            points=field.points or 0,
            coupon_code=field.coupon_code or "",
            has_data=True,
        )
