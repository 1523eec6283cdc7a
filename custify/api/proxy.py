"""Storefront app proxy endpoint serving customer loyalty fields."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from custify.core.deps import Config, DBSession, Tokens
from custify.core.rate_limit import PROXY_RATE_LIMIT, limiter
from custify.integrations.shopify.signatures import collect_params, verify_app_proxy
from custify.schemas.shopify import ProxyCustomerResponse
from custify.services.proxy_service import ProxyService

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(message: str, status_code: int) -> JSONResponse:
    body = ProxyCustomerResponse(error=message)
    return JSONResponse(body.model_dump(by_alias=True), status_code=status_code)


@router.get("/custify-proxy")
@limiter.limit(PROXY_RATE_LIMIT)
async def customer_fields(
    request: Request,
    db: DBSession,
    config: Config,
    tokens: Tokens,
) -> JSONResponse:
    """Return ``{points, couponCode, hasData}`` for a signed storefront request."""
    params = collect_params(request.query_params.multi_items())
    shop = params.get("shop")
    customer_id = params.get("customerId")

    if not shop or not customer_id:
        return _error("Missing required parameters", status.HTTP_400_BAD_REQUEST)

    if not (customer_id.isascii() and customer_id.isdecimal()):
        return _error("Invalid customer ID", status.HTTP_400_BAD_REQUEST)

    if not await verify_app_proxy(params, tokens, log_details=config.log_signature_details):
        return _error("Invalid signature", status.HTTP_403_FORBIDDEN)

    try:
        data = await ProxyService(db).get_customer_fields(shop, int(customer_id))
    except SQLAlchemyError:
        logger.exception("Database error loading customer fields for %s", shop)
        return _error("Database error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(data.model_dump(by_alias=True, exclude_none=True))
