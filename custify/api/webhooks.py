"""Shopify webhook handlers."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from custify.core.deps import Config, Tokens
from custify.integrations.shopify.webhooks import verify_webhook
from custify.schemas.shopify import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/app/uninstalled", response_model=WebhookAck)
async def app_uninstalled(
    request: Request,
    config: Config,
    tokens: Tokens,
) -> WebhookAck | JSONResponse:
    """Drop the shop's stored sessions when the app is uninstalled.

    Cleanup failures are logged but still acknowledged so Shopify stops retrying.
    """
    body = await request.body()
    hmac_header = request.headers.get("X-Shopify-Hmac-Sha256", "")
    if not verify_webhook(body, hmac_header, config.webhook_key):
        logger.warning("Rejected app/uninstalled webhook with invalid signature")
        return JSONResponse(
            {"error": "Invalid webhook signature"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    shop = request.headers.get("X-Shopify-Shop-Domain")
    logger.info("App uninstalled for shop: %s", shop)

    if shop and not await tokens.remove(shop):
        logger.error("Failed to remove sessions for uninstalled shop %s", shop)

    return WebhookAck(success=True)
