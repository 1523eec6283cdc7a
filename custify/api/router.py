"""Top-level router combining all route modules.

Paths are fixed by the Shopify app configuration (install URL, redirect URL,
webhook subscriptions, app proxy), so nothing is versioned or prefixed.
"""

from fastapi import APIRouter

from custify.api import auth, health, proxy, webhooks

api_router = APIRouter()

api_router.include_router(health.router)

# OAuth install + callback (verified via HMAC and state)
api_router.include_router(auth.router, tags=["auth"])

# Shopify webhooks (no auth - verified via HMAC)
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

# Storefront app proxy (verified via the shop's access token)
api_router.include_router(proxy.router, prefix="/apps", tags=["proxy"])
