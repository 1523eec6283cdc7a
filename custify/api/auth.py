"""Shopify app install and OAuth callback endpoints."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from custify.core.deps import Handshake
from custify.core.exceptions import CustifyError
from custify.core.rate_limit import INSTALL_RATE_LIMIT, limiter
from custify.integrations.shopify.signatures import collect_params

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/install")
@limiter.limit(INSTALL_RATE_LIMIT)
async def install(request: Request, handshake: Handshake) -> Response:
    """Start Shopify OAuth for the ``shop`` query parameter.

    Errors are returned as plain text since the merchant lands here directly.
    """
    try:
        auth_url = await handshake.initiate(request.query_params.get("shop"))
    except CustifyError as e:
        return PlainTextResponse(e.message, status_code=e.status_code)
    return RedirectResponse(auth_url, status_code=status.HTTP_302_FOUND)


@router.get("/auth/callback")
async def callback(request: Request, handshake: Handshake) -> RedirectResponse:
    """Handle Shopify OAuth callback. Failures render as JSON ``{"error": ...}``."""
    params = collect_params(request.query_params.multi_items())
    app_url = await handshake.complete(params)
    return RedirectResponse(app_url, status_code=status.HTTP_302_FOUND)
