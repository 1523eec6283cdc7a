"""Shopify OAuth install handshake: authorization redirect and callback exchange."""

import logging
from collections.abc import Mapping

from custify.core.config import AppConfig
from custify.core.exceptions import (
    InvalidShopDomain,
    InvalidSignature,
    InvalidState,
    MissingParameters,
    PersistenceFailed,
)
from custify.integrations.shopify.oauth import (
    admin_app_url,
    build_auth_url,
    exchange_code_for_token,
    is_valid_shop_domain,
)
from custify.integrations.shopify.signatures import verify_oauth_callback
from custify.integrations.shopify.state import OAuthStateStore
from custify.schemas.shopify import SessionMetadata
from custify.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class OAuthHandshake:
    """Two-phase install flow.

    ``initiate`` issues a pending state and returns the authorization URL.
    ``complete`` checks the callback, consumes the state, exchanges the code,
    and stores the token.
    """

    def __init__(
        self,
        config: AppConfig,
        token_store: TokenStore,
        state_store: OAuthStateStore,
    ) -> None:
        self.config = config
        self.token_store = token_store
        self.state_store = state_store

    async def initiate(self, shop: str | None) -> str:
        """Start an install for ``shop`` and return the URL to redirect to.

        Raises:
            InvalidShopDomain: Missing shop or not a ``*.myshopify.com`` domain.
            ServerMisconfigured: API key or app URL not configured.
            StoreUnavailable: The state could not be persisted.
        """
        if not shop:
            raise InvalidShopDomain("Missing shop parameter")
        if not is_valid_shop_domain(shop):
            raise InvalidShopDomain()

        self.config.require("api_key", "app_url")

        nonce = await self.state_store.issue(shop)
        auth_url = build_auth_url(self.config, shop, nonce)
        logger.info("Redirecting %s to Shopify OAuth", shop)
        return auth_url

    async def complete(self, params: Mapping[str, str]) -> str:
        """Finish an install from the callback query and return the admin app URL.

        Raises:
            MissingParameters: ``shop`` or ``code`` absent.
            ServerMisconfigured: API key or secret not configured.
            InvalidSignature: The ``hmac`` does not match.
            InvalidState: The ``state`` is unknown, expired, or for another shop.
            TokenExchangeFailed: Shopify did not issue a token.
            PersistenceFailed: The token could not be stored.
        """
        shop = params.get("shop")
        code = params.get("code")
        logger.info(
            "OAuth callback received for shop=%s (code=%s, state=%s)",
            shop,
            bool(code),
            bool(params.get("state")),
        )

        if not shop or not code:
            raise MissingParameters()

        self.config.require("api_key", "api_secret")

        if not verify_oauth_callback(
            params, self.config.api_secret, log_details=self.config.log_signature_details
        ):
            raise InvalidSignature()

        if not await self.state_store.consume(params.get("state"), shop):
            raise InvalidState()

        token = await exchange_code_for_token(self.config, shop, code)

        stored = await self.token_store.store(
            shop,
            token.access_token,
            SessionMetadata(scope=token.scope, state="authenticated"),
        )
        if not stored:
            raise PersistenceFailed()

        logger.info("Install completed for shop %s", shop)
        return admin_app_url(self.config, shop)
