"""Pydantic schemas for Shopify OAuth, sessions, webhooks, and the app proxy."""

from datetime import datetime
from typing import Any

from pydantic import Field

from custify.schemas.common import BaseSchema


class AccessTokenResponse(BaseSchema):
    """Body returned by Shopify's /admin/oauth/access_token endpoint."""

    access_token: str
    scope: str | None = None
    # Only present for online (per-user) tokens
    expires_in: int | None = None
    associated_user_scope: str | None = None
    associated_user: dict[str, Any] | None = None

    @property
    def is_online(self) -> bool:
        return self.associated_user is not None


class SessionMetadata(BaseSchema):
    """Fields written alongside an access token. Every field overwrites on upsert."""

    state: str = "authenticated"
    scope: str | None = None
    expires: datetime | None = None
    user_id: int | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    account_owner: bool = False
    locale: str | None = None
    collaborator: bool = False
    email_verified: bool = False


class WebhookAck(BaseSchema):
    """Acknowledgement returned to Shopify for a processed webhook."""

    success: bool = True


class ProxyCustomerResponse(BaseSchema):
    """Loyalty fields served to the storefront block through the app proxy."""

    points: int = 0
    coupon_code: str = Field(default="", alias="couponCode")
    has_data: bool = Field(default=False, alias="hasData")
    error: str | None = None
