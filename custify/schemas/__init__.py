"""Pydantic schemas for request/response validation."""

from custify.schemas.common import ErrorResponse, HealthResponse
from custify.schemas.shopify import (
    AccessTokenResponse,
    ProxyCustomerResponse,
    SessionMetadata,
    WebhookAck,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "AccessTokenResponse",
    "SessionMetadata",
    "WebhookAck",
    "ProxyCustomerResponse",
]
