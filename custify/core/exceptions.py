"""Error taxonomy for the OAuth, token store, and app proxy flows."""

from fastapi import status


class ConfigurationError(Exception):
    """A required deployment setting is absent."""


class CustifyError(Exception):
    """Base class for errors surfaced to the client as an HTTP response.

    ``message`` is short and safe to return; it never includes secret-derived values.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidShopDomain(CustifyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid shop domain"


class ServerMisconfigured(CustifyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "App not configured properly"


class MissingParameters(CustifyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Missing required parameters"


class InvalidSignature(CustifyError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Invalid request signature"


class InvalidState(CustifyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid or expired state"


class TokenExchangeFailed(CustifyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Failed to get access token"


class PersistenceFailed(CustifyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Failed to store access token"


class StoreUnavailable(CustifyError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Storage unavailable"
