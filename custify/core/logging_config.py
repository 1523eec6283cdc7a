"""Structured JSON logging configuration."""

import contextvars
import logging
import re
import uuid

from pythonjsonlogger.json import JsonFormatter

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")


class RequestIdFilter(logging.Filter):
    """Inject request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")  # type: ignore[attr-defined]
        return True


# Shopify admin, user, custom-app and storefront token prefixes
ACCESS_TOKEN_PATTERN = re.compile(r"shp(?:at|ua|ca|pa|ss)_[0-9A-Za-z]+")


class AccessTokenRedactFilter(logging.Filter):
    """Mask Shopify access tokens that reach a log message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if ACCESS_TOKEN_PATTERN.search(message):
            record.msg = ACCESS_TOKEN_PATTERN.sub("shp***", message)
            record.args = None
        return True


def setup_logging(*, debug: bool = False) -> None:
    """Configure root logger with JSON formatter, request-id and token redaction filters."""
    handler = logging.StreamHandler()
    formatter = JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    )
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(AccessTokenRedactFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    # SQL echo and connection chatter stay at WARNING even in debug
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def generate_request_id() -> str:
    """Generate a new request ID."""
    return uuid.uuid4().hex[:16]
