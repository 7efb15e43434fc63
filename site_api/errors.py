"""Error taxonomy shared by services and routers, plus the HTTP mapping.

Services raise these; ``register_exception_handlers`` turns them into the
JSON bodies the frontend expects. Anything else that escapes a handler
becomes a generic 500 without leaking internals.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """A required request field is missing or malformed."""


class NotFound(Exception):
    """Lookup miss."""


class Misconfiguration(Exception):
    """A required server-side setting is absent."""


class DuplicateKey(Exception):
    """A uniqueness constraint was violated on write."""


class DeliveryError(Exception):
    """The mail transport rejected a message.

    ``details`` carries the transport's diagnostic payload (SMTP reply,
    provider error list) when it is safe to show to the caller.
    """

    def __init__(self, message: str, details: Any = None, transport: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.transport = transport


async def _validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def _not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"msg": str(exc)})


async def _misconfiguration_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Server misconfiguration on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500, content={"error": f"Server misconfiguration: {exc}"}
    )


async def _delivery_error_handler(request: Request, exc: DeliveryError) -> JSONResponse:
    logger.error(
        "Mail delivery failed via %s on %s: %s",
        exc.transport or "unknown transport",
        request.url.path,
        exc.message,
    )
    content: dict[str, Any] = {"error": exc.message}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=500, content=content)


async def _duplicate_key_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Write conflict on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500, content={"msg": "Server error", "error": str(exc)}
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Server error"})


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error taxonomy to *app*."""
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(NotFound, _not_found_handler)
    app.add_exception_handler(Misconfiguration, _misconfiguration_handler)
    app.add_exception_handler(DeliveryError, _delivery_error_handler)
    app.add_exception_handler(DuplicateKey, _duplicate_key_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
