"""Exception handlers mapping the storefront error taxonomy to HTTP responses.

Protean's own handlers (installed first) cover ``ValidationError`` (400) and
``ObjectNotFoundError`` (404). Everything deriving from ``StorefrontError``
is answered with its status code and public message only.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ExternalServiceError,
    StorefrontError,
)

logger = structlog.get_logger(__name__)


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if isinstance(exc, ExternalServiceError):
        logger.error("External service failed", service=exc.service, detail=exc.detail, path=request.url.path)
    elif isinstance(exc, ConfigurationError):
        logger.error("Storefront misconfigured", setting=exc.setting, path=request.url.path)
    elif isinstance(exc, AuthenticationError):
        logger.warning("Request rejected", reason=exc.message, path=request.url.path)

    message = exc.public_message if exc.status_code >= 500 else exc.message
    return JSONResponse(status_code=exc.status_code, content={"error": message})


def register_storefront_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(StorefrontError, storefront_error_handler)
