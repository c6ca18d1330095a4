"""FastAPI dependencies shared by the storefront routers."""

import structlog
from fastapi import Header

from storefront.exceptions import AuthenticationError
from storefront.identity import VerifiedIdentity, get_identity_provider

logger = structlog.get_logger(__name__)


def bearer_token(authorization: str | None) -> str | None:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def current_identity(authorization: str | None = Header(default=None)) -> VerifiedIdentity:
    """The verified shopper behind the request's bearer token."""
    token = bearer_token(authorization)
    if token is None:
        logger.warning("Request without bearer token rejected")
        raise AuthenticationError()
    return get_identity_provider().verify(token)
