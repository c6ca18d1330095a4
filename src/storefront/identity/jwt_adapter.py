"""JWT identity provider backed by PyJWT.

With a configured key the token's signature, expiry and (when configured)
audience and issuer are verified. Without a key the provider either rejects
everything or, outside production, runs in a degraded mode that decodes the
claims without verifying the signature and logs a warning on every use.
"""

from collections.abc import Sequence

import jwt
import structlog

from storefront.exceptions import AuthenticationError
from storefront.identity.port import IdentityProvider, VerifiedIdentity

logger = structlog.get_logger(__name__)


class JwtIdentityProvider(IdentityProvider):
    def __init__(
        self,
        key: str | None,
        algorithms: Sequence[str] = ("HS256",),
        audience: str | None = None,
        issuer: str | None = None,
        allow_unverified: bool = False,
    ) -> None:
        self.key = key
        self.algorithms = list(algorithms)
        self.audience = audience
        self.issuer = issuer
        self.allow_unverified = allow_unverified

    @property
    def degraded(self) -> bool:
        return self.key is None and self.allow_unverified

    def _decode(self, token: str) -> dict:
        if self.key is not None:
            return jwt.decode(
                token,
                self.key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )

        if self.allow_unverified:
            logger.warning("Identity token accepted without signature verification", mode="degraded")
            return jwt.decode(token, options={"verify_signature": False})

        logger.warning("Identity token rejected, no verification key configured")
        raise AuthenticationError()

    def verify(self, token: str | None) -> VerifiedIdentity:
        if not token:
            raise AuthenticationError()

        try:
            claims = self._decode(token)
        except jwt.PyJWTError as exc:
            logger.warning("Identity token rejected", error=str(exc))
            raise AuthenticationError() from exc

        email = claims.get("email")
        if not email:
            logger.warning("Identity token has no email claim", subject=claims.get("sub"))
            raise AuthenticationError()

        return VerifiedIdentity(subject=str(claims.get("sub", "")), email=str(email).lower())
