"""In-memory identity provider for development and tests.

Tokens are opaque strings handed out by ``issue()``; anything else is
rejected.
"""

from uuid import uuid4

from storefront.exceptions import AuthenticationError
from storefront.identity.port import IdentityProvider, VerifiedIdentity


class FakeIdentityProvider(IdentityProvider):
    def __init__(self) -> None:
        self.tokens: dict[str, VerifiedIdentity] = {}

    def issue(self, email: str, subject: str | None = None) -> str:
        token = f"fake-token-{uuid4().hex}"
        self.tokens[token] = VerifiedIdentity(subject=subject or f"user-{uuid4().hex[:8]}", email=email.lower())
        return token

    def verify(self, token: str | None) -> VerifiedIdentity:
        if not token or token not in self.tokens:
            raise AuthenticationError()
        return self.tokens[token]
