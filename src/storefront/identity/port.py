"""Identity provider port: turns a bearer token into a verified shopper identity."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class VerifiedIdentity:
    subject: str
    email: str


class IdentityProvider(ABC):
    @abstractmethod
    def verify(self, token: str | None) -> VerifiedIdentity:
        """Return the token's identity or raise ``AuthenticationError``."""
        ...
