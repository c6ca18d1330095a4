"""Tests for bearer-token verification with PyJWT."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from storefront.exceptions import AuthenticationError
from storefront.identity.jwt_adapter import JwtIdentityProvider

KEY = "test-signing-key-with-enough-length-for-hs256"


def _token(key=KEY, **claims):
    defaults = {"sub": "user-1", "email": "Ada@Example.com", "exp": datetime.now(UTC) + timedelta(minutes=5)}
    defaults.update(claims)
    return jwt.encode(defaults, key, algorithm="HS256")


class TestVerified:
    def test_valid_token(self):
        identity = JwtIdentityProvider(key=KEY).verify(_token())
        assert identity.subject == "user-1"
        assert identity.email == "ada@example.com"

    def test_wrong_key_rejected(self):
        with pytest.raises(AuthenticationError):
            JwtIdentityProvider(key=KEY).verify(_token(key="another-signing-key-of-sufficient-length"))

    def test_expired_token_rejected(self):
        with pytest.raises(AuthenticationError):
            JwtIdentityProvider(key=KEY).verify(_token(exp=datetime.now(UTC) - timedelta(minutes=1)))

    def test_audience_checked_when_configured(self):
        provider = JwtIdentityProvider(key=KEY, audience="loveblooms")
        with pytest.raises(AuthenticationError):
            provider.verify(_token(aud="someone-else"))
        assert provider.verify(_token(aud="loveblooms")).subject == "user-1"

    def test_token_without_email_rejected(self):
        with pytest.raises(AuthenticationError):
            JwtIdentityProvider(key=KEY).verify(_token(email=None))

    def test_empty_token_rejected(self):
        with pytest.raises(AuthenticationError):
            JwtIdentityProvider(key=KEY).verify("")


class TestDegradedMode:
    def test_unverified_decode_when_allowed(self):
        provider = JwtIdentityProvider(key=None, allow_unverified=True)
        assert provider.degraded is True
        assert provider.verify(_token(key="any-key-at-all-since-nobody-checks")).email == "ada@example.com"

    def test_no_key_and_not_allowed_rejects_everything(self):
        provider = JwtIdentityProvider(key=None, allow_unverified=False)
        with pytest.raises(AuthenticationError):
            provider.verify(_token())

    def test_garbage_rejected_even_when_degraded(self):
        with pytest.raises(AuthenticationError):
            JwtIdentityProvider(key=None, allow_unverified=True).verify("definitely.not.a-jwt")
