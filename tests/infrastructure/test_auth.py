"""Tests for bearer token authentication."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from dailycart.domain.exceptions import AuthenticationError
from dailycart.domain.value_objects import Role
from dailycart.infrastructure.auth import JwtAuthenticator

SECRET = "test-secret"


def make_token(claims: dict, secret: str = SECRET) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def authenticator() -> JwtAuthenticator:
    return JwtAuthenticator(secret=SECRET, algorithm="HS256")


class TestJwtAuthenticator:
    """Tests for token verification."""

    def test_valid_token(self, authenticator: JwtAuthenticator) -> None:
        principal = authenticator.authenticate(make_token({"sub": "branch-1", "role": "branch"}))

        assert principal.subject_id == "branch-1"
        assert principal.role == Role.BRANCH

    def test_header(self, authenticator: JwtAuthenticator) -> None:
        token = make_token({"sub": "cust-1", "role": "customer"})

        principal = authenticator.authenticate_header(f"Bearer {token}")

        assert principal.role == Role.CUSTOMER

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer"])
    def test_malformed_header(self, authenticator: JwtAuthenticator, header) -> None:
        with pytest.raises(AuthenticationError):
            authenticator.authenticate_header(header)

    def test_wrong_secret(self, authenticator: JwtAuthenticator) -> None:
        token = make_token({"sub": "cust-1", "role": "customer"}, secret="another-secret")

        with pytest.raises(AuthenticationError, match="Invalid bearer token"):
            authenticator.authenticate(token)

    def test_expired(self, authenticator: JwtAuthenticator) -> None:
        expired = datetime.now(timezone.utc) - timedelta(minutes=5)
        token = make_token({"sub": "cust-1", "role": "customer", "exp": expired})

        with pytest.raises(AuthenticationError, match="expired"):
            authenticator.authenticate(token)

    @pytest.mark.parametrize(
        "claims",
        [{"role": "customer"}, {"sub": "x", "role": "superuser"}, {"sub": "x"}],
        ids=["no-subject", "unknown-role", "no-role"],
    )
    def test_bad_claims(self, authenticator: JwtAuthenticator, claims: dict) -> None:
        with pytest.raises(AuthenticationError):
            authenticator.authenticate(make_token(claims))

    def test_garbage(self, authenticator: JwtAuthenticator) -> None:
        with pytest.raises(AuthenticationError):
            authenticator.authenticate("not-a-jwt")
