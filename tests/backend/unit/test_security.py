"""
Unit tests for core.security module.
Tests password hashing, session token creation/validation and one-time tokens.
"""
import datetime as dt
from types import SimpleNamespace

import jwt
import pytest

from forum.core import security
from forum.core.errors import ExpiredTokenError, InvalidTokenError, TokenGenerationError
from forum.core.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    decode_access_token,
    decode_unverified,
    generate_one_time_token,
    get_token_expiration,
    hash_one_time_token,
    hash_password,
    is_token_expired,
    verify_one_time_token,
    verify_password,
)


def make_user(user_id="64b7f0c2a1b2c3d4e5f60718", role="user"):
    return SimpleNamespace(id=user_id, email="ada@example.com", username="ada", role=role)


def raw_token(**claims) -> str:
    """Sign arbitrary claims with the configured secret."""
    return jwt.encode(claims, security.JWT_SECRET, algorithm=security.JWT_ALG)


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password_returns_different_hash_each_time(self):
        """Password hashing should produce different hashes (salt included)."""
        password = "TestPassword123"
        assert hash_password(password) != hash_password(password)

    def test_verify_password_correct_password(self):
        hashed = hash_password("TestPassword123")
        assert hashed != "TestPassword123"
        assert verify_password("TestPassword123", hashed) is True

    def test_verify_password_incorrect_password(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("WrongPassword456", hashed) is False


class TestSessionTokens:
    """Tests for session token creation and validation."""

    def test_token_carries_identity_claims(self):
        token = create_access_token(make_user(role="admin"))
        payload = decode_access_token(token)
        assert payload["sub"] == "64b7f0c2a1b2c3d4e5f60718"
        assert payload["email"] == "ada@example.com"
        assert payload["username"] == "ada"
        assert payload["role"] == "admin"
        assert payload["iss"] == security.JWT_ISSUER
        assert payload["aud"] == security.JWT_AUDIENCE

    def test_token_expiration_time(self):
        """Token expiration should match configured time."""
        payload = decode_access_token(create_access_token(make_user()))
        diff_minutes = (payload["exp"] - payload["iat"]) / 60
        assert abs(diff_minutes - ACCESS_TOKEN_EXPIRE_MINUTES) < 1

    def test_missing_secret_raises_generation_error(self, monkeypatch):
        monkeypatch.setattr(security, "JWT_SECRET", "")
        with pytest.raises(TokenGenerationError) as exc_info:
            create_access_token(make_user())
        assert exc_info.value.message == "Failed to generate token"
        assert exc_info.value.__cause__ is None

    def test_bad_user_object_raises_generation_error(self):
        with pytest.raises(TokenGenerationError):
            create_access_token(object())

    def test_decode_invalid_token(self):
        with pytest.raises(InvalidTokenError):
            decode_access_token("invalid.token.here")

    def test_decode_wrong_secret(self):
        token = jwt.encode({"sub": "x"}, "wrong-secret", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)

    def test_decode_wrong_audience(self):
        now = dt.datetime.now(dt.timezone.utc)
        token = raw_token(sub="x", iss=security.JWT_ISSUER, aud="someone-else", exp=now + dt.timedelta(minutes=5))
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)

    def test_decode_expired_token(self):
        past = dt.datetime.now(dt.timezone.utc) - dt.timedelta(minutes=5)
        token = raw_token(sub="x", iss=security.JWT_ISSUER, aud=security.JWT_AUDIENCE, exp=past)
        with pytest.raises(ExpiredTokenError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.message == "Token expired."
        assert exc_info.value.status_code == 401

    def test_decode_unverified_reads_claims_of_foreign_token(self):
        token = jwt.encode({"sub": "abc"}, "another-secret", algorithm="HS256")
        assert decode_unverified(token)["sub"] == "abc"
        with pytest.raises(InvalidTokenError):
            decode_unverified("garbage")


class TestExpiryHelpers:

    def test_fresh_token_is_not_expired(self):
        token = create_access_token(make_user())
        assert is_token_expired(token) is False
        expires = get_token_expiration(token)
        assert expires.tzinfo is not None
        assert expires > dt.datetime.now(dt.timezone.utc)

    def test_expired_token(self):
        past = dt.datetime.now(dt.timezone.utc) - dt.timedelta(seconds=10)
        assert is_token_expired(raw_token(sub="x", exp=past)) is True

    def test_unparseable_or_no_exp_counts_as_expired(self):
        assert is_token_expired("garbage") is True
        assert is_token_expired(raw_token(sub="x")) is True
        assert get_token_expiration("garbage") is None
        assert get_token_expiration(raw_token(sub="x")) is None


class TestOneTimeTokens:

    def test_generate_returns_plain_and_hash(self):
        plain, hashed = generate_one_time_token()
        assert len(plain) == 64
        assert hashed == hash_one_time_token(plain)
        assert hashed != plain

    def test_tokens_are_unique(self):
        assert generate_one_time_token()[0] != generate_one_time_token()[0]

    def test_verify_one_time_token(self):
        plain, hashed = generate_one_time_token()
        assert verify_one_time_token(plain, hashed) is True
        assert verify_one_time_token("0" * 64, hashed) is False
        assert verify_one_time_token(plain, None) is False
        assert verify_one_time_token("", hashed) is False
