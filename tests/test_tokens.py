"""Tests for session and invite tokens."""

from datetime import timedelta
from types import SimpleNamespace

import jwt
import pytest

from teamchat.errors import AuthenticationError, ConfigurationError, ValidationError
from teamchat.services import tokens
from teamchat.settings import settings


def test_session_token_round_trip():
    user = SimpleNamespace(id=42, email="a@example.com")
    token = tokens.create_session_token(user)
    assert tokens.read_session_token(token) == 42

    claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    assert claims["typ"] == tokens.SESSION_TOKEN_TYPE
    assert claims["exp"] - claims["iat"] == settings.session_expire_hours * 3600


def test_expired_session_token_is_rejected():
    token = tokens.encode_token({"sub": "1"}, tokens.SESSION_TOKEN_TYPE, timedelta(seconds=-10))
    with pytest.raises(AuthenticationError) as exc:
        tokens.read_session_token(token)
    assert exc.value.message == "Invalid or expired token"


def test_wrong_signature_is_rejected():
    token = jwt.encode({"sub": "1", "typ": "session"}, "another-secret-that-is-also-long-enough", algorithm="HS256")
    with pytest.raises(AuthenticationError):
        tokens.read_session_token(token)


def test_invite_token_cannot_be_used_as_session():
    token = tokens.create_invite_token("a@example.com", channel_id=3)
    with pytest.raises(AuthenticationError):
        tokens.read_session_token(token)


def test_invite_token_claims():
    token = tokens.create_invite_token("a@example.com", workspace_id=7)
    claims = tokens.read_invite_token(token)
    assert claims["email"] == "a@example.com"
    assert claims["workspace_id"] == 7
    assert "channel_id" not in claims
    assert claims["exp"] - claims["iat"] == settings.invite_expire_days * 86400

    assert tokens.create_invite_token("a@example.com", workspace_id=7) != token


def test_invite_token_requires_exactly_one_target():
    with pytest.raises(ValueError):
        tokens.create_invite_token("a@example.com")
    with pytest.raises(ValueError):
        tokens.create_invite_token("a@example.com", workspace_id=1, channel_id=2)


def test_session_token_cannot_be_used_as_invite():
    token = tokens.create_session_token(SimpleNamespace(id=1, email="a@example.com"))
    with pytest.raises(ValidationError):
        tokens.read_invite_token(token)


def test_missing_secret(monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", None)
    with pytest.raises(ConfigurationError):
        tokens.create_session_token(SimpleNamespace(id=1, email="a@example.com"))
    with pytest.raises(ConfigurationError):
        tokens.read_invite_token("anything")
