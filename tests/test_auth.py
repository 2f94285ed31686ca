"""Tests for bearer tokens and caller resolution."""
from __future__ import annotations

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from api.auth_deps import get_caller, get_optional_caller, require_landowner
from core.auth import _jwt_encode, create_access_token, decode_access_token
from core.config import get_settings
from core.exceptions import PermissionDeniedError, UnauthenticatedError
from domain.roles import Forester, UserRole


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


# ---------------------------------------------------------------------------
# Unit Tests: JWT Tokens
# ---------------------------------------------------------------------------

class TestTokens:
    def test_create_and_decode_access_token(self):
        token = create_access_token("user-7", "forester")
        payload = decode_access_token(token)

        assert payload is not None
        assert payload["sub"] == "user-7"
        assert payload["role"] == "forester"
        assert payload["type"] == "access"

    def test_invalid_token_returns_none(self):
        assert decode_access_token("garbage.token.here") is None

    def test_empty_token_returns_none(self):
        assert decode_access_token("") is None

    def test_tampered_signature_rejected(self):
        token = create_access_token("user-7", "forester")
        head, body, _ = token.split(".")
        forged = create_access_token("user-7", "landowner").split(".")[2]

        assert decode_access_token(f"{head}.{body}.{forged}") is None

    def test_expired_token_rejected(self):
        token = create_access_token("user-7", "forester", expires_minutes=-1)

        assert decode_access_token(token) is None

    def test_other_secret_rejected(self):
        token = _jwt_encode({"sub": "user-7", "role": "forester", "type": "access"}, "not-our-secret")

        assert decode_access_token(token) is None

    @pytest.mark.parametrize("payload", [
        {"sub": "user-7", "role": "forester", "type": "refresh"},
        {"role": "forester", "type": "access"},
    ])
    def test_wrong_type_or_missing_subject(self, payload):
        token = _jwt_encode(payload, get_settings().jwt_secret_key)

        assert decode_access_token(token) is None


# ---------------------------------------------------------------------------
# Caller dependencies
# ---------------------------------------------------------------------------

class TestCaller:
    def test_caller_from_valid_token(self):
        caller = get_optional_caller(bearer(create_access_token("f-1", "forester")))

        assert caller.user_id == "f-1"
        assert caller.role is UserRole.FORESTER
        assert isinstance(caller.participant, Forester)

    def test_no_credentials_is_anonymous(self):
        assert get_optional_caller(None) is None

    def test_unknown_role_is_anonymous(self):
        assert get_optional_caller(bearer(create_access_token("x", "ranger"))) is None

    def test_required_caller(self):
        with pytest.raises(UnauthenticatedError):
            get_caller(None)

    def test_landowner_gate(self):
        forester = get_optional_caller(bearer(create_access_token("f-1", "forester")))
        owner = get_optional_caller(bearer(create_access_token("o-1", "landowner")))

        assert require_landowner(owner) is owner
        with pytest.raises(PermissionDeniedError):
            require_landowner(forester)
