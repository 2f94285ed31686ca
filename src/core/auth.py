"""Bearer tokens.

Accounts live with the identity provider; this service only checks HS256
JWTs. ``sub`` carries the user id and ``role`` the marketplace role.
Signing uses stdlib ``hmac`` directly.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional

from core.config import get_settings

TOKEN_TYPE = "access"
_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _encode_segment(obj: Dict[str, Any]) -> str:
    return _b64url_encode(json.dumps(obj, separators=(",", ":"), default=str).encode())


def _signature(signing_input: str, secret: str) -> bytes:
    return hmac.new(secret.encode(), signing_input.encode(), hashlib.sha256).digest()


def _jwt_encode(payload: Dict[str, Any], secret: str) -> str:
    signing_input = f"{_encode_segment(_HEADER)}.{_encode_segment(payload)}"
    return f"{signing_input}.{_b64url_encode(_signature(signing_input, secret))}"


def _jwt_decode(token: str, secret: str) -> Optional[Dict[str, Any]]:
    """Verified payload, or None for a malformed, forged or expired token."""
    signing_input, _, sig = token.rpartition(".")
    if signing_input.count(".") != 1:
        return None

    try:
        if not hmac.compare_digest(_signature(signing_input, secret), _b64url_decode(sig)):
            return None
        payload = json.loads(_b64url_decode(signing_input.split(".")[1]))
    except (ValueError, UnicodeDecodeError):
        return None

    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if isinstance(exp, (int, float)) and exp < time.time():
        return None
    return payload


def create_access_token(user_id: str, role: str, expires_minutes: Optional[int] = None) -> str:
    """Sign a token for ``user_id`` acting as ``role``."""
    settings = get_settings()
    lifetime = expires_minutes or settings.jwt_access_token_expire_minutes
    claims = {
        "sub": str(user_id),
        "role": role,
        "exp": int(time.time()) + lifetime * 60,
        "type": TOKEN_TYPE,
    }
    return _jwt_encode(claims, settings.jwt_secret_key)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid access token; None when the token should be refused."""
    claims = _jwt_decode(token, get_settings().jwt_secret_key)
    if claims is None or claims.get("type") != TOKEN_TYPE or not claims.get("sub"):
        return None
    return claims
