"""
Session cookie envelope

The cookie carries base64url(JSON {token, expiresAt, userId, role}); only
the token field is a secret, and only its hash is stored server-side.
"""

import binascii
import json
from datetime import datetime
from typing import Optional

from fastapi import Response

from src.app.services.settings import SecuritySettings
from src.app.services.token_signer import InvalidTokenError, b64url_decode, b64url_encode


def encode_session_cookie(token: str, expires_at: datetime, user_id: str, role: str) -> str:
    envelope = {
        "token": token,
        "expiresAt": expires_at.isoformat() + "Z",
        "userId": user_id,
        "role": role,
    }
    return b64url_encode(json.dumps(envelope, separators=(",", ":")).encode("utf-8"))


def decode_session_cookie(value: Optional[str]) -> Optional[str]:
    """Return the session token inside the envelope, or None if unreadable"""
    if not value:
        return None
    try:
        envelope = json.loads(b64url_decode(value).decode("utf-8"))
    except (InvalidTokenError, UnicodeDecodeError, binascii.Error, ValueError):
        return None
    token = envelope.get("token") if isinstance(envelope, dict) else None
    return token if isinstance(token, str) else None


def set_session_cookie(
    response: Response,
    settings: SecuritySettings,
    token: str,
    expires_at: datetime,
    user_id: str,
    role: str,
) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=encode_session_cookie(token, expires_at, user_id, role),
        max_age=settings.session_ttl_seconds,
        path="/",
        domain=settings.session_cookie_domain,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )


def clear_session_cookie(response: Response, settings: SecuritySettings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        domain=settings.session_cookie_domain,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )
