"""JWT access token management.

Access tokens: HS256 by default, lifetime from auth.token_expire_minutes.
Each token carries a random ``jti`` so that logout can revoke it.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from app.config import get_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    jti: str
    issued_at: datetime
    expires_at: datetime


def create_access_token(subject: str) -> tuple[str, TokenClaims]:
    """Create an access token for *subject*.

    Returns:
        The encoded JWT and the claims it carries.
    """
    config = get_config()
    now = datetime.now(timezone.utc).replace(microsecond=0)
    claims = TokenClaims(
        subject=subject,
        jti=secrets.token_hex(16),
        issued_at=now,
        expires_at=now + timedelta(minutes=config.auth.token_expire_minutes),
    )
    payload = {
        "sub": claims.subject,
        "jti": claims.jti,
        "iat": claims.issued_at,
        "exp": claims.expires_at,
        "type": "access",
    }
    token = jwt.encode(
        payload,
        config.secrets.jwt.secret_key,
        algorithm=config.secrets.jwt.algorithm,
    )
    return token, claims


def decode_access_token(token: str) -> TokenClaims:
    """Decode and validate an access token.

    Raises:
        ValueError: If token is invalid or expired.
    """
    config = get_config()
    try:
        payload = jwt.decode(
            token,
            config.secrets.jwt.secret_key,
            algorithms=[config.secrets.jwt.algorithm],
            options={"require": ["sub", "jti", "iat", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise ValueError("Access token has expired")
    except jwt.InvalidTokenError as e:
        raise ValueError(f"Invalid access token: {e}")

    if payload.get("type") != "access":
        raise ValueError("Token is not an access token")
    if not payload["sub"]:
        raise ValueError("Token missing subject")

    return TokenClaims(
        subject=payload["sub"],
        jti=payload["jti"],
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
