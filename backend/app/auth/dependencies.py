"""FastAPI dependencies that act as the access gate.

The gate reads an access token from the ``Authorization: Bearer`` header or,
failing that, from the session cookie set at login. It reports the caller as
an Identity, or None when the request is unauthenticated; the storage core
decides what to do with None.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from app.config import get_config
from app.files.schemas import Identity

from .service import AccountService
from .tokens import TokenClaims, decode_access_token

logger = logging.getLogger(__name__)


def _token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip() or None
    return request.cookies.get(get_config().auth.cookie_name)


def current_claims(request: Request) -> Optional[TokenClaims]:
    """Validated claims of the caller's token, or None."""
    token = _token_from_request(request)
    if not token:
        return None
    try:
        claims = decode_access_token(token)
    except ValueError as e:
        logger.info("Rejected access token: %s", e)
        return None
    accounts = AccountService.get_instance()
    if accounts.is_revoked(claims.jti):
        logger.info("Rejected revoked token for %s", claims.subject)
        return None
    if accounts.issued_before_password_change(claims.subject, claims.issued_at):
        logger.info("Rejected token issued before password change for %s", claims.subject)
        return None
    return claims


def current_identity(
    claims: Optional[TokenClaims] = Depends(current_claims),
) -> Optional[Identity]:
    """The caller's Identity, or None when unauthenticated."""
    if claims is None:
        return None
    return Identity(subject=claims.subject)


def require_claims(
    claims: Optional[TokenClaims] = Depends(current_claims),
) -> TokenClaims:
    """Like current_claims, but answers 401 for unauthenticated callers."""
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims
