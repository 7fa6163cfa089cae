"""Auth router for account and session endpoints.

Endpoints:
    POST /auth/signup           - Register an email + password
    POST /auth/login            - Issue an access token (also set as a cookie)
    POST /auth/logout           - Revoke the current token and clear the cookie
    POST /auth/change-password  - Change the caller's password
    GET  /auth/me               - Who the current token belongs to
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.config import get_config

from .dependencies import require_claims
from .schemas import (
    ChangePasswordRequest,
    Credentials,
    MeResponse,
    MessageResponse,
    TokenResponse,
)
from .service import AccountExists, AccountNotFound, AccountService, InvalidPassword
from .tokens import TokenClaims, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _service() -> AccountService:
    return AccountService.get_instance()


@router.post("/signup", response_model=MessageResponse, status_code=201)
def signup(body: Credentials) -> MessageResponse:
    """Register a new account."""
    try:
        _service().create_account(body.email, body.password)
    except AccountExists:
        raise HTTPException(status_code=400, detail="User already exists")
    return MessageResponse(message="Signup successful")


@router.post("/login", response_model=TokenResponse)
def login(body: Credentials, response: Response) -> TokenResponse:
    """Check credentials and start a session.

    The token is returned in the body for API clients and set as an HttpOnly
    cookie for browsers.
    """
    try:
        email = _service().authenticate(body.email, body.password)
    except AccountNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    except InvalidPassword:
        logger.info("Failed login for %s", body.email)
        raise HTTPException(status_code=401, detail="Wrong password")

    config = get_config()
    token, _ = create_access_token(email)
    max_age = config.auth.token_expire_minutes * 60
    response.set_cookie(
        key=config.auth.cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=config.auth.cookie_secure,
    )
    logger.info("Login: %s", email)
    return TokenResponse(access_token=token, expires_in=max_age)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    claims: TokenClaims = Depends(require_claims),
) -> MessageResponse:
    """Revoke the caller's token."""
    _service().revoke_token(claims.jti, claims.expires_at)
    response.delete_cookie(get_config().auth.cookie_name)
    logger.info("Logout: %s", claims.subject)
    return MessageResponse(message="Logged out")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    response: Response,
    claims: TokenClaims = Depends(require_claims),
) -> MessageResponse:
    """Change the caller's password and end every existing session.

    Tokens issued before the change are rejected by the access gate; the
    caller's own token is revoked outright and its cookie cleared.
    """
    try:
        _service().change_password(
            claims.subject, body.current_password, body.new_password
        )
    except AccountNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    except InvalidPassword:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Wrong password"
        )
    _service().revoke_token(claims.jti, claims.expires_at)
    response.delete_cookie(get_config().auth.cookie_name)
    return MessageResponse(message="Password changed, please log in again")


@router.get("/me", response_model=MeResponse)
def me(claims: TokenClaims = Depends(require_claims)) -> MeResponse:
    return MeResponse(email=claims.subject)
