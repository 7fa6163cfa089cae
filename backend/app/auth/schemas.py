"""Request/response models for the auth endpoints."""
from pydantic import BaseModel, Field, field_validator

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


def _check_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > _BCRYPT_MAX_BYTES:
        raise ValueError(f"password must be at most {_BCRYPT_MAX_BYTES} bytes")
    return v


class Credentials(BaseModel):
    """Email + password body shared by signup and login."""
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("email must not be blank")
        return v

    @field_validator("password")
    @classmethod
    def _password_fits(cls, v: str) -> str:
        return _check_password_bytes(v)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)

    @field_validator("current_password", "new_password")
    @classmethod
    def _password_fits(cls, v: str) -> str:
        return _check_password_bytes(v)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Lifetime in seconds")


class MessageResponse(BaseModel):
    message: str


class MeResponse(BaseModel):
    email: str
