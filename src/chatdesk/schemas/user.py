"""User and authentication Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    local, sep, domain = value.partition("@")
    if not sep or not local or "." not in domain:
        raise ValueError("Invalid email address")
    return value


class EmailRequest(BaseModel):
    """Request carrying only an email address."""

    email: str = Field(..., max_length=320)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Lower-case and sanity-check the address."""
        return _normalize_email(v)


class RegisterRequest(EmailRequest):
    """Schema for account registration."""

    password: str = Field(..., description="Plaintext password (minimum length is configurable)")
    code: str = Field(..., description="Six-digit verification code sent by email")
    turnstile_token: str | None = Field(
        None,
        alias="turnstileToken",
        description="Bot verification token from the client widget",
    )
    username: str | None = Field(None, min_length=1, max_length=64)

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(EmailRequest):
    """Schema for login submissions."""

    password: str


class ResetPasswordRequest(BaseModel):
    """Schema for completing a password reset."""

    token: str
    new_password: str = Field(..., alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class UsernameUpdateRequest(BaseModel):
    """Schema for changing the caller's username."""

    username: str = Field(..., min_length=1, max_length=64)


class UserResponse(BaseModel):
    """Account information returned by the API."""

    id: str
    email: str
    username: str | None
    role: str
    level: int
    is_banned: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSearchResult(BaseModel):
    """Candidate returned by user search."""

    id: str
    username: str | None
    email: str

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    """Response returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")
    user: UserResponse


class DetailResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
