import re
from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Stored datetimes are naive UTC; emit them with an explicit offset
UTCDateTime = Annotated[
    datetime,
    PlainSerializer(
        lambda v: (v if v.tzinfo else v.replace(tzinfo=UTC)).isoformat().replace("+00:00", "Z"),
        return_type=str,
    ),
]


class CamelModel(BaseModel):
    """JSON field names in camelCase, as the web and mobile clients send them."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def validate_email_format(v: str) -> str:
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email format")
    return v


# Wallet challenge/response


class ChallengeResponse(CamelModel):
    challenge: str
    nonce: str
    expires_in: int


class VerifyChallengeRequest(CamelModel):
    public_key: str = Field(..., min_length=1)
    signed_challenge: str = Field(..., min_length=1)


class WalletUser(CamelModel):
    id: str
    created_at: UTCDateTime


class VerifyChallengeResponse(CamelModel):
    success: bool
    token: str
    user: WalletUser


# Email/password accounts


class RegisterRequest(BaseModel):
    email: str = Field(..., max_length=254)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_format(v)


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(CamelModel):
    id: str
    email: str | None = None
    created_at: UTCDateTime


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)
    device_info: str | None = Field(None, max_length=255)


class LogoutRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    message: str


class ProfileResponse(CamelModel):
    id: str
    email: str | None = None
    stellar_public_key: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


# Password reset


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., max_length=254)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_format(v)


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)
