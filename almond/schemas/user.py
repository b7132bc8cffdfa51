"""
Pydantic schemas defining the contract for identity, signup and
authentication across the API and Service layers.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator
from pydantic.networks import validate_email

# --- Input Schemas (Requests / Commands) ---


class _NameAndPassword(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=25, description="User's first name")
    password: str = Field(..., min_length=8, max_length=64, description="Plain password (8-64 characters, hashed)")

    @field_validator("first_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("first name is too short")
        return value


class SignupWithEmailRequest(_NameAndPassword):
    """Signup through the email channel."""

    email: str = Field(..., min_length=7, max_length=64, description="Login email address")

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        _, address = validate_email(value.strip())
        return address.lower()


class SignupWithPhoneRequest(_NameAndPassword):
    """Signup through the SMS channel."""

    country_code: str = Field(..., min_length=2, max_length=2, description="Two-letter country code")
    phone_number: str = Field(..., pattern=r"^\d{9}$", description="Local 9-digit phone number")

    @field_validator("country_code")
    @classmethod
    def upper_country_code(cls, value: str) -> str:
        if not value.isalpha():
            raise ValueError("country code must be alphabetic")
        return value.upper()


class VerificationRequest(BaseModel):
    # Left loose on purpose so empty and non-numeric codes reach the engine's own checks.
    verification_code: str | int | None = Field(default=None, description="The 5-digit code that was sent")


class LoginRequest(BaseModel):
    """Either `email`, or `country_code` + `phone_number`, plus the password."""

    email: str | None = Field(default=None, description="Login email")
    country_code: str | None = Field(default=None, description="Two-letter country code")
    phone_number: str | None = Field(default=None, description="Local 9-digit phone number")
    password: str = Field(default="", description="Plain password")


class PasswordChangeRequest(BaseModel):
    """
    Schema for changing password (requires old password verification).
    Every existing session of the identity is revoked on success.
    """

    old_password: str = Field(..., description="Current password for verification")
    new_password: str = Field(..., min_length=8, max_length=64, description="New password (8-64 characters)")


# --- Output Schemas ---


class UserResponse(BaseModel):
    """
    Public view of an identity. Password hash, verification code and
    password-change timestamp are deliberately absent.
    """

    model_config = {"from_attributes": True}

    id: str
    first_name: str
    family_name: str = ""
    email: str | None = None
    country_code: str | None = None
    phone_number: str | None = None
    username: str
    profile_image: str | None = None
    language: str
    role: str
    account_status: str
    average_rating: float = 0.0
    ratings_quantity: int = 0
    is_account_suspended: bool = False
    is_verified_user: bool = False
    is_phone_number_verified: bool = False

    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


class AuthResponse(BaseModel):
    """Body of a successful verify/login; the refresh token travels in a cookie."""

    status: str = "success"
    access_token: str
    data: UserResponse
