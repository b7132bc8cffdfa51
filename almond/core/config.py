"""
Centralized application configuration.

Settings are loaded from the OS environment and an optional `.env` file.
The cached `get_settings()` accessor is what the application factory uses
by default; tests and scripts pass their own `Settings` instance instead.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PLACEHOLDER_SECRETS = {"change-me-access-secret", "change-me-refresh-secret"}


class Settings(BaseSettings):
    ENVIRONMENT: Literal["development", "production", "test"] = Field(
        "development",
        description="Runtime mode. Only 'development' exposes stack traces in error responses.",
    )
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    DATABASE_URL: str = Field(
        "sqlite+aiosqlite:///./almond.db",
        description="Async SQLAlchemy URL (sqlite+aiosqlite or postgresql+psycopg)",
    )

    # --- Tokens ---
    ACCESS_TOKEN_SECRET: str = Field("change-me-access-secret", description="Signing secret for access tokens")
    REFRESH_TOKEN_SECRET: str = Field("change-me-refresh-secret", description="Signing secret for refresh tokens")
    JWT_ALGORITHM: str = Field("HS256", description="JWS algorithm for both token kinds")
    ACCESS_TOKEN_EXPIRES_SECONDS: int = Field(60 * 60 * 24, description="Access token lifetime (seconds)")
    REFRESH_TOKEN_EXPIRES_DAYS: int = Field(60, description="Refresh token lifetime (days)")

    # --- Cookies ---
    JWT_COOKIE_EXPIRES_IN: int = Field(60, description="Refresh-token cookie lifetime (days)")
    COOKIE_SECURE: bool = Field(True, description="Send cookies with the Secure flag")
    BINDING_COOKIE_TTL_MINUTES: int = Field(10, description="Lifetime of the signup binding cookies")

    # --- Verification ---
    VERIFICATION_CODE_TTL_MINUTES: int = Field(10, description="Verification code lifetime (minutes)")
    BCRYPT_ROUNDS: int = Field(12, description="bcrypt cost factor")

    # --- Notifier gateway ---
    NOTIFIER_TIMEOUT_SECONDS: float = Field(10.0, description="Upper bound for a single delivery attempt")
    NOTIFIER_MAX_ATTEMPTS: int = Field(3, description="Delivery attempts before giving up")
    NOTIFIER_BACKOFF_SECONDS: float = Field(0.5, description="Exponential back-off multiplier between attempts")

    SENDGRID_API_KEY: str = Field("", description="SendGrid API key; empty disables email delivery")
    MAIL_FROM_EMAIL: str = Field("Almond <noreply@almond.uz>", description="Sender address for emails")
    TWILIO_ACCOUNT_SID: str = Field("", description="Twilio account SID; empty disables SMS delivery")
    TWILIO_AUTH_TOKEN: str = Field("", description="Twilio auth token")
    TWILIO_PHONE_NUMBER: str = Field("", description="Twilio sender number")
    SMS_DIALING_PREFIX: str = Field("+998", description="Prefix prepended to local phone numbers for SMS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def reject_placeholder_secrets(self) -> "Settings":
        """Production must never sign tokens with the shipped placeholder secrets."""
        if self.ENVIRONMENT == "production":
            if {self.ACCESS_TOKEN_SECRET, self.REFRESH_TOKEN_SECRET} & _PLACEHOLDER_SECRETS:
                raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set in production.")
            if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
                raise ValueError("Access and refresh tokens must use different secrets.")
        return self

    @property
    def diagnostic_mode(self) -> bool:
        return self.ENVIRONMENT == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
