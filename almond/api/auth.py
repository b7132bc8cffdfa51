"""
Authentication endpoints: signup (email or phone), code (re)sending,
verification, login, logout and password change.

Thin by design: validation lives in the schemas, decisions in the services.
This module only moves tokens and binding identifiers in and out of cookies.
"""

from datetime import timedelta

from fastapi import APIRouter, Request, Response, status

from almond.api.deps import (
    AppSettings,
    Binding,
    CurrentUser,
    Locale,
    TokenDep,
    UserServiceDep,
    VerificationDep,
    client_ip,
)
from almond.core.config import Settings
from almond.core.constants import (
    BINDING_COOKIES,
    COUNTRY_CODE_COOKIE,
    EMAIL_COOKIE,
    PHONE_NUMBER_COOKIE,
    REFRESH_COOKIE,
)
from almond.core.i18n import translate
from almond.models.definitions import User
from almond.schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    SignupWithEmailRequest,
    SignupWithPhoneRequest,
    UserResponse,
    VerificationRequest,
)
from almond.services import ChannelBinding, TokenPair

router = APIRouter(prefix="/auth", tags=["auth"])

# -----------------------------------------------------------------------------
# Cookie helpers
# -----------------------------------------------------------------------------


def set_binding_cookies(response: Response, settings: Settings, values: dict[str, str]) -> None:
    max_age = int(timedelta(minutes=settings.BINDING_COOKIE_TTL_MINUTES).total_seconds())
    for name, value in values.items():
        response.set_cookie(
            name, value, max_age=max_age, httponly=True, secure=settings.COOKIE_SECURE, samesite="lax"
        )


def clear_binding_cookies(response: Response) -> None:
    for name in BINDING_COOKIES:
        response.delete_cookie(name)


def send_tokens(response: Response, settings: Settings, pair: TokenPair, user: User) -> AuthResponse:
    """Refresh token into the `_almond_key_` cookie, access token into the body."""
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=int(timedelta(days=settings.JWT_COOKIE_EXPIRES_IN).total_seconds()),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    clear_binding_cookies(response)
    return AuthResponse(access_token=pair.access_token, data=UserResponse.model_validate(user))


# -----------------------------------------------------------------------------
# Signup
# -----------------------------------------------------------------------------


@router.post("/signup/email", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def signup_with_email(
    payload: SignupWithEmailRequest, response: Response, service: UserServiceDep, settings: AppSettings, locale: Locale
):
    user = await service.signup_with_email(payload, locale)
    set_binding_cookies(response, settings, {EMAIL_COOKIE: user.email})
    return MessageResponse(message=translate("sent_to_email", locale))


@router.post("/signup/phone", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def signup_with_phone(
    payload: SignupWithPhoneRequest, response: Response, service: UserServiceDep, settings: AppSettings, locale: Locale
):
    user = await service.signup_with_phone(payload, locale)
    set_binding_cookies(
        response, settings, {COUNTRY_CODE_COOKIE: user.country_code, PHONE_NUMBER_COOKIE: user.phone_number}
    )
    return MessageResponse(message=translate("sent_to_phone_number", locale))


@router.get("/send-v-code/email", response_model=MessageResponse)
async def resend_code_to_email(
    response: Response, binding: Binding, service: UserServiceDep, settings: AppSettings, locale: Locale
):
    user = await service.resend_code(ChannelBinding(email=binding.email), locale)
    set_binding_cookies(response, settings, {EMAIL_COOKIE: user.email})
    return MessageResponse(message=translate("sent_to_email", locale))


@router.get("/send-v-code/phone", response_model=MessageResponse)
async def resend_code_to_phone(
    response: Response, binding: Binding, service: UserServiceDep, settings: AppSettings, locale: Locale
):
    phone_binding = ChannelBinding(country_code=binding.country_code, phone_number=binding.phone_number)
    user = await service.resend_code(phone_binding, locale)
    set_binding_cookies(
        response, settings, {COUNTRY_CODE_COOKIE: user.country_code, PHONE_NUMBER_COOKIE: user.phone_number}
    )
    return MessageResponse(message=translate("sent_to_phone_number", locale))


# -----------------------------------------------------------------------------
# Verification & login
# -----------------------------------------------------------------------------


@router.post("/verify", response_model=AuthResponse)
async def verify(
    payload: VerificationRequest,
    request: Request,
    response: Response,
    binding: Binding,
    verification: VerificationDep,
    tokens: TokenDep,
    settings: AppSettings,
):
    user = await verification.verify(payload.verification_code, binding)
    pair = await tokens.issue_tokens(user, ip_address=client_ip(request))
    return send_tokens(response, settings, pair, user)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    service: UserServiceDep,
    tokens: TokenDep,
    settings: AppSettings,
):
    user = await service.login(payload)
    pair = await tokens.issue_tokens(user, ip_address=client_ip(request))
    return send_tokens(response, settings, pair, user)


# -----------------------------------------------------------------------------
# Guarded
# -----------------------------------------------------------------------------


@router.get("/logout")
async def logout(request: Request, response: Response, user: CurrentUser, tokens: TokenDep):
    await tokens.logout(request.cookies.get(REFRESH_COOKIE, ""))
    response.delete_cookie(REFRESH_COOKIE)
    return {"status": "success"}


@router.patch("/password", response_model=AuthResponse)
async def change_password(
    payload: PasswordChangeRequest,
    request: Request,
    response: Response,
    user: CurrentUser,
    service: UserServiceDep,
    settings: AppSettings,
):
    pair = await service.change_password(user, payload, ip_address=client_ip(request))
    return send_tokens(response, settings, pair, user)
