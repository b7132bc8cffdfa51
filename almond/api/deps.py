"""
FastAPI dependency providers.

Every service is assembled per request from the request's `AsyncSession`;
nothing here holds module-level state. Store handles (engine, session
factory), the settings object, the notifier gateway and the password hasher
live on `app.state`.
"""

from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Annotated

from fastapi import Cookie, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from almond.core.config import Settings
from almond.core.constants import COUNTRY_CODE_COOKIE, EMAIL_COOKIE, PHONE_NUMBER_COOKIE, REFRESH_COOKIE
from almond.core.i18n import get_locale
from almond.core.security import PasswordHasher
from almond.db import get_session
from almond.exceptions.http import PermissionDenied
from almond.models.definitions import User
from almond.repositories import CategoryRepository, SessionRepository, UserRepository
from almond.services import (
    CategoryService,
    ChannelBinding,
    NotificationGateway,
    RouteGuard,
    TokenService,
    UserService,
    VerificationService,
)

DBSession = Annotated[AsyncSession, Depends(get_session)]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_notifier(request: Request) -> NotificationGateway:
    return request.app.state.notifier


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


AppSettings = Annotated[Settings, Depends(get_app_settings)]


def get_request_locale(user_locale: Annotated[str | None, Cookie()] = None) -> str:
    return get_locale(user_locale)


def get_channel_binding(request: Request) -> ChannelBinding:
    """Channel identifiers the client received at signup, read back from the binding cookies."""
    return ChannelBinding(
        email=request.cookies.get(EMAIL_COOKIE) or None,
        country_code=request.cookies.get(COUNTRY_CODE_COOKIE) or None,
        phone_number=request.cookies.get(PHONE_NUMBER_COOKIE) or None,
    )


def client_ip(request: Request) -> str:
    return request.client.host if request.client else ""


Locale = Annotated[str, Depends(get_request_locale)]
Binding = Annotated[ChannelBinding, Depends(get_channel_binding)]

# --- Services ---


def get_verification_service(session: DBSession, settings: AppSettings) -> VerificationService:
    return VerificationService(
        session, UserRepository(session), code_ttl=timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
    )


def get_token_service(session: DBSession, settings: AppSettings) -> TokenService:
    return TokenService(session, SessionRepository(session), settings)


def get_user_service(
    session: DBSession,
    verification: Annotated[VerificationService, Depends(get_verification_service)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    notifier: Annotated[NotificationGateway, Depends(get_notifier)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
) -> UserService:
    return UserService(session, UserRepository(session), verification, notifier, tokens, hasher)


def get_category_service(session: DBSession) -> CategoryService:
    return CategoryService(session, CategoryRepository(session))


def get_route_guard(session: DBSession, settings: AppSettings) -> RouteGuard:
    return RouteGuard(session, SessionRepository(session), settings)


# --- Route guard ---


def bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer"):
        parts = authorization.split(" ", 1)
        return parts[1].strip() if len(parts) == 2 else None
    return None


async def get_current_user(
    request: Request,
    guard: Annotated[RouteGuard, Depends(get_route_guard)],
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Runs the route guard and attaches the authorized identity to `request.state.user`."""
    user = await guard.authorize(bearer_token(authorization), request.cookies.get(REFRESH_COOKIE))
    request.state.user = user
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_role(*roles: str) -> Callable[..., Awaitable[User]]:
    """Dependency factory: the guarded identity must hold one of `roles`."""

    async def _check_role(user: CurrentUser) -> User:
        if not user.has_any_role(*roles):
            raise PermissionDenied()
        return user

    return _check_role


VerificationDep = Annotated[VerificationService, Depends(get_verification_service)]
TokenDep = Annotated[TokenService, Depends(get_token_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]
