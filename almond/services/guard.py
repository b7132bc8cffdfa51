"""
Route guard: the per-request authorization state machine.

    Unauthenticated -> AccessChecked -> RefreshChecked -> UserResolved
        -> PasswordFreshnessChecked -> Authorized

Cheap stateless checks run before any store lookup; password freshness is
last because it needs both the refresh-token claim and the stored identity.
Every failure short-circuits with a `TokenError` subclass.
"""

from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from almond.core.config import Settings
from almond.core.logging import get_logger
from almond.core.security import decode_token
from almond.exceptions.http import AccessTokenExpired, ExpiredToken, InvalidToken, PasswordChanged
from almond.models.base import utcnow
from almond.models.definitions import User
from almond.repositories import SessionRepository

logger = get_logger(__name__)


def password_changed_after(user: User, issued_at: int) -> bool:
    """True when the password changed after a token issued at `issued_at` (epoch seconds)."""
    if user.password_changed_at is None:
        return False
    return int(user.password_changed_at.timestamp()) > issued_at


class RouteGuard:
    def __init__(self, session: AsyncSession, session_repo: SessionRepository, settings: Settings):
        self._session = session
        self._session_repo = session_repo
        self._settings = settings

    async def _revoke(self, refresh_token: str) -> None:
        await self._session_repo.delete_by_refresh_token(refresh_token)
        await self._session.commit()

    async def authorize(self, access_token: str | None, refresh_token: str | None) -> User:
        # 1. Both credentials present
        if not access_token or not refresh_token:
            logger.debug("Rejected request without access or refresh token")
            raise InvalidToken()

        # 2. Access token
        try:
            access_claims = decode_token(access_token, self._settings.ACCESS_TOKEN_SECRET, self._settings.JWT_ALGORITHM)
        except ExpiredSignatureError as exc:
            raise AccessTokenExpired() from exc
        except JWTError as exc:
            logger.debug("Rejected invalid access token: %s", exc)
            raise InvalidToken() from exc

        # 3. Refresh token
        try:
            refresh_claims = decode_token(
                refresh_token, self._settings.REFRESH_TOKEN_SECRET, self._settings.JWT_ALGORITHM
            )
        except ExpiredSignatureError as exc:
            await self._revoke(refresh_token)
            raise ExpiredToken() from exc
        except JWTError as exc:
            logger.debug("Rejected invalid refresh token: %s", exc)
            await self._revoke(refresh_token)
            raise InvalidToken() from exc

        # 4. Live session and its owner
        login_session = await self._session_repo.get_with_user(refresh_token)
        if login_session is None or login_session.user is None:
            raise InvalidToken()
        user = login_session.user
        if access_claims.get("id") != user.id or refresh_claims.get("id") != user.id:
            logger.warning("Token pair does not belong to session owner %s", user.id)
            raise InvalidToken()

        # 5. Password freshness
        if password_changed_after(user, int(refresh_claims.get("iat", 0))):
            await self._revoke(refresh_token)
            raise PasswordChanged()

        # 6. Authorized
        await self._session_repo.touch(login_session, utcnow())
        await self._session.commit()
        return user
