from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from almond.core.config import Settings
from almond.core.logging import get_logger
from almond.core.security import encode_token
from almond.models.base import utcnow
from almond.models.definitions import User
from almond.repositories import SessionRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    """
    Issues access/refresh token pairs and persists one session per pair.
    The refresh token string is the session's lookup key.
    """

    def __init__(self, session: AsyncSession, session_repo: SessionRepository, settings: Settings):
        self._session = session
        self._session_repo = session_repo
        self._settings = settings

    @property
    def access_lifetime(self) -> timedelta:
        return timedelta(seconds=self._settings.ACCESS_TOKEN_EXPIRES_SECONDS)

    @property
    def refresh_lifetime(self) -> timedelta:
        return timedelta(days=self._settings.REFRESH_TOKEN_EXPIRES_DAYS)

    def create_access_token(self, user_id: str) -> str:
        return encode_token(
            user_id, self._settings.ACCESS_TOKEN_SECRET, self.access_lifetime, self._settings.JWT_ALGORITHM
        )

    def create_refresh_token(self, user_id: str) -> str:
        return encode_token(
            user_id, self._settings.REFRESH_TOKEN_SECRET, self.refresh_lifetime, self._settings.JWT_ALGORITHM
        )

    async def issue_tokens(self, user: User, ip_address: str = "", address: str = "") -> TokenPair:
        """Always inserts a brand-new session; existing sessions are left alone."""
        pair = TokenPair(
            access_token=self.create_access_token(user.id),
            refresh_token=self.create_refresh_token(user.id),
        )
        await self._session_repo.create(
            user_id=user.id,
            refresh_token=pair.refresh_token,
            logged_at=utcnow(),
            ip_address=ip_address,
            address=address,
        )
        await self._session.commit()
        logger.info("New session for identity %s from %s", user.id, ip_address or "unknown address")
        return pair

    async def logout(self, refresh_token: str) -> None:
        """Removes exactly the session holding `refresh_token`."""
        deleted = await self._session_repo.delete_by_refresh_token(refresh_token)
        await self._session.commit()
        logger.info("Logout removed %d session(s)", deleted)

    async def revoke_all(self, user_id: str) -> int:
        """Drops every session of an identity. The caller commits."""
        deleted = await self._session_repo.delete_for_user(user_id)
        logger.info("Revoked %d session(s) of identity %s", deleted, user_id)
        return deleted
