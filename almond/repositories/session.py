from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from almond.models.definitions import Session


class SessionRepository:
    """Data access for login sessions, keyed by their refresh token."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, user_id: str, refresh_token: str, logged_at: datetime, ip_address: str = "", address: str = ""
    ) -> Session:
        login_session = Session(
            user_id=user_id,
            refresh_token=refresh_token,
            logged_at=logged_at,
            last_seen=logged_at,
            ip_address=ip_address,
            address=address,
        )
        self.session.add(login_session)
        await self.session.flush()
        return login_session

    async def get_with_user(self, refresh_token: str) -> Session | None:
        """Finds the session holding `refresh_token` with its owning identity loaded."""
        stmt = select(Session).options(joinedload(Session.user)).where(Session.refresh_token == refresh_token)
        return (await self.session.scalars(stmt)).one_or_none()

    async def touch(self, login_session: Session, seen_at: datetime) -> None:
        login_session.last_seen = seen_at
        await self.session.flush()

    async def delete_by_refresh_token(self, refresh_token: str) -> int:
        result = await self.session.execute(delete(Session).where(Session.refresh_token == refresh_token))
        return result.rowcount

    async def delete_for_user(self, user_id: str) -> int:
        result = await self.session.execute(delete(Session).where(Session.user_id == user_id))
        return result.rowcount
