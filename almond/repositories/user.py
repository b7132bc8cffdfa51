from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from almond.db.utils import apply_dict_updates
from almond.models.definitions import AccountStatus, User


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> User | None:
        """Retrieves a User by their primary ID."""
        return await self.session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        """Retrieves a User by their unique email (login ID)."""
        stmt = select(User).where(User.email == email.lower())
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_phone(self, country_code: str, phone_number: str) -> User | None:
        """Retrieves a User by their unique (country_code, phone_number) pair."""
        stmt = select(User).where(User.country_code == country_code, User.phone_number == phone_number)
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(User).where(User.username == username)
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_verification_code(self, code: int) -> User | None:
        """Retrieves whichever identity currently holds `code`, live or expired."""
        stmt = select(User).where(User.verification_code == code)
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_pending_by_verification_code(self, code: int) -> User | None:
        stmt = select(User).where(User.verification_code == code, User.account_status == AccountStatus.PENDING.value)
        return (await self.session.scalars(stmt)).one_or_none()

    async def create(self, create_data: dict[str, Any]) -> User:
        """Creates a new User record and flushes it (the caller owns the transaction)."""
        sensitive_fields = {"id", "created_at", "updated_at"}
        user = User()
        apply_dict_updates(user, create_data, sensitive_fields)
        self.session.add(user)
        await self.session.flush()
        return user

    async def set_verification_code(self, user: User, code: int, expires_at: datetime) -> User:
        user.verification_code = code
        user.verification_code_expires_at = expires_at
        await self.session.flush()
        return user

    async def release_verification_code(self, user: User) -> None:
        """Drops a stale (expired) code so its value can be handed out again."""
        user.verification_code = None
        user.verification_code_expires_at = None
        await self.session.flush()

    async def activate(self, user_id: str, code: int, phone_verified: bool) -> bool:
        """
        Pending -> active as one conditional UPDATE. Returns False when the
        identity no longer holds `code` or is no longer pending (lost race).
        """
        values: dict[str, Any] = {
            "verification_code": None,
            "verification_code_expires_at": None,
            "account_status": AccountStatus.ACTIVE.value,
        }
        if phone_verified:
            values["is_phone_number_verified"] = True
            values["is_verified_user"] = True

        stmt = (
            update(User)
            .where(
                User.id == user_id,
                User.verification_code == code,
                User.account_status == AccountStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def update_password(self, user: User, new_hashed_password: str, changed_at: datetime) -> None:
        user.password_hash = new_hashed_password
        user.password_changed_at = changed_at
        await self.session.flush()
