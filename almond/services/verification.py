"""
Verification engine: issues 5-digit one-time codes to pending identities
and turns a correct, unexpired code into an activated identity.
"""

import random
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from almond.core.constants import VERIFICATION_CODE_MAX, VERIFICATION_CODE_MIN
from almond.core.logging import get_logger
from almond.exceptions.http import (
    AlreadyExists,
    ChannelMismatch,
    CodeAbsent,
    CodeExpired,
    CodeInvalid,
    CodeNotNumeric,
    DuplicateCode,
)
from almond.models.base import utcnow
from almond.models.definitions import User
from almond.repositories import UserRepository

logger = get_logger(__name__)

_DIGITS = re.compile(r"\d+", re.ASCII)


@dataclass(frozen=True)
class ChannelBinding:
    """
    The channel identifiers the client was handed at signup (kept client
    side in short-lived cookies) and presents again at verification.
    """

    email: str | None = None
    country_code: str | None = None
    phone_number: str | None = None

    @property
    def is_email(self) -> bool:
        return bool(self.email)

    @property
    def is_phone(self) -> bool:
        return not self.is_email and bool(self.country_code and self.phone_number)

    def matches(self, user: User) -> bool:
        if self.is_email:
            return user.email == self.email.strip().lower()
        if self.is_phone:
            return user.country_code == self.country_code.strip().upper() and user.phone_number == self.phone_number
        return False


@dataclass(frozen=True)
class VerificationTicket:
    identity_id: str
    code: int
    expires_at: datetime


class VerificationService:
    MAX_DRAWS = 100

    def __init__(
        self,
        session: AsyncSession,
        user_repo: UserRepository,
        code_ttl: timedelta = timedelta(minutes=10),
        rng: random.Random | None = None,
    ):
        self._session = session
        self._user_repo = user_repo
        self._code_ttl = code_ttl
        self._rng = rng or random.Random()

    async def generate_unique_code(self, owner: User) -> int:
        """
        Draws candidates until no other identity holds the value as a live
        code. A holder whose code already expired gives the value up.
        """
        now = utcnow()
        for _ in range(self.MAX_DRAWS):
            candidate = self._rng.randint(VERIFICATION_CODE_MIN, VERIFICATION_CODE_MAX)
            holder = await self._user_repo.get_by_verification_code(candidate)
            if holder is None:
                return candidate
            stale = holder.verification_code_expires_at is not None and holder.verification_code_expires_at < now
            if holder.id != owner.id and stale:
                await self._user_repo.release_verification_code(holder)
                return candidate
        raise DuplicateCode()

    async def issue(self, user: User) -> VerificationTicket:
        """
        Assigns a fresh code and a new expiry to a pending identity. The
        caller owns the transaction and commits once delivery data is ready.
        """
        if not user.is_pending:
            raise AlreadyExists("email_already_exists" if user.email else "phone_number_already_exists")

        code = await self.generate_unique_code(user)
        expires_at = utcnow() + self._code_ttl
        try:
            await self._user_repo.set_verification_code(user, code, expires_at)
        except IntegrityError as exc:
            # Another request took the same code between our check and our write.
            raise DuplicateCode() from exc

        logger.info("Issued verification code for identity %s (expires %s)", user.id, expires_at.isoformat())
        return VerificationTicket(identity_id=user.id, code=code, expires_at=expires_at)

    async def verify(self, code: str | int | None, binding: ChannelBinding) -> User:
        raw = "" if code is None else str(code).strip()
        if not raw:
            raise CodeAbsent()
        if not _DIGITS.fullmatch(raw):
            raise CodeNotNumeric()

        value = int(raw)
        if not VERIFICATION_CODE_MIN <= value <= VERIFICATION_CODE_MAX:
            raise CodeInvalid()

        user = await self._user_repo.get_pending_by_verification_code(value)
        if user is None:
            raise CodeInvalid()

        # Guards against guessing a code with tampered channel identifiers.
        if not binding.matches(user):
            logger.warning("Verification binding mismatch for identity %s", user.id)
            raise ChannelMismatch()

        expires_at = user.verification_code_expires_at
        if expires_at is None or expires_at < utcnow():
            raise CodeExpired()

        activated = await self._user_repo.activate(user.id, value, phone_verified=binding.is_phone)
        if not activated:
            await self._session.rollback()
            raise CodeInvalid()

        await self._session.commit()
        await self._session.refresh(user)
        logger.info("Identity %s verified and activated", user.id)
        return user
