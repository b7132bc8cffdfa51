import random

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from almond.core.logging import get_logger
from almond.core.security import PasswordHasher
from almond.core.text import slugify
from almond.db.utils import violated_column
from almond.exceptions.http import AlreadyExists, AuthError, NotFoundError, ValidationError
from almond.models.base import utcnow
from almond.models.definitions import User
from almond.repositories import UserRepository
from almond.schemas import LoginRequest, PasswordChangeRequest, SignupWithEmailRequest, SignupWithPhoneRequest
from almond.services.notifier import Channel, NotificationGateway
from almond.services.token import TokenPair, TokenService
from almond.services.verification import ChannelBinding, VerificationService

logger = get_logger(__name__)

USERNAME_BASE_LENGTH = 15
USERNAME_MAX_DRAWS = 50


class UserService:
    def __init__(
        self,
        session: AsyncSession,
        user_repo: UserRepository,
        verification: VerificationService,
        notifier: NotificationGateway,
        tokens: TokenService,
        hasher: PasswordHasher,
    ):
        self._session = session
        self._user_repo = user_repo
        self._verification = verification
        self._notifier = notifier
        self._tokens = tokens
        self._hasher = hasher

    # --- 1. SIGNUP ---

    async def signup_with_email(self, data: SignupWithEmailRequest, locale: str) -> User:
        """
        Creates a pending identity for `data.email`, or reuses the pending one
        already registered under it, and sends it a fresh verification code.
        """
        user = await self._user_repo.get_by_email(data.email)
        if user is not None and not user.is_pending:
            raise AlreadyExists("email_already_exists")

        if user is None:
            user = await self._create_pending(data.model_dump(exclude={"password"}), data.password)

        code = await self._issue_and_commit(user)
        await self._notifier.send_verification_code(Channel.EMAIL, user.email, code, locale)
        return user

    async def signup_with_phone(self, data: SignupWithPhoneRequest, locale: str) -> User:
        user = await self._user_repo.get_by_phone(data.country_code, data.phone_number)
        if user is not None and not user.is_pending:
            raise AlreadyExists("phone_number_already_exists")

        if user is None:
            user = await self._create_pending(data.model_dump(exclude={"password"}), data.password)

        code = await self._issue_and_commit(user)
        await self._notifier.send_verification_code(Channel.SMS, user.phone_number, code, locale)
        return user

    async def resend_code(self, binding: ChannelBinding, locale: str) -> User:
        """Rotates the code of the pending identity named by `binding` and sends it again."""
        user = None
        if binding.is_email:
            user = await self._user_repo.get_by_email(binding.email.strip())
        elif binding.is_phone:
            user = await self._user_repo.get_by_phone(binding.country_code.strip().upper(), binding.phone_number)
        if user is None or not user.is_pending:
            raise NotFoundError("user_not_found")

        code = await self._issue_and_commit(user)
        if binding.is_email:
            await self._notifier.send_verification_code(Channel.EMAIL, user.email, code, locale)
        else:
            await self._notifier.send_verification_code(Channel.SMS, user.phone_number, code, locale)
        return user

    async def _create_pending(self, create_data: dict, raw_password: str) -> User:
        create_data["username"] = await self.create_unique_username(create_data["first_name"])
        create_data["password_hash"] = self._hasher.hash(raw_password)
        try:
            user = await self._user_repo.create(create_data)
        except IntegrityError as exc:
            await self._session.rollback()
            column = violated_column(exc)
            if column in ("country_code", "phone_number"):
                raise AlreadyExists("phone_number_already_exists") from exc
            raise AlreadyExists("email_already_exists") from exc

        logger.info("Created pending identity %s (%s)", user.id, user.username)
        return user

    async def _issue_and_commit(self, user: User) -> int:
        # Identity state is committed before delivery; a failed delivery keeps it.
        ticket = await self._verification.issue(user)
        await self._session.commit()
        return ticket.code

    async def create_unique_username(self, first_name: str) -> str:
        """`name` when free, otherwise `name-NNNN` with a random 4-digit suffix."""
        base = slugify(first_name, max_length=USERNAME_BASE_LENGTH) or "user"
        if await self._user_repo.get_by_username(base) is None:
            return base
        for _ in range(USERNAME_MAX_DRAWS):
            candidate = f"{base}-{random.randint(1000, 9999)}"
            if await self._user_repo.get_by_username(candidate) is None:
                return candidate
        raise AlreadyExists("invalid_first_name")

    # --- 2. AUTHENTICATION ---

    async def login(self, credentials: LoginRequest) -> User:
        """Authenticates by email, or by country code plus phone number, and password."""
        if credentials.email:
            user = await self._user_repo.get_by_email(credentials.email.strip())
            error_key = "incorrect_credentials_email"
        elif credentials.country_code and credentials.phone_number:
            user = await self._user_repo.get_by_phone(
                credentials.country_code.strip().upper(), credentials.phone_number.strip()
            )
            error_key = "incorrect_credentials_phone_number"
        else:
            raise ValidationError("missing_credentials")

        if user is None or not self._hasher.verify(credentials.password, user.password_hash):
            raise AuthError(error_key)
        if not user.is_active:
            raise AuthError("account_not_verified")
        return user

    # --- 3. PASSWORD MANAGEMENT ---

    async def change_password(
        self, user: User, data: PasswordChangeRequest, ip_address: str = "", address: str = ""
    ) -> TokenPair:
        """
        Replaces the password, revokes every session of the identity and
        issues a fresh token pair for the caller, all in one commit.
        """
        if not self._hasher.verify(data.old_password, user.password_hash):
            raise AuthError("incorrect_password")

        await self._user_repo.update_password(user, self._hasher.hash(data.new_password), utcnow())
        await self._tokens.revoke_all(user.id)
        pair = await self._tokens.issue_tokens(user, ip_address=ip_address, address=address)
        logger.info("Password changed for identity %s", user.id)
        return pair
