from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow


class Role(str, PyEnum):
    USER = "user"
    ADMIN = "admin"


class AccountStatus(str, PyEnum):
    PENDING = "pending"
    ACTIVE = "active"
    PENDING_DELETION = "pending_deletion"


# --- CORE IDENTITY ENTITY ---


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    The Identity Table (T_User).

    An identity signs up through exactly one channel (email, or country code
    plus phone number) and starts out `pending`. It only becomes `active`
    through a successful verification. The verification code lives on the
    row while the identity is pending and is cleared on activation.
    """

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("country_code", "phone_number", name="uq_users_phone"),)

    first_name: Mapped[str] = mapped_column(String(25), nullable=False)
    family_name: Mapped[str] = mapped_column(String(25), nullable=False, default="")

    email: Mapped[None | str] = mapped_column(
        String(64), nullable=True, unique=True, index=True, comment="Lowercased login email (email signup path)."
    )
    country_code: Mapped[None | str] = mapped_column(String(2), nullable=True)
    phone_number: Mapped[None | str] = mapped_column(
        String(9), nullable=True, index=True, comment="Local 9-digit number (phone signup path)."
    )

    username: Mapped[str] = mapped_column(
        String(20), nullable=False, unique=True, index=True, comment="Derived from first name, unique."
    )
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    profile_image: Mapped[None | str] = mapped_column(String(255), nullable=True)

    language: Mapped[str] = mapped_column(String(2), nullable=False, default="uz")
    role: Mapped[str] = mapped_column(String(10), nullable=False, default=Role.USER.value)
    account_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountStatus.PENDING.value, index=True
    )

    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ratings_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_account_suspended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_verified_user: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_phone_number_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    verification_code: Mapped[None | int] = mapped_column(
        Integer, nullable=True, unique=True, comment="Outstanding 5-digit code; NULL once verified."
    )
    verification_code_expires_at: Mapped[None | datetime] = mapped_column(nullable=True)
    password_changed_at: Mapped[None | datetime] = mapped_column(
        nullable=True, comment="Tokens issued before this instant are rejected."
    )

    sessions: Mapped[list["Session"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True, lazy="raise"
    )

    @property
    def is_pending(self) -> bool:
        return self.account_status == AccountStatus.PENDING.value

    @property
    def is_active(self) -> bool:
        return self.account_status == AccountStatus.ACTIVE.value

    def has_any_role(self, *roles: str) -> bool:
        return self.role in roles


class Session(Base, UUIDPrimaryKeyMixin):
    """
    One row per issued token pair. The refresh token itself is the lookup
    key; no separate session id is ever handed to the client.
    """

    __tablename__ = "sessions"

    user_id: Mapped[str] = mapped_column(
        ForeignKey(User.id, ondelete="CASCADE"), nullable=False, index=True, comment="Owning identity."
    )
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    logged_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    last_seen: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    user: Mapped[User] = relationship(back_populates="sessions", lazy="raise")
