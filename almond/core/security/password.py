from passlib.context import CryptContext

from almond.core.config import Settings


class PasswordHasher:
    """bcrypt hashing with the cost factor of the running application."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(rounds=settings.BCRYPT_ROUNDS)

    def hash(self, raw_password: str) -> str:
        return self._context.hash(raw_password)

    def verify(self, raw_password: str, hashed_password: str | None) -> bool:
        """A missing hash never matches."""
        if not raw_password or not hashed_password:
            return False
        return self._context.verify(raw_password, hashed_password)
