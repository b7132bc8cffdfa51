from .category import CategoryRepository
from .session import SessionRepository
from .user import UserRepository

__all__ = ["CategoryRepository", "SessionRepository", "UserRepository"]
