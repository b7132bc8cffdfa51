from .base import Base
from .category import Category
from .definitions import AccountStatus, Role, Session, User

__all__ = ["Base", "Category", "AccountStatus", "Role", "Session", "User"]
