from .category import CategoryService
from .guard import RouteGuard
from .notifier import Channel, NotificationGateway, Notifier, NotifierError
from .token import TokenPair, TokenService
from .user import UserService
from .verification import ChannelBinding, VerificationService, VerificationTicket

__all__ = [
    "CategoryService",
    "Channel",
    "ChannelBinding",
    "NotificationGateway",
    "Notifier",
    "NotifierError",
    "RouteGuard",
    "TokenPair",
    "TokenService",
    "UserService",
    "VerificationService",
    "VerificationTicket",
]
