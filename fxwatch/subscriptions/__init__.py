"""Users, subscriptions and recipient resolution."""

from fxwatch.subscriptions.repository import UserNotFound, UserRepository
from fxwatch.subscriptions.schemas import Subscription, User, normalize_tag, parse_tags

__all__ = [
    "Subscription",
    "User",
    "UserNotFound",
    "UserRepository",
    "normalize_tag",
    "parse_tags",
]
