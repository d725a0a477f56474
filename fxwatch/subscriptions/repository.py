"""User and subscription repository backed by a JSON document.

Provides registration, subscribe/unsubscribe and recipient resolution.
The document maps user id to user record; every mutation rewrites it
atomically.
"""

import logging
from collections.abc import Iterator
from typing import Any

from fxwatch.storage.json_store import JsonDocumentStore
from fxwatch.subscriptions.schemas import (
    Subscription,
    User,
    merge_tags,
    parse_tags,
)

logger = logging.getLogger(__name__)


class UserNotFound(KeyError):
    """Raised when mutating subscriptions of a user that never registered."""

    def __str__(self) -> str:
        return f"Unknown user: {self.args[0]}"


def _record_to_user(user_id: str, record: dict[str, Any]) -> User:
    """Convert a stored record to a User, migrating legacy fields."""
    record = {"id": user_id, **record}
    return User.model_validate(record)


def _user_to_record(user: User) -> dict[str, Any]:
    return user.model_dump(mode="json", by_alias=True)


class UserRepository:
    """Repository for users and their subscriptions.

    Tags are compared case-insensitively everywhere; the first casing a
    user typed is the one stored.
    """

    def __init__(self, store: JsonDocumentStore) -> None:
        self._store = store
        self._users: dict[str, User] = {}
        self._load()

    def _load(self) -> None:
        raw = self._store.load()
        migrated = False
        for user_id, record in raw.items():
            subs = record.get("subscriptions") or []
            if any("tag" in s and "tags" not in s for s in subs):
                migrated = True
            self._users[str(user_id)] = _record_to_user(str(user_id), record)

        if migrated:
            logger.info("Migrated legacy single-tag subscriptions")
            self._save()

    def _save(self) -> None:
        self._store.save({uid: _user_to_record(u) for uid, u in self._users.items()})

    def _require(self, user_id: str) -> User:
        try:
            return self._users[str(user_id)]
        except KeyError:
            raise UserNotFound(str(user_id)) from None

    # ── Users ───────────────────────────────────────────────────

    def register_user(self, user_id: str, name: str = "") -> User:
        """Create the user if unknown; existing users are returned untouched."""
        user_id = str(user_id)
        user = self._users.get(user_id)
        if user is not None:
            return user

        user = User(id=user_id, name=name)
        self._users[user_id] = user
        self._save()
        logger.info("New user registered: %s (%s)", name, user_id)
        return user

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(str(user_id))

    def list_users(self) -> list[User]:
        return list(self._users.values())

    def __iter__(self) -> Iterator[User]:
        return iter(self.list_users())

    def __len__(self) -> int:
        return len(self._users)

    # ── Subscriptions ───────────────────────────────────────────

    def subscribe(
        self,
        user_id: str,
        source_id: str,
        tags: list[str] | str | None = None,
    ) -> Subscription:
        """Create or update the user's subscription to a source.

        Args:
            user_id: Registered user id.
            source_id: Source to follow.
            tags: Tags to add. None resets the subscription to all content.

        Returns:
            The updated subscription.

        Raises:
            UserNotFound: If the user never registered.
        """
        user = self._require(user_id)
        sub = user.subscription_for(source_id)
        if sub is None:
            sub = Subscription(source=source_id)
            user.subscriptions.append(sub)

        if tags is None:
            sub.tags = []
        else:
            sub.tags = merge_tags(sub.tags, parse_tags(tags))

        self._save()
        logger.info(
            "User %s subscribed to %s (tags: %s)",
            user.id,
            source_id,
            ", ".join(sub.tags) or "ALL",
        )
        return sub

    def unsubscribe(
        self,
        user_id: str,
        source_id: str,
        tags: list[str] | str | None = None,
    ) -> bool:
        """Remove a subscription, or some of its tags.

        Removing the last tag deletes the subscription rather than widening
        it to all content.

        Returns:
            False when the user had no such subscription or none of the
            tags were present.

        Raises:
            UserNotFound: If the user never registered.
        """
        user = self._require(user_id)
        sub = user.subscription_for(source_id)
        if sub is None:
            return False

        if tags is None:
            user.subscriptions.remove(sub)
        else:
            to_remove = {t.lower() for t in parse_tags(tags)}
            remaining = [t for t in sub.tags if t.lower() not in to_remove]
            if len(remaining) == len(sub.tags):
                return False
            if remaining:
                sub.tags = remaining
            else:
                user.subscriptions.remove(sub)

        self._save()
        logger.info("User %s unsubscribed from %s", user.id, source_id)
        return True

    def get_recipients(self, source_id: str, article_tags: list[str]) -> set[str]:
        """Ids of users subscribed to ``source_id`` whose tags match the article.

        A subscription with no tags matches every article of its source.
        """
        return {
            user.id
            for user in self._users.values()
            if any(
                sub.source == source_id and sub.matches(article_tags)
                for sub in user.subscriptions
            )
        }
