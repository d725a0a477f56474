"""Per-user conversation state for multi-step bot commands.

A user is either idle or has been asked for subscription tags for one
source. A pending prompt expires after a timeout, after which the user's
next message is handled as if idle.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_TAGS = "awaiting_tags"


@dataclass
class Conversation:
    state: ConversationState = ConversationState.IDLE
    source_id: str | None = None
    expires_at: float = 0.0


class ConversationTracker:
    """In-memory conversation states keyed by user id."""

    def __init__(
        self,
        timeout_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timeout = timeout_seconds
        self._clock = clock
        self._conversations: dict[str, Conversation] = {}

    def await_tags(self, user_id: str, source_id: str) -> Conversation:
        conversation = Conversation(
            state=ConversationState.AWAITING_TAGS,
            source_id=source_id,
            expires_at=self._clock() + self._timeout,
        )
        self._conversations[user_id] = conversation
        return conversation

    def get(self, user_id: str) -> Conversation:
        """Current conversation; expired prompts come back as idle."""
        conversation = self._conversations.get(user_id)
        if conversation is None:
            return Conversation()
        if self._clock() >= conversation.expires_at:
            del self._conversations[user_id]
            return Conversation()
        return conversation

    def state(self, user_id: str) -> ConversationState:
        return self.get(user_id).state

    def reset(self, user_id: str) -> None:
        self._conversations.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._conversations)
