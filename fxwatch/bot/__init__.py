"""Telegram bot - inbound commands and conversation state."""

from fxwatch.bot.conversation import Conversation, ConversationState, ConversationTracker
from fxwatch.bot.service import TelegramBot, parse_command

__all__ = [
    "Conversation",
    "ConversationState",
    "ConversationTracker",
    "TelegramBot",
    "parse_command",
]
