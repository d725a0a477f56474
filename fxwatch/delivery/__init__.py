"""Message formatting and delivery over Telegram and email."""

from fxwatch.delivery.channels import (
    DeliveryChannel,
    DeliveryError,
    EmailChannel,
    OutboundMessage,
    TelegramChannel,
    inline_keyboard,
)
from fxwatch.delivery.config import EmailConfig, TelegramConfig
from fxwatch.delivery.dispatcher import Dispatcher, DispatchReport
from fxwatch.delivery.formatting import (
    format_article_message,
    format_briefing_message,
    format_plain,
    newsletter_subject,
    render_newsletter_html,
    render_newsletter_text,
    split_message,
)

__all__ = [
    "DeliveryChannel",
    "DeliveryError",
    "DispatchReport",
    "Dispatcher",
    "EmailChannel",
    "EmailConfig",
    "OutboundMessage",
    "TelegramChannel",
    "TelegramConfig",
    "format_article_message",
    "format_briefing_message",
    "format_plain",
    "inline_keyboard",
    "newsletter_subject",
    "render_newsletter_html",
    "render_newsletter_text",
    "split_message",
]
