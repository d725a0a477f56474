"""
Message formatting for Telegram and email.

Telegram messages use the Bot API HTML parse mode, so every piece of
article or model text is escaped before markup is added. The newsletter
email is rendered from a jinja2 template with autoescaping.
"""

import html
import re
from datetime import datetime

import jinja2

from fxwatch.economics.links import trading_economics_link
from fxwatch.economics.schemas import EconomicEvent
from fxwatch.summarization.currencies import CURRENCY_NAMES, TRACKED_CURRENCIES
from fxwatch.summarization.schemas import ArticleSummary

TELEGRAM_MAX_CHARS = 4096

IMPACT_ICONS = {"High": "🔴", "Medium": "🟠", "Low": "🟡"}

SENTIMENT_COLORS = {
    "haussier": {"bg": "#dcfce7", "text": "#166534", "border": "#22c55e"},
    "baissier": {"bg": "#fee2e2", "text": "#991b1b", "border": "#ef4444"},
    "neutre": {"bg": "#f3f4f6", "text": "#374151", "border": "#9ca3af"},
}

FRENCH_WEEKDAYS = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]
FRENCH_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]

_env = jinja2.Environment(
    loader=jinja2.PackageLoader("fxwatch.delivery", "templates"),
    autoescape=jinja2.select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

_BOLD = re.compile(r"\*\*(.+?)\*\*")


def escape(text: str) -> str:
    return html.escape(text or "", quote=False)


def french_date(moment: datetime) -> str:
    """``lundi 19 octobre 2026``."""
    return (
        f"{FRENCH_WEEKDAYS[moment.weekday()]} {moment.day} "
        f"{FRENCH_MONTHS[moment.month - 1]} {moment.year}"
    )


def format_event_line(code: str, event: EconomicEvent) -> str:
    icon = IMPACT_ICONS.get(event.impact, "⚪")
    line = f"• {escape(event.time)} {icon} {escape(event.title)}"
    if event.forecast:
        line += f" (prév. {escape(event.forecast)})"
    link = trading_economics_link(code, event.title)
    if link:
        line += f' <a href="{html.escape(link)}">[Graph ↗]</a>'
    return line


def format_article_message(summary: ArticleSummary, article_url: str, source_name: str = "") -> str:
    """Telegram HTML message for one processed article."""
    parts = [f"<b>{escape(summary.title)}</b>"]
    if source_name:
        parts.append(f"📰 {escape(source_name)}")
    parts.append(f"<i>{escape(summary.introduction)}</i>")

    if summary.currencies:
        for code, section in summary.currencies.items():
            block = [
                f"{section.sentiment.emoji} <b>{escape(code)}</b> ({section.sentiment.value.upper()})",
                escape(section.summary) or "Pas de détails.",
            ]
            if section.events:
                block.append("\n📅 <i>Calendrier éco :</i>")
                block.extend(format_event_line(code, e) for e in section.events)
            parts.append("\n".join(block))
    elif summary.conclusion:
        parts.append(f"<b>Analyse :</b>\n{escape(summary.conclusion)}")

    if summary.key_takeaway:
        parts.append(f"💡 <b>À retenir :</b> {escape(summary.key_takeaway)}")
    if summary.tags:
        parts.append(escape(" ".join(summary.tags)))
    parts.append(f'🔗 <a href="{html.escape(article_url)}">Lire l\'article original</a>')
    return "\n\n".join(parts)


def format_briefing_message(text: str, when: datetime) -> str:
    """Telegram HTML wrapper for a generated morning briefing (``**bold**`` kept)."""
    body = _BOLD.sub(r"<b>\1</b>", escape(text))
    return f"☕ <b>Morning Briefing</b> - {french_date(when)}\n\n{body}"


def format_plain(text: str) -> str:
    """Escape free text (answers, notices) for HTML parse mode, keeping ``**bold**``."""
    return _BOLD.sub(r"<b>\1</b>", escape(text))


def split_message(text: str, limit: int = TELEGRAM_MAX_CHARS) -> list[str]:
    """Split on paragraph, then line boundaries so each chunk fits one Telegram message."""
    if len(text) <= limit:
        return [text]

    chunks: list[str] = []
    current = ""
    for paragraph in text.split("\n"):
        while len(paragraph) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(paragraph[:limit])
            paragraph = paragraph[limit:]
        candidate = f"{current}\n{paragraph}" if current else paragraph
        if len(candidate) > limit:
            chunks.append(current)
            current = paragraph
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def newsletter_subject(summary: ArticleSummary) -> str:
    return f"📊 FX Daily : {summary.title}"


def render_newsletter_html(
    summary: ArticleSummary,
    article_url: str,
    source_name: str,
    generated_at: datetime,
) -> str:
    template = _env.get_template("newsletter.html")
    return template.render(
        summary=summary,
        article_url=article_url,
        source_name=source_name,
        date_label=french_date(generated_at),
        sentiment_colors=SENTIMENT_COLORS,
        currency_names=CURRENCY_NAMES,
        impact_icons=IMPACT_ICONS,
        tracked=TRACKED_CURRENCIES,
    )


def render_newsletter_text(summary: ArticleSummary, article_url: str) -> str:
    """Plain-text alternative part of the newsletter email."""
    lines = [summary.title, "", summary.introduction, "", "--- Analyse par devise ---"]
    for code, section in summary.currencies.items():
        lines.extend(["", f"{section.sentiment.emoji} {code}: {section.sentiment.value}", section.summary])
    lines.extend(["", f"💡 À retenir : {summary.key_takeaway}", "", f"Lire l'article : {article_url}"])
    return "\n".join(lines)
