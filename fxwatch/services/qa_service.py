"""
Question answering over a user's subscribed history.

Picks up to ten history entries from the user's subscribed sources (keyword
matches first, then the latest articles) and asks the LLM to answer from
that context only.
"""

import re

import structlog

from fxwatch.config.settings import ConfigError
from fxwatch.history.repository import HistoryRepository
from fxwatch.history.schemas import HistoryEntry
from fxwatch.subscriptions.repository import UserNotFound, UserRepository
from fxwatch.summarization.llm_client import LLMClient
from fxwatch.summarization.prompts import ASK_PROMPT

logger = structlog.get_logger(__name__)

NO_SUBSCRIPTIONS = (
    "⚠️ Vous n'avez aucun abonnement actif. Je ne peux pas chercher "
    "d'informations dans votre historique personnel."
)
NO_HISTORY = "📭 Je n'ai trouvé aucun article dans l'historique de vos sources d'abonnement."

MAX_KEYWORD_MATCHES = 5
MAX_LATEST = 5
MAX_CONTEXT = 10
MIN_KEYWORD_LENGTH = 4
ANSWER_TEMPERATURE = 0.3

_PUNCTUATION = re.compile(r"[?.,!]")


def question_keywords(question: str) -> list[str]:
    """Lowercased words of at least four letters."""
    words = _PUNCTUATION.sub("", question.lower()).split()
    return [w for w in words if len(w) >= MIN_KEYWORD_LENGTH]


def select_context(entries: list[HistoryEntry], question: str) -> list[HistoryEntry]:
    """Keyword matches (up to 5), then the latest entries, deduplicated, at most 10."""
    keywords = question_keywords(question)
    matched: list[HistoryEntry] = []
    if keywords:
        for entry in entries:
            text = " ".join([entry.title, entry.key_takeaway, *entry.tags]).lower()
            if any(k in text for k in keywords):
                matched.append(entry)
                if len(matched) == MAX_KEYWORD_MATCHES:
                    break

    context: list[HistoryEntry] = []
    seen: set[str] = set()
    for entry in matched + entries[:MAX_LATEST]:
        if entry.url not in seen:
            seen.add(entry.url)
            context.append(entry)
    return context[:MAX_CONTEXT]


def format_context(entries: list[HistoryEntry]) -> str:
    return "\n\n---\n\n".join(
        f"[{e.date.isoformat()}] SOURCE: {e.source_name or e.source}\n"
        f"TITRE: {e.title}\nCLE: {e.key_takeaway}\nTAGS: {', '.join(e.tags)}"
        for e in entries
    )


class QuestionService:
    """Answers a user's question from the articles of their subscribed sources."""

    def __init__(
        self,
        history: HistoryRepository,
        users: UserRepository,
        llm: LLMClient | None = None,
    ):
        self._history = history
        self._users = users
        self._llm = llm or LLMClient()

    async def ask(self, user_id: str, question: str) -> str:
        """
        Answer ``question`` for ``user_id``.

        Returns a fixed notice instead of calling the LLM when the user has
        no subscriptions or their sources have no history.

        Raises:
            UserNotFound: If the user is not registered.
            ConfigError: If no LLM key is configured.
            SummarizeError: If the completion fails.
        """
        user = self._users.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)
        if not user.subscriptions:
            return NO_SUBSCRIPTIONS

        entries = self._history.for_sources(user.source_ids)
        if not entries:
            return NO_HISTORY

        if not self._llm.is_configured:
            raise ConfigError("No LLM API key configured; questions need one")

        context = select_context(entries, question)
        logger.info("Answering question", user_id=user_id, context_articles=len(context))
        prompt = ASK_PROMPT.format(context=format_context(context), question=question)
        return await self._llm.complete(prompt, temperature=ANSWER_TEMPERATURE)
