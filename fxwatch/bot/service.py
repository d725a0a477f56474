"""
Telegram bot - inbound commands over Bot API long polling.

Commands map onto the subscription store, the history and the question
service. Subscribing through the inline keyboard is a two-step
conversation: pick a source, then reply with tags (or "tout").
"""

import asyncio
from typing import Any

import structlog

from fxwatch.bot.conversation import ConversationState, ConversationTracker
from fxwatch.config.settings import ConfigError
from fxwatch.delivery.channels import DeliveryError, TelegramChannel, inline_keyboard
from fxwatch.delivery.formatting import escape, format_plain
from fxwatch.history.repository import HistoryRepository
from fxwatch.observability.logging import log_context
from fxwatch.services.qa_service import QuestionService
from fxwatch.sources.registry import SourceNotFound, SourceRegistry
from fxwatch.subscriptions.repository import UserRepository
from fxwatch.subscriptions.schemas import parse_tags
from fxwatch.summarization.llm_client import SummarizeError

logger = structlog.get_logger(__name__)

SEARCH_LIMIT = 10
RETRY_DELAY_SECONDS = 5.0
ALL_CONTENT_WORDS = {"tout", "all", "*"}
SUBSCRIBE_CALLBACK = "sub:"
SOURCES_CALLBACK = "sources"

HELP_TEXT = (
    "📌 <b>Commandes disponibles :</b>\n"
    "/sources - Voir les sources disponibles\n"
    "/subscribe &lt;source&gt; [tags] - S'abonner (ex : /subscribe ing #USD)\n"
    "/unsubscribe &lt;source&gt; [tags] - Se désabonner\n"
    "/mysubs - Voir mes abonnements\n"
    "/search &lt;terme&gt; - Chercher dans l'historique\n"
    "/ask &lt;question&gt; - Interroger vos sources d'abonnement\n"
    "/cancel - Annuler l'opération en cours"
)


def parse_command(text: str) -> tuple[str, str]:
    """``"/subscribe@FxBot ing #USD"`` -> ``("subscribe", "ing #USD")``."""
    head, _, rest = text.strip().partition(" ")
    command = head[1:].split("@", 1)[0].lower()
    return command, rest.strip()


class TelegramBot:
    """
    Long-polling Telegram bot.

    Usage:
        bot = TelegramBot(channel, registry, users, history, questions)
        await bot.run()  # Runs until stop()
    """

    def __init__(
        self,
        channel: TelegramChannel,
        registry: SourceRegistry,
        users: UserRepository,
        history: HistoryRepository,
        questions: QuestionService,
        conversations: ConversationTracker | None = None,
    ):
        self._channel = channel
        self._registry = registry
        self._users = users
        self._history = history
        self._questions = questions
        self._conversations = conversations or ConversationTracker(
            timeout_seconds=channel.config.conversation_timeout_seconds,
        )
        self._offset: int | None = None
        self._running = False
        self._handlers = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "sources": self._cmd_sources,
            "subscribe": self._cmd_subscribe,
            "unsubscribe": self._cmd_unsubscribe,
            "mysubs": self._cmd_mysubs,
            "search": self._cmd_search,
            "ask": self._cmd_ask,
            "cancel": self._cmd_cancel,
        }

    @property
    def conversations(self) -> ConversationTracker:
        return self._conversations

    # ── Polling ─────────────────────────────────────────────────

    async def run(self) -> None:
        """Poll for updates until stop(). Transport errors are retried."""
        if not self._channel.config.is_configured:
            raise ConfigError("TELEGRAM_BOT_TOKEN is not set; the bot cannot start")

        self._running = True
        logger.info("Telegram bot polling started")
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                break
            except DeliveryError as e:
                logger.warning("Polling error", error=str(e))
                await asyncio.sleep(RETRY_DELAY_SECONDS)
            except Exception as e:
                logger.error("Unexpected polling error", error=str(e), exc_info=True)
                await asyncio.sleep(RETRY_DELAY_SECONDS)
        logger.info("Telegram bot stopped")

    def stop(self) -> None:
        self._running = False

    async def poll_once(self) -> int:
        """Fetch and handle one batch of updates; returns how many were handled."""
        payload: dict[str, Any] = {
            "timeout": self._channel.config.poll_timeout_seconds,
            "allowed_updates": ["message", "callback_query"],
        }
        if self._offset is not None:
            payload["offset"] = self._offset

        updates = await self._channel.api_call("getUpdates", payload) or []
        for update in updates:
            self._offset = update["update_id"] + 1
            with log_context(update_id=update["update_id"]):
                try:
                    await self.handle_update(update)
                except DeliveryError as e:
                    logger.warning("Reply failed", error=str(e))
                except Exception as e:
                    logger.error("Update handling failed", error=str(e), exc_info=True)
        return len(updates)

    async def handle_update(self, update: dict[str, Any]) -> None:
        if "callback_query" in update:
            await self._handle_callback(update["callback_query"])
            return

        message = update.get("message") or {}
        text = message.get("text")
        chat = message.get("chat") or {}
        if not text or "id" not in chat:
            return

        chat_id = str(chat["id"])
        first_name = (message.get("from") or {}).get("first_name", "")

        if text.startswith("/"):
            command, args = parse_command(text)
            handler = self._handlers.get(command)
            if handler is None:
                await self._reply(chat_id, f"Commande inconnue.\n\n{HELP_TEXT}")
                return
            logger.info("Command received", chat_id=chat_id, command=command)
            await handler(chat_id, args, first_name)
            return

        conversation = self._conversations.get(chat_id)
        if conversation.state == ConversationState.AWAITING_TAGS:
            await self._complete_subscription(chat_id, conversation.source_id, text)
        else:
            await self._reply(chat_id, HELP_TEXT)

    async def _handle_callback(self, query: dict[str, Any]) -> None:
        data = query.get("data") or ""
        chat_id = str(((query.get("message") or {}).get("chat") or {}).get("id") or query["from"]["id"])
        await self._channel.api_call("answerCallbackQuery", {"callback_query_id": query["id"]})

        if data == SOURCES_CALLBACK:
            await self._cmd_sources(chat_id, "", "")
            return
        if not data.startswith(SUBSCRIBE_CALLBACK):
            return
        source_id = data[len(SUBSCRIBE_CALLBACK):]
        if source_id not in self._registry:
            await self._reply(chat_id, f"❌ Source inconnue : {escape(source_id)}")
            return

        self._users.register_user(chat_id, query.get("from", {}).get("first_name", ""))
        self._conversations.await_tags(chat_id, source_id)
        await self._reply(
            chat_id,
            f"🏷 Abonnement à <b>{escape(source_id)}</b> : envoyez vos tags "
            "(ex : <code>#USD #EUR</code>) ou <code>tout</code> pour tout recevoir.",
        )

    async def _reply(self, chat_id: str, text: str, reply_markup: dict[str, Any] | None = None) -> None:
        await self._channel.send_text(chat_id, text, reply_markup=reply_markup)

    # ── Commands ────────────────────────────────────────────────

    async def _cmd_start(self, chat_id: str, args: str, first_name: str) -> None:
        self._users.register_user(chat_id, first_name)
        await self._reply(
            chat_id,
            f"👋 Bonjour {escape(first_name)} !\n\n"
            "Je suis votre assistant Forex AI. 🤖\n"
            "Je surveille les marchés et je vous envoie des analyses filtrées par IA.\n\n"
            f"{HELP_TEXT}",
        )

    async def _cmd_help(self, chat_id: str, args: str, first_name: str) -> None:
        await self._reply(chat_id, HELP_TEXT)

    async def _cmd_sources(self, chat_id: str, args: str, first_name: str) -> None:
        lines = ["📚 <b>Sources disponibles :</b>", ""]
        lines.extend(
            f"🔹 <code>{escape(s.id)}</code> : {escape(s.name)} ({s.kind.value})"
            for s in self._registry.list()
        )
        keyboard = inline_keyboard(
            [[(f"S'abonner à {s.name}", f"{SUBSCRIBE_CALLBACK}{s.id}")] for s in self._registry.list()]
        )
        await self._reply(chat_id, "\n".join(lines), reply_markup=keyboard)

    async def _cmd_subscribe(self, chat_id: str, args: str, first_name: str) -> None:
        self._users.register_user(chat_id, first_name)
        if not args:
            await self._cmd_sources(chat_id, args, first_name)
            return

        source_id, _, tag_text = args.partition(" ")
        try:
            self._registry.get(source_id)
        except SourceNotFound:
            await self._reply(
                chat_id,
                f"❌ Erreur : source inconnue '{escape(source_id)}'. Utilisez /sources pour voir la liste.",
            )
            return

        await self._complete_subscription(chat_id, source_id, tag_text or "tout")

    async def _complete_subscription(self, chat_id: str, source_id: str, tag_text: str) -> None:
        self._conversations.reset(chat_id)
        words = tag_text.strip().lower()
        tags = None if words in ALL_CONTENT_WORDS else parse_tags(tag_text)
        if tags == []:
            tags = None

        self._users.register_user(chat_id)
        sub = self._users.subscribe(chat_id, source_id, tags)
        detail = f"Filtre : {escape(', '.join(sub.tags))}" if sub.tags else "Tout le contenu"
        await self._reply(chat_id, f"✅ Abonnement confirmé pour <b>{escape(source_id)}</b> ({detail})")

    async def _cmd_unsubscribe(self, chat_id: str, args: str, first_name: str) -> None:
        if not args:
            await self._reply(chat_id, "Usage : /unsubscribe &lt;source&gt; [tags]")
            return

        source_id, _, tag_text = args.partition(" ")
        self._users.register_user(chat_id, first_name)
        removed = self._users.unsubscribe(chat_id, source_id, parse_tags(tag_text) if tag_text.strip() else None)
        if removed:
            await self._reply(chat_id, f"🗑 Désabonnement effectué pour <b>{escape(source_id)}</b>.")
        else:
            await self._reply(chat_id, f"Aucun abonnement correspondant pour <b>{escape(source_id)}</b>.")

    async def _cmd_mysubs(self, chat_id: str, args: str, first_name: str) -> None:
        user = self._users.get_user(chat_id)
        if user is None or not user.subscriptions:
            await self._reply(chat_id, "📭 Aucun abonnement actif.")
            return

        lines = ["📋 <b>Vos abonnements :</b>", ""]
        for i, sub in enumerate(user.subscriptions, start=1):
            detail = f"(Tags : {escape(', '.join(sub.tags))})" if sub.tags else "(Tout)"
            lines.append(f"{i}. <b>{escape(sub.source)}</b> {detail}")
        await self._reply(chat_id, "\n".join(lines))

    async def _cmd_search(self, chat_id: str, args: str, first_name: str) -> None:
        if not args:
            await self._reply(chat_id, "Usage : /search &lt;terme&gt;")
            return

        results = self._history.search(args)
        if not results:
            await self._reply(chat_id, f"🔍 Aucun résultat pour « {escape(args)} ».")
            return

        lines = [f"🔍 <b>{len(results)} résultat(s) pour « {escape(args)} » :</b>", ""]
        for entry in results[:SEARCH_LIMIT]:
            lines.append(
                f"• {entry.date:%d/%m} <a href=\"{escape(entry.url)}\">{escape(entry.title)}</a> "
                f"{escape(' '.join(entry.tags))}"
            )
        await self._reply(chat_id, "\n".join(lines))

    async def _cmd_ask(self, chat_id: str, args: str, first_name: str) -> None:
        if not args:
            await self._reply(chat_id, "Usage : /ask &lt;question&gt;")
            return

        self._users.register_user(chat_id, first_name)
        try:
            answer = await self._questions.ask(chat_id, args)
        except ConfigError as e:
            logger.warning("Question service unavailable", error=str(e))
            await self._reply(chat_id, "⚠️ Le service de questions n'est pas configuré.")
            return
        except SummarizeError as e:
            logger.warning("Question answering failed", chat_id=chat_id, error=str(e))
            await self._reply(chat_id, "⚠️ Impossible de répondre pour le moment, réessayez plus tard.")
            return

        keyboard = inline_keyboard([[("➕ Ajouter des sources", SOURCES_CALLBACK)]])
        await self._reply(chat_id, format_plain(answer), reply_markup=keyboard)

    async def _cmd_cancel(self, chat_id: str, args: str, first_name: str) -> None:
        self._conversations.reset(chat_id)
        await self._reply(chat_id, "Opération annulée.")
