"""Application wiring: builds every store, client and service from settings."""

from dataclasses import dataclass

from fxwatch.bot.service import TelegramBot
from fxwatch.config.settings import Settings, get_settings
from fxwatch.delivery.channels import EmailChannel, TelegramChannel
from fxwatch.delivery.config import EmailConfig, TelegramConfig
from fxwatch.economics.client import CalendarClient
from fxwatch.history.repository import HistoryRepository
from fxwatch.ingestion.extractor import ArticleExtractor
from fxwatch.ingestion.http_client import HTTPClient
from fxwatch.services.briefing_service import BriefingService
from fxwatch.services.processing_service import ArticlePipeline
from fxwatch.services.qa_service import QuestionService
from fxwatch.sources.catalog import build_default_registry
from fxwatch.sources.registry import SourceRegistry
from fxwatch.storage.json_store import JsonDocumentStore
from fxwatch.subscriptions.repository import UserRepository
from fxwatch.summarization.llm_client import LLMClient
from fxwatch.watcher.config import WatcherConfig
from fxwatch.watcher.service import WatcherService
from fxwatch.watcher.state import WatcherStateRepository


@dataclass
class AppContext:
    """Everything a CLI command needs, built once per process."""

    settings: Settings
    registry: SourceRegistry
    users: UserRepository
    history: HistoryRepository
    state: WatcherStateRepository
    llm: LLMClient
    calendar: CalendarClient
    telegram: TelegramChannel
    email: EmailChannel
    pipeline: ArticlePipeline
    briefing: BriefingService
    questions: QuestionService
    watcher: WatcherService

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        registry: SourceRegistry | None = None,
        watcher_config: WatcherConfig | None = None,
    ) -> "AppContext":
        settings = settings or get_settings()
        registry = registry or build_default_registry(settings)

        users = UserRepository(JsonDocumentStore(settings.users_path, default=dict))
        history = HistoryRepository(JsonDocumentStore(settings.history_path, default=list))
        state = WatcherStateRepository(JsonDocumentStore(settings.watcher_state_path, default=dict))

        llm = LLMClient()
        calendar = CalendarClient()
        telegram = TelegramChannel(TelegramConfig())
        email = EmailChannel(EmailConfig())

        pipeline = ArticlePipeline(
            history=history,
            users=users,
            llm=llm,
            calendar=calendar,
            extractor=ArticleExtractor(lambda: HTTPClient.from_settings(settings)),
            telegram=telegram,
            email=email,
            settings=settings,
        )
        briefing = BriefingService(
            history=history,
            users=users,
            llm=llm,
            calendar=calendar,
            channel=telegram,
            settings=settings,
        )
        questions = QuestionService(history=history, users=users, llm=llm)
        watcher = WatcherService(
            registry=registry,
            pipeline=pipeline,
            state=state,
            briefing=briefing,
            config=watcher_config,
            settings=settings,
        )

        return cls(
            settings=settings,
            registry=registry,
            users=users,
            history=history,
            state=state,
            llm=llm,
            calendar=calendar,
            telegram=telegram,
            email=email,
            pipeline=pipeline,
            briefing=briefing,
            questions=questions,
            watcher=watcher,
        )

    def build_bot(self) -> TelegramBot:
        return TelegramBot(
            channel=self.telegram,
            registry=self.registry,
            users=self.users,
            history=self.history,
            questions=self.questions,
        )

    async def close(self) -> None:
        await self.llm.close()
