"""
Command-line interface for fx-news-watch.

Provides commands to run the watcher, trigger a single check, and query
the history, sources, briefing and question services.

Usage:
    fxwatch watch              # Poll sources every 30 minutes (plus bot and briefing)
    fxwatch check --force      # One check, reprocessing the latest articles
    fxwatch search USD         # Search processed articles
    fxwatch sources            # List registered sources
    fxwatch briefing           # Print today's market-wide briefing
    fxwatch ask 12345 "..."    # Answer a question from a user's sources
"""

import asyncio
import signal
import sys

import click

from fxwatch.config.settings import ConfigError
from fxwatch.context import AppContext
from fxwatch.observability.logging import setup_logging
from fxwatch.observability.metrics import get_metrics
from fxwatch.storage.json_store import StorageError
from fxwatch.subscriptions.repository import UserNotFound
from fxwatch.summarization.llm_client import SummarizeError

FATAL_ERRORS = (ConfigError, StorageError, UserNotFound, SummarizeError)


def _fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


def _build_context() -> AppContext:
    try:
        return AppContext.create()
    except FATAL_ERRORS as e:
        _fail(str(e))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """FX News Watch - FX news summaries delivered over Telegram and email."""
    setup_logging(level="DEBUG" if debug else None)


@main.command()
@click.option("--interval", type=click.IntRange(min=1), default=None, help="Minutes between checks")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option("--bot/--no-bot", default=True, help="Answer Telegram commands while watching")
def watch(interval: int | None, metrics: bool, bot: bool) -> None:
    """Watch all sources continuously."""
    ctx = _build_context()

    async def run():
        if metrics:
            get_metrics().start_server(ctx.settings.metrics_port)

        telegram_bot = ctx.build_bot() if bot and ctx.telegram.config.is_configured else None

        async def shutdown():
            if telegram_bot:
                telegram_bot.stop()
            await ctx.watcher.stop()

        # Handle shutdown signals
        loop = asyncio.get_event_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(shutdown()))

        tasks = [ctx.watcher.run(interval)]
        if telegram_bot:
            tasks.append(telegram_bot.run())
        try:
            await asyncio.gather(*tasks)
        finally:
            await ctx.close()

    asyncio.run(run())


@main.command()
@click.option("--force", is_flag=True, help="Process the latest article even if already seen")
def check(force: bool) -> None:
    """Check every source once."""
    ctx = _build_context()

    async def run():
        try:
            return await ctx.watcher.check(force=force)
        finally:
            await ctx.close()

    report = asyncio.run(run())

    click.echo(f"\nCheck results ({len(ctx.registry)} sources):")
    click.echo("-" * 40)
    for source_id in report.processed:
        click.echo(click.style(f"  ✓ {source_id}: new article processed", fg="green"))
    for source_id in report.up_to_date:
        click.echo(f"  = {source_id}: up to date")
    for source_id, error in report.failed.items():
        click.echo(click.style(f"  ✗ {source_id}: {error}", fg="red"))
    click.echo("-" * 40)

    if report.has_new_content:
        click.echo(click.style("New content processed.", fg="green"))
    else:
        click.echo("No new content.")


@main.command()
@click.argument("term")
def search(term: str) -> None:
    """Search processed articles by title or tag."""
    ctx = _build_context()
    results = ctx.history.search(term)

    if not results:
        click.echo(f"No articles found for '{term}'.")
        return

    click.echo(f"\n{len(results)} article(s) matching '{term}':\n")
    for entry in results:
        click.echo(f"  [{entry.date:%Y-%m-%d %H:%M}] {entry.title}")
        click.echo(f"      {entry.source_name or entry.source} | {' '.join(entry.tags)}")
        click.echo(f"      {entry.url}")


@main.command()
def sources() -> None:
    """List registered sources."""
    ctx = _build_context()

    click.echo("\nRegistered sources:")
    click.echo("-" * 40)
    for info in ctx.registry.list():
        click.echo(f"  {info.id:<16} {info.name} ({info.kind.value})")


@main.command()
@click.option("--send", is_flag=True, help="Send a personalized briefing to every user")
def briefing(send: bool) -> None:
    """Generate today's morning briefing."""
    ctx = _build_context()

    async def run():
        try:
            if send:
                return await ctx.briefing.send_all()
            return await ctx.briefing.generate()
        finally:
            await ctx.close()

    try:
        result = asyncio.run(run())
    except FATAL_ERRORS as e:
        _fail(str(e))

    if send:
        click.echo(f"Briefing sent to {len(result.sent)} user(s), {len(result.failed)} failed.")
        for user_id, error in result.failed.items():
            click.echo(click.style(f"  ✗ {user_id}: {error}", fg="red"))
    else:
        click.echo(result)


@main.command()
@click.argument("user_id")
@click.argument("question")
def ask(user_id: str, question: str) -> None:
    """Answer QUESTION from the articles of USER_ID's subscribed sources."""
    ctx = _build_context()

    async def run():
        try:
            return await ctx.questions.ask(user_id, question)
        finally:
            await ctx.close()

    try:
        answer = asyncio.run(run())
    except FATAL_ERRORS as e:
        _fail(str(e))

    click.echo(answer)


if __name__ == "__main__":
    main()
