"""Controllers for sync CLI commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from wdrc.config import Settings
from wdrc.http.fetcher import HttpFetcher
from wdrc.storage.feed import FeedReader
from wdrc.storage.repository import ChangeStore
from wdrc.sync.models import CycleSummary
from wdrc.sync.orchestrator import SyncOrchestrator
from wdrc.sync.revisions import RevisionSource

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True)
class SyncRunCommand:
    """CLI inputs for a single sync cycle."""

    config_path: Path


@dataclass(slots=True)
class SyncBotCommand:
    """CLI inputs for continuous sync."""

    config_path: Path
    max_cycles: int | None = None


@dataclass(slots=True)
class MigrateCommand:
    """CLI inputs for change store schema upgrade."""

    config_path: Path


class SyncCliController:
    """Coordinates sync command execution."""

    def run(self, command: SyncRunCommand) -> list[str]:
        settings = _load_settings(command.config_path)
        with _services(settings) as (feed, store):
            summary = asyncio.run(_run_once(settings, feed=feed, store=store))
        return format_summary(summary)

    def bot(self, command: SyncBotCommand) -> list[str]:
        settings = _load_settings(command.config_path)
        with _services(settings) as (feed, store):
            completed = asyncio.run(
                _run_forever(settings, feed=feed, store=store, max_cycles=command.max_cycles),
            )
        return [f"Sync loop stopped: completed_cycles={completed}"]

    def migrate(self, command: MigrateCommand) -> list[str]:
        settings = Settings.from_file(command.config_path)
        store = ChangeStore(settings.wdrc.url)
        try:
            store.init_schema()
        finally:
            store.close()
        return ["Change store schema is up to date."]


def build_orchestrator(
    settings: Settings,
    *,
    feed: FeedReader,
    store: ChangeStore,
    fetcher: HttpFetcher,
) -> SyncOrchestrator:
    return SyncOrchestrator(
        settings=settings.sync,
        feed=feed,
        store=store,
        revision_source=RevisionSource(fetcher, api_url=settings.api.url),
    )


def format_summary(summary: CycleSummary) -> list[str]:
    window = f"{summary.window.low}..{summary.window.high}" if summary.window else "-"
    lines = [
        "Sync cycle completed: "
        f"window={window} rows={summary.rows_count} "
        f"new={summary.new_items_count} changed={summary.changed_items_count} "
        f"changes={summary.changes_count} failed={summary.failed_items_count} "
        f"label_rows={summary.writes.label_rows} "
        f"statement_rows={summary.writes.statement_rows} "
        f"watermark={summary.watermark or '-'}",
    ]
    for refresh in summary.refreshes:
        if refresh.error is not None:
            lines.append(f"{refresh.stream.value}: error={refresh.error}")
        else:
            lines.append(
                f"{refresh.stream.value}: written={refresh.written_count} "
                f"watermark={refresh.watermark or '-'}",
            )
    return lines


def configure_logging(enabled: bool) -> None:
    """Log to stderr at INFO, or keep only warnings when logging is disabled."""

    logging.basicConfig(
        level=logging.INFO if enabled else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    logging.getLogger("wdrc").setLevel(logging.INFO if enabled else logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _run_once(settings: Settings, *, feed: FeedReader, store: ChangeStore) -> CycleSummary:
    async with _fetcher(settings) as fetcher:
        orchestrator = build_orchestrator(settings, feed=feed, store=store, fetcher=fetcher)
        return await orchestrator.run_once()


async def _run_forever(
    settings: Settings,
    *,
    feed: FeedReader,
    store: ChangeStore,
    max_cycles: int | None,
) -> int:
    async with _fetcher(settings) as fetcher:
        orchestrator = build_orchestrator(settings, feed=feed, store=store, fetcher=fetcher)
        return await orchestrator.run_forever(max_cycles=max_cycles)


def _fetcher(settings: Settings) -> HttpFetcher:
    return HttpFetcher(
        timeout_seconds=settings.api.timeout_seconds,
        max_retries=settings.api.max_retries,
        user_agent=settings.api.user_agent,
    )


def _load_settings(config_path: Path) -> Settings:
    settings = Settings.from_file(config_path)
    configure_logging(settings.logging_enabled)
    return settings


@contextmanager
def _services(settings: Settings) -> Iterator[tuple[FeedReader, ChangeStore]]:
    feed = FeedReader(settings.wikidata.url)
    store = ChangeStore(settings.wdrc.url, batch_size=settings.sync.write_batch_size)
    try:
        yield feed, store
    finally:
        store.close()
        feed.close()
