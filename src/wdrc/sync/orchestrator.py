"""One sync cycle: ancillary streams, recent changes, diffs, persistence."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from wdrc.config import SyncSettings
from wdrc.storage.feed import FeedReader
from wdrc.storage.repository import ChangeStore
from wdrc.storage.text_cache import TextCache
from wdrc.storage.watermarks import WatermarkStore, query_window
from wdrc.sync.aggregator import aggregate, last_timestamp
from wdrc.sync.identifiers import try_decode_item_id
from wdrc.sync.models import CycleSummary, Stream, StreamRefresh
from wdrc.sync.pipeline import FetchDiffPipeline
from wdrc.sync.revisions import RevisionPairSource
from wdrc.sync.writer import ChangeWriter

logger = logging.getLogger(__name__)

DEFAULT_STREAM_WATERMARK = "20000101000000"


class SyncOrchestrator:
    """Coordinates the feed reader, fetch-diff pipeline and change store.

    All store access runs in worker threads so it never blocks the event loop;
    the text cache and watermarks are only touched from this sequential context.
    """

    def __init__(
        self,
        *,
        settings: SyncSettings,
        feed: FeedReader,
        store: ChangeStore,
        revision_source: RevisionPairSource,
    ) -> None:
        self.settings = settings
        self.feed = feed
        self.store = store
        self.text_cache = TextCache(store)
        self.watermarks = WatermarkStore(store)
        self.pipeline = FetchDiffPipeline(
            revision_source,
            max_concurrency=settings.max_concurrent_fetches,
        )
        self.writer = ChangeWriter(store=store, text_cache=self.text_cache)

    async def run_once(self) -> CycleSummary:
        summary = CycleSummary()
        summary.refreshes = await self.refresh_streams()

        watermark = await asyncio.to_thread(self.watermarks.get, Stream.CHANGES)
        window = query_window(watermark, timedelta(hours=self.settings.window_hours))
        events = await asyncio.to_thread(
            self.feed.recent_changes,
            window,
            self.settings.max_recent_changes,
        )
        batch = aggregate(events)
        summary.window = window
        summary.rows_count = len(events)
        summary.new_items_count = len(batch.new_items)
        summary.changed_items_count = len(batch.changed_items)
        logger.info(
            "Window %s..%s: rows=%d new=%d changed=%d",
            window.low,
            window.high,
            len(events),
            len(batch.new_items),
            len(batch.changed_items),
        )

        report = await self.pipeline.run(batch.changed_items)
        summary.changes_count = len(report.changes)
        summary.failed_items_count = len(report.failures)

        summary.writes = await asyncio.to_thread(self.writer.write_changes, report.changes)
        new_watermark = last_timestamp(batch.changed_items, watermark)
        if batch.changed_items:
            await asyncio.to_thread(self.watermarks.advance, Stream.CHANGES, new_watermark)
        summary.watermark = new_watermark

        await asyncio.to_thread(self.writer.write_new_items, batch.new_items)

        logger.info(
            "Cycle done: changes=%d label_rows=%d statement_rows=%d failed_items=%d watermark=%s",
            summary.changes_count,
            summary.writes.label_rows,
            summary.writes.statement_rows,
            summary.failed_items_count,
            summary.watermark,
        )
        return summary

    async def refresh_streams(self) -> list[StreamRefresh]:
        """Refresh redirects and deletions concurrently; failures are recorded, not raised."""

        streams = (Stream.REDIRECTS, Stream.DELETIONS)
        results = await asyncio.gather(
            asyncio.to_thread(self.refresh_redirects),
            asyncio.to_thread(self.refresh_deletions),
            return_exceptions=True,
        )
        refreshes: list[StreamRefresh] = []
        for stream, result in zip(streams, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "Refreshing %s failed: %s",
                    stream.value,
                    result,
                    exc_info=result,
                )
                refreshes.append(StreamRefresh(stream=stream, error=str(result)))
            elif isinstance(result, BaseException):
                raise result
            else:
                refreshes.append(result)
        return refreshes

    def refresh_redirects(self) -> StreamRefresh:
        watermark = self.watermarks.get(Stream.REDIRECTS, DEFAULT_STREAM_WATERMARK)
        events = [
            event
            for event in self.feed.recent_redirects(watermark)
            if try_decode_item_id(event.source) is not None
            and try_decode_item_id(event.target) is not None
        ]
        if not events:
            return StreamRefresh(stream=Stream.REDIRECTS, watermark=watermark)

        written = self.writer.write_redirects(events)
        newest = max(watermark, *(event.timestamp for event in events))
        self.watermarks.advance(Stream.REDIRECTS, newest)
        logger.info("Redirects: %d changes", written)
        return StreamRefresh(stream=Stream.REDIRECTS, written_count=written, watermark=newest)

    def refresh_deletions(self) -> StreamRefresh:
        watermark = self.watermarks.get(Stream.DELETIONS, DEFAULT_STREAM_WATERMARK)
        events = [
            event
            for event in self.feed.recent_deletions(watermark)
            if try_decode_item_id(event.title) is not None
        ]
        if not events:
            return StreamRefresh(stream=Stream.DELETIONS, watermark=watermark)

        written = self.writer.write_deletions(events)
        newest = max(watermark, *(event.timestamp for event in events))
        self.watermarks.advance(Stream.DELETIONS, newest)
        logger.info("Deletions: %d changes", written)
        return StreamRefresh(stream=Stream.DELETIONS, written_count=written, watermark=newest)

    async def run_forever(self, *, max_cycles: int | None = None) -> int:
        """Loop cycles until cancelled; a failed cycle is logged and retried after a backoff.

        Returns the number of cycles that completed without error.
        """

        completed = 0
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            cycles += 1
            try:
                await self.run_once()
                completed += 1
            except Exception:
                logger.exception("Sync cycle failed")
                await asyncio.sleep(self.settings.error_backoff_seconds)
        return completed
