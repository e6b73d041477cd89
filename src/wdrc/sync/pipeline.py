"""Bounded-concurrency fetch-and-diff over changed-item work units."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from wdrc.sync.identifiers import decode_item_id
from wdrc.sync.models import ChangedItem, PipelineReport, TaskOutcome
from wdrc.sync.revision_diff import diff_revisions
from wdrc.sync.revisions import RevisionPairSource

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 50


class FetchDiffPipeline:
    """Fetches revision pairs and diffs them, at most `max_concurrency` at a time.

    A failing item never cancels its siblings: its outcome carries the error and
    the item contributes no change records. Failures are not retried.
    """

    def __init__(
        self,
        source: RevisionPairSource,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        self.source = source
        self.max_concurrency = max_concurrency

    async def run(self, items: Sequence[ChangedItem]) -> PipelineReport:
        report = PipelineReport()
        if not items:
            return report

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(item: ChangedItem) -> TaskOutcome:
            async with semaphore:
                return await self.process(item)

        for completed in asyncio.as_completed([_bounded(item) for item in items]):
            report.add(await completed)

        for failure in report.failures:
            logger.warning(
                "Skipping %s (%s -> %s): %s",
                failure.item.title,
                failure.item.old_revision,
                failure.item.new_revision,
                failure.error,
            )
        logger.info(
            "Fetch-diff finished: items=%d succeeded=%d failed=%d changes=%d",
            len(items),
            report.succeeded_count,
            len(report.failures),
            len(report.changes),
        )
        return report

    async def process(self, item: ChangedItem) -> TaskOutcome:
        """Fetch and diff one work unit, converting any error into a failed outcome."""

        try:
            item_id = decode_item_id(item.title)
            old, new = await self.source.fetch_pair(
                item.title,
                item.old_revision,
                item.new_revision,
            )
            changes = diff_revisions(
                old,
                new,
                item_id=item_id,
                revision_id=item.new_revision,
                timestamp=item.timestamp,
            )
        except Exception as error:  # noqa: BLE001
            return TaskOutcome(item=item, error=error)
        return TaskOutcome(item=item, changes=changes)
