"""Write path from change records to the change store."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from wdrc.storage.repository import ChangeStore
from wdrc.storage.sqlmodel_models import (
    Creation,
    Deletion,
    LabelChange,
    Redirect,
    StatementChange,
)
from wdrc.storage.text_cache import TextCache
from wdrc.sync.errors import InvalidIdentifier
from wdrc.sync.identifiers import decode_item_id, try_decode_item_id
from wdrc.sync.models import (
    ChangeRecord,
    ChangeSubject,
    DeletionEvent,
    NewItem,
    RedirectEvent,
    WriteCounters,
)

logger = logging.getLogger(__name__)


class ChangeWriter:
    """Turns change records into typed rows and writes them in per-subject batches.

    Language and site codes go through the text cache; claim property ids are
    stored numerically. Records whose property id does not decode are skipped.
    """

    def __init__(self, *, store: ChangeStore, text_cache: TextCache) -> None:
        self.store = store
        self.text_cache = text_cache

    def write_changes(self, records: Iterable[ChangeRecord]) -> WriteCounters:
        counters = WriteCounters()
        label_rows: dict[ChangeSubject, list[LabelChange]] = defaultdict(list)
        statement_rows: list[StatementChange] = []

        for record in records:
            if record.subject == ChangeSubject.CLAIMS:
                try:
                    property_id = decode_item_id(record.property)
                except InvalidIdentifier as error:
                    logger.warning("Skipping claim change %s: %s", record.claim_id, error)
                    counters.skipped_records += 1
                    continue
                statement_rows.append(
                    StatementChange(
                        item=record.item_id,
                        revision=record.revision_id,
                        property=property_id,
                        timestamp=record.timestamp,
                        change_type=record.change_type.value,
                    ),
                )
                continue

            code = record.site if record.subject == ChangeSubject.SITELINKS else record.language
            label_rows[record.subject].append(
                LabelChange(
                    item=record.item_id,
                    revision=record.revision_id,
                    type=record.subject.value,
                    timestamp=record.timestamp,
                    change_type=record.change_type.value,
                    language=self.text_cache.intern(code),
                ),
            )

        for rows in label_rows.values():
            counters.label_rows += self.store.insert_label_changes(rows)
        counters.statement_rows = self.store.insert_statement_changes(statement_rows)
        return counters

    def write_new_items(self, items: Iterable[NewItem]) -> int:
        rows: dict[int, Creation] = {}
        for item in items:
            q = try_decode_item_id(item.title)
            if q is not None:
                _keep_newest(rows, q, Creation(q=q, timestamp=item.timestamp))
        return self.store.record_creations(list(rows.values()))

    def write_redirects(self, events: Iterable[RedirectEvent]) -> int:
        rows: dict[int, Redirect] = {}
        for event in events:
            source = try_decode_item_id(event.source)
            target = try_decode_item_id(event.target)
            if source is None or target is None:
                continue
            _keep_newest(
                rows,
                source,
                Redirect(source=source, target=target, timestamp=event.timestamp),
            )
        return self.store.record_redirects(list(rows.values()))

    def write_deletions(self, events: Iterable[DeletionEvent]) -> int:
        rows: dict[int, Deletion] = {}
        for event in events:
            q = try_decode_item_id(event.title)
            if q is not None:
                _keep_newest(rows, q, Deletion(q=q, timestamp=event.timestamp))
        return self.store.record_deletions(list(rows.values()))


def _keep_newest(rows: dict[int, Any], key: int, row: Any) -> None:
    # One row per key, so a single upsert statement never touches a key twice.
    current = rows.get(key)
    if current is None or current.timestamp <= row.timestamp:
        rows[key] = row
