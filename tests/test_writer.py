from __future__ import annotations

import allure
from sqlalchemy import text

from wdrc.storage.repository import ChangeStore
from wdrc.storage.text_cache import TextCache
from wdrc.sync.models import (
    ChangeRecord,
    ChangeSubject,
    ChangeType,
    DeletionEvent,
    NewItem,
    RedirectEvent,
)
from wdrc.sync.writer import ChangeWriter

pytestmark = [
    allure.epic("Change Store"),
    allure.feature("Change Write Path"),
]


def _rows(store: ChangeStore, sql: str) -> list[tuple]:
    with store.engine.connect() as connection:
        return [tuple(row) for row in connection.execute(text(sql))]


def _record(subject: ChangeSubject, change_type: ChangeType, **payload: str) -> ChangeRecord:
    return ChangeRecord(
        subject=subject,
        change_type=change_type,
        item_id=42,
        revision_id=1001,
        timestamp="20240101000000",
        **payload,
    )


def test_write_changes_routes_records_by_subject(change_store: ChangeStore) -> None:
    cache = TextCache(change_store)
    writer = ChangeWriter(store=change_store, text_cache=cache)
    records = [
        _record(ChangeSubject.LABELS, ChangeType.ADDED, language="de", text="neu"),
        _record(ChangeSubject.DESCRIPTIONS, ChangeType.CHANGED, language="de", text="d"),
        _record(ChangeSubject.ALIASES, ChangeType.REMOVED, language="en", text="a"),
        _record(ChangeSubject.SITELINKS, ChangeType.ADDED, site="dewiki", title="T"),
        _record(ChangeSubject.CLAIMS, ChangeType.CHANGED, property="P31", claim_id="Q42$1"),
        _record(ChangeSubject.CLAIMS, ChangeType.ADDED, property="bogus", claim_id="Q42$2"),
    ]

    counters = writer.write_changes(records)

    assert (counters.label_rows, counters.statement_rows, counters.skipped_records) == (4, 1, 1)
    texts = change_store.load_texts()
    assert set(texts) == {"de", "en", "dewiki"}
    assert sorted(_rows(change_store, "SELECT type, change_type, language FROM labels")) == sorted(
        [
            ("labels", "added", texts["de"]),
            ("descriptions", "changed", texts["de"]),
            ("aliases", "removed", texts["en"]),
            ("sitelinks", "added", texts["dewiki"]),
        ],
    )
    assert _rows(change_store, "SELECT item, revision, property, change_type FROM statements") == [
        (42, 1001, 31, "changed"),
    ]


def test_rewriting_the_same_records_adds_no_rows(change_store: ChangeStore) -> None:
    writer = ChangeWriter(store=change_store, text_cache=TextCache(change_store))
    records = [_record(ChangeSubject.LABELS, ChangeType.ADDED, language="fr", text="x")]

    writer.write_changes(records)
    writer.write_changes(records)

    assert _rows(change_store, "SELECT COUNT(*) FROM labels") == [(1,)]
    assert _rows(change_store, "SELECT COUNT(*) FROM texts") == [(1,)]


def test_side_streams_skip_bad_ids_and_keep_newest_per_key(change_store: ChangeStore) -> None:
    writer = ChangeWriter(store=change_store, text_cache=TextCache(change_store))

    created = writer.write_new_items(
        [NewItem(title="Q1", timestamp="20240101000000"), NewItem(title="Q0", timestamp="x")],
    )
    deleted = writer.write_deletions(
        [
            DeletionEvent(title="Q5", timestamp="20240102000000"),
            DeletionEvent(title="Q5", timestamp="20240101000000"),
            DeletionEvent(title="Talk", timestamp="20240101000000"),
        ],
    )
    redirected = writer.write_redirects(
        [
            RedirectEvent(source="Q8", target="Q9", timestamp="20240101000000"),
            RedirectEvent(source="Q8", target="Q10", timestamp="20240103000000"),
            RedirectEvent(source="Q8", target="", timestamp="20240104000000"),
        ],
    )

    assert (created, deleted, redirected) == (1, 1, 1)
    assert _rows(change_store, "SELECT q, timestamp FROM deletions") == [(5, "20240102000000")]
    assert _rows(change_store, "SELECT source, target FROM redirects") == [(8, 10)]
