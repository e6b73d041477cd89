from __future__ import annotations

import allure
import pytest
from sqlalchemy import text

from wdrc.storage.repository import ChangeStore
from wdrc.storage.sqlmodel_models import (
    Creation,
    Deletion,
    LabelChange,
    Redirect,
    StatementChange,
)
from wdrc.sync.errors import PersistenceError

pytestmark = [
    allure.epic("Change Store"),
    allure.feature("Batched Persistence"),
]


def _rows(store: ChangeStore, sql: str) -> list[tuple]:
    with store.engine.connect() as connection:
        return [tuple(row) for row in connection.execute(text(sql))]


def _label(revision: int, *, language: int = 1, change_type: str = "added") -> LabelChange:
    return LabelChange(
        item=42,
        revision=revision,
        type="labels",
        timestamp="20240101000000",
        change_type=change_type,
        language=language,
    )


def test_init_schema_creates_change_tables(change_store: ChangeStore) -> None:
    tables = {
        row[0]
        for row in _rows(change_store, "SELECT name FROM sqlite_master WHERE type = 'table'")
    }

    assert {
        "texts",
        "labels",
        "statements",
        "creations",
        "deletions",
        "redirects",
        "meta",
        "alembic_version",
    } <= tables


def test_init_schema_is_repeatable(change_store: ChangeStore) -> None:
    change_store.init_schema()

    assert _rows(change_store, "SELECT COUNT(*) FROM alembic_version") == [(1,)]


def test_label_inserts_ignore_duplicates_across_batches(change_store: ChangeStore) -> None:
    rows = [_label(1), _label(2), _label(3), _label(1)]

    change_store.insert_label_changes(rows)
    change_store.insert_label_changes([_label(2), _label(4, change_type="removed")])

    assert _rows(change_store, "SELECT revision, change_type FROM labels ORDER BY revision") == [
        (1, "added"),
        (2, "added"),
        (3, "added"),
        (4, "removed"),
    ]


def test_statement_inserts_keep_large_revision_ids(change_store: ChangeStore) -> None:
    revision = 2_200_000_000
    change_store.insert_statement_changes(
        [
            StatementChange(
                item=42,
                revision=revision,
                property=31,
                timestamp="20240101000000",
                change_type="changed",
            ),
        ],
    )

    assert _rows(change_store, "SELECT item, revision, property FROM statements") == [
        (42, revision, 31),
    ]


def test_empty_batches_write_nothing(change_store: ChangeStore) -> None:
    assert change_store.insert_label_changes([]) == 0
    assert change_store.record_redirects([]) == 0
    assert change_store.record_creations([]) == 0


def test_creation_supersedes_deletion(change_store: ChangeStore) -> None:
    change_store.record_deletions(
        [Deletion(q=1, timestamp="20240101000000"), Deletion(q=2, timestamp="20240101000000")],
    )

    change_store.record_creations([Creation(q=1, timestamp="20240102000000")])

    assert _rows(change_store, "SELECT q FROM deletions") == [(2,)]
    assert _rows(change_store, "SELECT q, timestamp FROM creations") == [(1, "20240102000000")]


def test_side_tables_upsert_on_key(change_store: ChangeStore) -> None:
    change_store.record_redirects([Redirect(source=5, target=6, timestamp="20240101000000")])
    change_store.record_redirects([Redirect(source=5, target=7, timestamp="20240102000000")])

    assert _rows(change_store, "SELECT source, target, timestamp FROM redirects") == [
        (5, 7, "20240102000000"),
    ]


def test_meta_roundtrip(change_store: ChangeStore) -> None:
    assert change_store.get_meta("timestamp") is None

    change_store.set_meta("timestamp", "20240101000000")
    change_store.set_meta("timestamp", "20240101000100")

    assert change_store.get_meta("timestamp") == "20240101000100"


def test_write_failure_is_reported_as_persistence_error(store_url: str) -> None:
    store = ChangeStore(store_url)
    try:
        with pytest.raises(PersistenceError, match="Batch write failed"):
            store.insert_label_changes([_label(1)])
    finally:
        store.close()


def test_batch_size_must_be_positive(store_url: str) -> None:
    with pytest.raises(ValueError, match="batch_size"):
        ChangeStore(store_url, batch_size=0)
