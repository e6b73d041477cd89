"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from wdrc.storage.repository import ChangeStore

_FEED_SCHEMA = (
    """
    CREATE TABLE recentchanges (
        rc_id INTEGER PRIMARY KEY,
        rc_timestamp TEXT NOT NULL,
        rc_namespace INTEGER NOT NULL,
        rc_title TEXT NOT NULL,
        rc_new INTEGER NOT NULL,
        rc_this_oldid INTEGER NOT NULL,
        rc_last_oldid INTEGER NOT NULL,
        rc_cur_id INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE redirect (
        rd_from INTEGER PRIMARY KEY,
        rd_namespace INTEGER NOT NULL,
        rd_title TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE logging (
        log_id INTEGER PRIMARY KEY,
        log_type TEXT NOT NULL,
        log_action TEXT NOT NULL,
        log_namespace INTEGER NOT NULL,
        log_title TEXT NOT NULL,
        log_timestamp TEXT NOT NULL
    )
    """,
)


@dataclass(slots=True)
class FeedDatabase:
    """SQLite stand-in for the wiki replica tables the feed reader queries."""

    url: str

    def add_change(
        self,
        title: str,
        timestamp: str,
        *,
        is_new: bool = False,
        old_revision: int = 0,
        new_revision: int = 0,
        namespace: int = 0,
        page_id: int = 0,
    ) -> None:
        self._execute(
            "INSERT INTO recentchanges (rc_timestamp, rc_namespace, rc_title, rc_new, "
            "rc_this_oldid, rc_last_oldid, rc_cur_id) "
            "VALUES (:timestamp, :namespace, :title, :is_new, :new, :old, :page_id)",
            {
                "timestamp": timestamp,
                "namespace": namespace,
                "title": title,
                "is_new": int(is_new),
                "new": new_revision,
                "old": old_revision,
                "page_id": page_id,
            },
        )

    def add_redirect(self, source: str, target: str, timestamp: str, *, page_id: int) -> None:
        self.add_change(source, timestamp, old_revision=1, new_revision=2, page_id=page_id)
        self._execute(
            "INSERT INTO redirect (rd_from, rd_namespace, rd_title) VALUES (:page_id, 0, :target)",
            {"page_id": page_id, "target": target},
        )

    def add_deletion(self, title: str, timestamp: str, *, action: str = "delete") -> None:
        self._execute(
            "INSERT INTO logging (log_type, log_action, log_namespace, log_title, log_timestamp) "
            "VALUES ('delete', :action, 0, :title, :timestamp)",
            {"action": action, "title": title, "timestamp": timestamp},
        )

    def _execute(self, statement: str, params: dict[str, object]) -> None:
        engine = create_engine(self.url)
        try:
            with engine.begin() as connection:
                connection.execute(text(statement), params)
        finally:
            engine.dispose()


@pytest.fixture()
def store_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'wdrc.db'}"


@pytest.fixture()
def change_store(store_url: str) -> Iterator[ChangeStore]:
    store = ChangeStore(store_url, batch_size=2)
    store.init_schema()
    yield store
    store.close()


@pytest.fixture()
def feed_db(tmp_path: Path) -> FeedDatabase:
    url = f"sqlite:///{tmp_path / 'wikidata.db'}"
    engine = create_engine(url)
    try:
        with engine.begin() as connection:
            for statement in _FEED_SCHEMA:
                connection.execute(text(statement))
    finally:
        engine.dispose()
    return FeedDatabase(url=url)
