"""Read-only access to the upstream recent-changes, redirect and deletion feeds."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from wdrc.storage.common import as_int, as_text, build_engine
from wdrc.sync.errors import PersistenceError
from wdrc.sync.identifiers import try_decode_item_id
from wdrc.sync.models import DeletionEvent, QueryWindow, RecentChangeEvent, RedirectEvent

logger = logging.getLogger(__name__)

RECENT_CHANGES_SQL = text(
    "SELECT rc_id, rc_timestamp, rc_title, rc_new, rc_this_oldid, rc_last_oldid "
    "FROM recentchanges "
    "WHERE rc_namespace = 0 AND rc_timestamp >= :low AND rc_timestamp <= :high "
    "ORDER BY rc_timestamp, rc_title, rc_id "
    "LIMIT :limit",
)
RECENT_REDIRECTS_SQL = text(
    "SELECT rc_title AS source, rd_title AS target, MAX(rc_timestamp) AS timestamp "
    "FROM recentchanges, redirect "
    "WHERE rc_namespace = 0 AND rd_from = rc_cur_id AND rd_namespace = 0 "
    "AND rc_timestamp >= :low "
    "GROUP BY rc_title, rd_title",
)
RECENT_DELETIONS_SQL = text(
    "SELECT log_title AS title, log_timestamp AS timestamp "
    "FROM logging "
    "WHERE log_type = 'delete' AND log_action = 'delete' AND log_namespace = 0 "
    "AND log_timestamp >= :low",
)


class FeedReader:
    """Queries the wiki replica for rows newer than a watermark."""

    def __init__(self, db_url: str) -> None:
        self.db_url = db_url
        self.engine = build_engine(db_url)

    def close(self) -> None:
        self.engine.dispose()

    def recent_changes(self, window: QueryWindow, limit: int) -> list[RecentChangeEvent]:
        rows = self._fetch(
            RECENT_CHANGES_SQL,
            {"low": window.low, "high": window.high, "limit": limit},
        )
        events = [event for event in map(recent_change_from_row, rows) if event is not None]
        logger.debug(
            "Recent changes %s..%s: rows=%d usable=%d",
            window.low,
            window.high,
            len(rows),
            len(events),
        )
        return events

    def recent_redirects(self, low: str) -> list[RedirectEvent]:
        rows = self._fetch(RECENT_REDIRECTS_SQL, {"low": low})
        return [event for event in map(redirect_from_row, rows) if event is not None]

    def recent_deletions(self, low: str) -> list[DeletionEvent]:
        rows = self._fetch(RECENT_DELETIONS_SQL, {"low": low})
        return [event for event in map(deletion_from_row, rows) if event is not None]

    def _fetch(self, statement: Any, params: dict[str, Any]) -> list[Mapping[str, Any]]:
        try:
            with self.engine.connect() as connection:
                return [row._mapping for row in connection.execute(statement, params)]
        except SQLAlchemyError as error:
            raise PersistenceError(f"Feed query failed: {error}") from error


def recent_change_from_row(row: Mapping[str, Any]) -> RecentChangeEvent | None:
    """Map one recentchanges row; rows that cannot become a work unit map to None."""

    title = as_text(row.get("rc_title"))
    timestamp = as_text(row.get("rc_timestamp"))
    is_new = as_int(row.get("rc_new"))
    this_oldid = as_int(row.get("rc_this_oldid"))
    last_oldid = as_int(row.get("rc_last_oldid"))
    if title is None or timestamp is None or is_new is None:
        return None
    if this_oldid is None or last_oldid is None:
        return None
    if try_decode_item_id(title) is None:
        return None
    if not is_new and (this_oldid == 0 or last_oldid == 0):
        # Log entries carry no revision span.
        return None
    return RecentChangeEvent(
        title=title,
        timestamp=timestamp,
        is_new=bool(is_new),
        old_revision=last_oldid,
        new_revision=this_oldid,
    )


def redirect_from_row(row: Mapping[str, Any]) -> RedirectEvent | None:
    source = as_text(row.get("source"))
    target = as_text(row.get("target"))
    timestamp = as_text(row.get("timestamp"))
    if source is None or target is None or timestamp is None:
        return None
    return RedirectEvent(source=source, target=target, timestamp=timestamp)


def deletion_from_row(row: Mapping[str, Any]) -> DeletionEvent | None:
    title = as_text(row.get("title"))
    timestamp = as_text(row.get("timestamp"))
    if title is None or timestamp is None:
        return None
    return DeletionEvent(title=title, timestamp=timestamp)
