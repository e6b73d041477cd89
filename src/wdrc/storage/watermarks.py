"""Per-stream watermarks and the feed query window derived from them."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Protocol

from wdrc.sync.models import QueryWindow, Stream

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
OPEN_UPPER_BOUND = "99991231235900"
DEFAULT_WINDOW = timedelta(hours=1)


class MetaStore(Protocol):
    def get_meta(self, key: str) -> str | None:
        raise NotImplementedError

    def set_meta(self, key: str, value: str) -> None:
        raise NotImplementedError


class WatermarkStore:
    """Persisted cursor per stream; it only ever moves forward."""

    def __init__(self, store: MetaStore) -> None:
        self._store = store

    def get(self, stream: Stream, default: str = "") -> str:
        value = self._store.get_meta(stream.value)
        if value is None:
            return default
        return value

    def advance(self, stream: Stream, value: str) -> bool:
        """Store `value` if it is newer than the current watermark."""

        current = self._store.get_meta(stream.value)
        if current is not None and value <= current:
            return False
        self._store.set_meta(stream.value, value)
        logger.debug("Watermark %s advanced %s -> %s", stream.value, current, value)
        return True


def parse_timestamp(value: str) -> datetime | None:
    """Parse a MediaWiki timestamp (YYYYMMDDHHMMSS)."""

    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def query_window(watermark: str, span: timedelta = DEFAULT_WINDOW) -> QueryWindow:
    """`[watermark, watermark + span]`, or open-ended when the watermark does not parse."""

    start = parse_timestamp(watermark)
    if start is None:
        return QueryWindow(low=watermark, high=OPEN_UPPER_BOUND)
    try:
        end = start + span
    except OverflowError:
        return QueryWindow(low=watermark, high=OPEN_UPPER_BOUND)
    return QueryWindow(low=watermark, high=format_timestamp(end))
