"""Interning of recurring short strings (language and site codes) into integer ids."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class TextStore(Protocol):
    """Backing table of the cache."""

    def load_texts(self) -> dict[str, int]:
        """Return every stored text with its id."""
        raise NotImplementedError

    def insert_text(self, value: str) -> int:
        """Store a new text and return its assigned id."""
        raise NotImplementedError


class TextCache:
    """Read-through, append-only map from text to id.

    Not safe for concurrent mutation: only the sync orchestrator's sequential
    write path may call `intern`.
    """

    def __init__(self, store: TextStore) -> None:
        self._store = store
        self._ids: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, value: object) -> bool:
        return value in self._ids

    def warm(self) -> None:
        """Load the whole backing table once, while the cache is still empty."""

        if self._ids:
            return
        self._ids = dict(self._store.load_texts())
        logger.debug("Text cache warmed with %d entries", len(self._ids))

    def intern(self, value: str) -> int:
        self.warm()
        text_id = self._ids.get(value)
        if text_id is not None:
            return text_id
        text_id = self._store.insert_text(value)
        self._ids[value] = text_id
        return text_id
