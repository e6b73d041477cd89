"""Domain models for the sync engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ChangeSubject(str, Enum):
    """Part of an item a change record refers to."""

    LABELS = "labels"
    DESCRIPTIONS = "descriptions"
    SITELINKS = "sitelinks"
    ALIASES = "aliases"
    CLAIMS = "claims"


class ChangeType(str, Enum):
    """Kind of difference between two revisions."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


class Stream(str, Enum):
    """Watermark keys, one per polled stream."""

    CHANGES = "timestamp"
    REDIRECTS = "timestamp_redirect"
    DELETIONS = "timestamp_deletion"


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """One field-level difference between two revisions of an item."""

    subject: ChangeSubject
    change_type: ChangeType
    item_id: int
    revision_id: int
    timestamp: str
    language: str = ""
    text: str = ""
    site: str = ""
    title: str = ""
    property: str = ""
    claim_id: str = ""


@dataclass(slots=True)
class RecentChangeEvent:
    """One row of the upstream recent-changes feed."""

    title: str
    timestamp: str
    is_new: bool
    old_revision: int = 0
    new_revision: int = 0


@dataclass(slots=True)
class RedirectEvent:
    """Item turned into a redirect to another item."""

    source: str
    target: str
    timestamp: str


@dataclass(slots=True)
class DeletionEvent:
    """Item deleted upstream."""

    title: str
    timestamp: str


@dataclass(slots=True)
class NewItem:
    """Work unit for an item created within the polling window."""

    title: str
    timestamp: str


@dataclass(slots=True)
class ChangedItem:
    """Work unit for an item edited within the polling window.

    Several edits of one item are folded into a single old -> new span.
    """

    title: str
    old_revision: int
    new_revision: int
    timestamp: str


@dataclass(slots=True)
class AggregatedChanges:
    """Work units derived from one batch of feed rows."""

    new_items: list[NewItem] = field(default_factory=list)
    changed_items: list[ChangedItem] = field(default_factory=list)


@dataclass(slots=True)
class QueryWindow:
    """Inclusive timestamp range for one feed query."""

    low: str
    high: str


@dataclass(slots=True)
class TaskOutcome:
    """Result of fetching and diffing one changed item."""

    item: ChangedItem
    changes: list[ChangeRecord] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class PipelineReport:
    """Fold of task outcomes into flattened changes and failures."""

    changes: list[ChangeRecord] = field(default_factory=list)
    failures: list[TaskOutcome] = field(default_factory=list)
    succeeded_count: int = 0

    def add(self, outcome: TaskOutcome) -> None:
        if outcome.ok:
            self.succeeded_count += 1
            self.changes.extend(outcome.changes)
        else:
            self.failures.append(outcome)


@dataclass(slots=True)
class WriteCounters:
    """Rows handed to the store by the change write path."""

    label_rows: int = 0
    statement_rows: int = 0
    skipped_records: int = 0


@dataclass(slots=True)
class StreamRefresh:
    """Outcome of refreshing one ancillary stream (redirects or deletions)."""

    stream: Stream
    written_count: int = 0
    watermark: str | None = None
    error: str | None = None


@dataclass(slots=True)
class CycleSummary:
    """Result of one sync cycle."""

    window: QueryWindow | None = None
    rows_count: int = 0
    new_items_count: int = 0
    changed_items_count: int = 0
    changes_count: int = 0
    failed_items_count: int = 0
    writes: WriteCounters = field(default_factory=WriteCounters)
    watermark: str | None = None
    refreshes: list[StreamRefresh] = field(default_factory=list)
