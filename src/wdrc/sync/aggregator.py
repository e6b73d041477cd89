"""Collapse a batch of recent-change rows into work units."""

from __future__ import annotations

from collections.abc import Iterable

from wdrc.sync.models import AggregatedChanges, ChangedItem, NewItem, RecentChangeEvent


def aggregate(events: Iterable[RecentChangeEvent]) -> AggregatedChanges:
    """Split feed rows into new-item and changed-item work units.

    Edits of one item are folded: the old revision is taken from the first event
    seen for the item, the new revision and timestamp grow to the maximum.
    Creations and edits are tracked independently of each other.
    """

    new_items: dict[str, NewItem] = {}
    changed_items: dict[str, ChangedItem] = {}
    for event in events:
        if event.is_new:
            new_items[event.title] = NewItem(title=event.title, timestamp=event.timestamp)
            continue

        existing = changed_items.get(event.title)
        if existing is None:
            changed_items[event.title] = ChangedItem(
                title=event.title,
                old_revision=event.old_revision,
                new_revision=event.new_revision,
                timestamp=event.timestamp,
            )
            continue
        if existing.new_revision < event.new_revision:
            existing.new_revision = event.new_revision
        if existing.timestamp < event.timestamp:
            existing.timestamp = event.timestamp

    return AggregatedChanges(
        new_items=list(new_items.values()),
        changed_items=list(changed_items.values()),
    )


def last_timestamp(changed_items: Iterable[ChangedItem], fallback: str) -> str:
    """Latest timestamp of the changed items, or `fallback` when there are none."""

    timestamps = [item.timestamp for item in changed_items]
    if not timestamps:
        return fallback
    return max(max(timestamps), fallback)
