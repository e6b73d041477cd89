"""Structural diff of two revision documents of one item.

The engine is pure and best-effort: a missing, wrongly typed or malformed
field is treated as absent and skipped rather than failing the comparison.
Records are emitted in subject order labels, descriptions, aliases, claims,
sitelinks.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from wdrc.sync.models import ChangeRecord, ChangeSubject, ChangeType


@dataclass(frozen=True, slots=True)
class _RecordContext:
    item_id: int
    revision_id: int
    timestamp: str

    def record(
        self,
        subject: ChangeSubject,
        change_type: ChangeType,
        **payload: str,
    ) -> ChangeRecord:
        return ChangeRecord(
            subject=subject,
            change_type=change_type,
            item_id=self.item_id,
            revision_id=self.revision_id,
            timestamp=self.timestamp,
            **payload,
        )


def diff_revisions(
    old: Any,
    new: Any,
    *,
    item_id: int,
    revision_id: int,
    timestamp: str,
) -> list[ChangeRecord]:
    """Compare two revision documents and return the typed change records."""

    context = _RecordContext(item_id=item_id, revision_id=revision_id, timestamp=timestamp)
    changes: list[ChangeRecord] = []
    changes.extend(compare_terms(old, new, ChangeSubject.LABELS, context))
    changes.extend(compare_terms(old, new, ChangeSubject.DESCRIPTIONS, context))
    changes.extend(compare_aliases(old, new, context))
    changes.extend(compare_claims(old, new, context))
    changes.extend(compare_sitelinks(old, new, context))
    return changes


def compare_terms(
    old: Any,
    new: Any,
    subject: ChangeSubject,
    context: _RecordContext,
) -> list[ChangeRecord]:
    """Labels and descriptions: one string per language under `value`."""

    return [
        context.record(subject, change_type, language=language, text=text)
        for change_type, language, text in _compare_keyed_strings(
            _section(old, subject.value),
            _section(new, subject.value),
            field_name="value",
        )
    ]


def compare_sitelinks(old: Any, new: Any, context: _RecordContext) -> list[ChangeRecord]:
    """Sitelinks: one title per site code."""

    return [
        context.record(ChangeSubject.SITELINKS, change_type, site=site, title=title)
        for change_type, site, title in _compare_keyed_strings(
            _section(old, ChangeSubject.SITELINKS.value),
            _section(new, ChangeSubject.SITELINKS.value),
            field_name="title",
        )
    ]


def compare_aliases(old: Any, new: Any, context: _RecordContext) -> list[ChangeRecord]:
    """Aliases: per language, texts missing on either side."""

    old_aliases = _section(old, ChangeSubject.ALIASES.value)
    new_aliases = _section(new, ChangeSubject.ALIASES.value)
    languages = sorted(set(old_aliases) | set(new_aliases))

    changes: list[ChangeRecord] = []
    for language in languages:
        old_texts = _alias_texts(old_aliases.get(language))
        new_texts = _alias_texts(new_aliases.get(language))
        if old_texts == new_texts:
            continue
        for text in old_texts:
            if text not in new_texts:
                changes.append(
                    context.record(
                        ChangeSubject.ALIASES,
                        ChangeType.REMOVED,
                        language=language,
                        text=text,
                    ),
                )
        for text in new_texts:
            if text not in old_texts:
                changes.append(
                    context.record(
                        ChangeSubject.ALIASES,
                        ChangeType.ADDED,
                        language=language,
                        text=text,
                    ),
                )
    return changes


def compare_claims(old: Any, new: Any, context: _RecordContext) -> list[ChangeRecord]:
    """Claims: matched by claim id across all properties, compared structurally."""

    old_by_id = _claims_by_id(_section(old, ChangeSubject.CLAIMS.value))
    new_by_id = _claims_by_id(_section(new, ChangeSubject.CLAIMS.value))

    changes: list[ChangeRecord] = []
    for claim_id, (property_id, claim) in old_by_id.items():
        match = new_by_id.get(claim_id)
        if match is None:
            change_type = ChangeType.REMOVED
        elif match[1] != claim:
            change_type = ChangeType.CHANGED
        else:
            continue
        changes.append(
            context.record(
                ChangeSubject.CLAIMS,
                change_type,
                property=property_id,
                claim_id=claim_id,
            ),
        )
    for claim_id, (property_id, _claim) in new_by_id.items():
        if claim_id not in old_by_id:
            changes.append(
                context.record(
                    ChangeSubject.CLAIMS,
                    ChangeType.ADDED,
                    property=property_id,
                    claim_id=claim_id,
                ),
            )
    return changes


def _compare_keyed_strings(
    old: dict[str, Any],
    new: dict[str, Any],
    *,
    field_name: str,
) -> Iterator[tuple[ChangeType, str, str]]:
    for key, entry in old.items():
        old_text = _string_field(entry, field_name)
        if old_text is None:
            continue
        if key in new:
            new_text = _string_field(new[key], field_name)
            if new_text is None:
                continue
            if old_text != new_text:
                yield ChangeType.CHANGED, key, new_text
        else:
            yield ChangeType.REMOVED, key, old_text
    for key, entry in new.items():
        if key in old:
            continue
        new_text = _string_field(entry, field_name)
        if new_text is not None:
            yield ChangeType.ADDED, key, new_text


def _claims_by_id(claims: dict[str, Any]) -> dict[str, tuple[str, Any]]:
    # First occurrence of an id wins, mirroring a linear scan over all properties.
    indexed: dict[str, tuple[str, Any]] = {}
    for property_id, property_claims in claims.items():
        if not isinstance(property_claims, list):
            continue
        for claim in property_claims:
            claim_id = _string_field(claim, "id")
            if claim_id is None or claim_id in indexed:
                continue
            indexed[claim_id] = (property_id, claim)
    return indexed


def _alias_texts(entries: Any) -> list[str]:
    if not isinstance(entries, list):
        return []
    texts: list[str] = []
    for entry in entries:
        text = _string_field(entry, "value")
        if text is not None:
            texts.append(text)
    return texts


def _section(document: Any, key: str) -> dict[str, Any]:
    if not isinstance(document, dict):
        return {}
    section = document.get(key)
    if not isinstance(section, dict):
        return {}
    return section


def _string_field(entry: Any, key: str) -> str | None:
    if not isinstance(entry, dict):
        return None
    value = entry.get(key)
    if isinstance(value, str):
        return value
    return None
