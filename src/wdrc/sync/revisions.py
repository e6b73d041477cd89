"""Revision document source backed by the MediaWiki Action API."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from wdrc.http.fetcher import HttpFetcher
from wdrc.sync.errors import RevisionFetchError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.wikidata.org/w/api.php"


class RevisionPairSource(Protocol):
    """Anything able to return the old and new revision documents of one item."""

    async def fetch_pair(
        self,
        title: str,
        old_revision: int,
        new_revision: int,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Return (old, new) revision documents or raise RevisionFetchError."""
        raise NotImplementedError


class RevisionSource:
    """Fetches two revisions of one item in a single API request."""

    def __init__(self, fetcher: HttpFetcher, *, api_url: str = DEFAULT_API_URL) -> None:
        self._fetcher = fetcher
        self._api_url = api_url

    async def fetch_pair(
        self,
        title: str,
        old_revision: int,
        new_revision: int,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        result = await self._fetcher.fetch(
            self._api_url,
            params=revisions_query(old_revision, new_revision),
        )
        if not result.is_success:
            raise RevisionFetchError(
                f"Could not load revisions of {title}: {result.error}",
                title=title,
                old_revision=old_revision,
                new_revision=new_revision,
            )
        try:
            payload = json.loads(result.content)
        except ValueError as error:
            raise RevisionFetchError(
                f"Unparsable API response for {title}",
                title=title,
                old_revision=old_revision,
                new_revision=new_revision,
            ) from error

        revisions = extract_revisions(payload, {old_revision, new_revision})
        for revision_id, label in ((old_revision, "old"), (new_revision, "new")):
            if revision_id not in revisions:
                raise RevisionFetchError(
                    f"Could not load {title} {label} revision {revision_id}",
                    title=title,
                    old_revision=old_revision,
                    new_revision=new_revision,
                )
        return revisions[old_revision], revisions[new_revision]


def revisions_query(old_revision: int, new_revision: int) -> dict[str, str]:
    """Action API parameters selecting exactly the two revisions with their main slot."""

    return {
        "action": "query",
        "prop": "revisions",
        "revids": f"{old_revision}|{new_revision}",
        "rvprop": "ids|content",
        "rvslots": "main",
        "format": "json",
    }


def extract_revisions(payload: Any, wanted: set[int]) -> dict[int, dict[str, Any]]:
    """Map revision id -> parsed main-slot JSON for the wanted revisions.

    Revisions outside `wanted`, and revisions whose content is missing or not a
    JSON object, are left out.
    """

    revisions: dict[int, dict[str, Any]] = {}
    if not isinstance(payload, dict):
        return revisions
    query = payload.get("query")
    if not isinstance(query, dict):
        return revisions
    pages = query.get("pages")
    if isinstance(pages, dict):
        pages = list(pages.values())
    if not isinstance(pages, list):
        return revisions

    for page in pages:
        if not isinstance(page, dict):
            continue
        page_revisions = page.get("revisions")
        if not isinstance(page_revisions, list):
            continue
        for revision in page_revisions:
            if not isinstance(revision, dict):
                continue
            revision_id = revision.get("revid")
            if not isinstance(revision_id, int) or revision_id not in wanted:
                continue
            document = _main_slot_document(revision)
            if document is not None:
                revisions[revision_id] = document
    return revisions


def _main_slot_document(revision: dict[str, Any]) -> dict[str, Any] | None:
    slots = revision.get("slots")
    if not isinstance(slots, dict):
        return None
    main = slots.get("main")
    if not isinstance(main, dict):
        return None
    text = main.get("*", main.get("content"))
    if not isinstance(text, str):
        return None
    try:
        document = json.loads(text)
    except ValueError:
        logger.debug("Skipping revision %s with non-JSON content", revision.get("revid"))
        return None
    if not isinstance(document, dict):
        return None
    return document
