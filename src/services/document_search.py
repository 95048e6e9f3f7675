"""Debounced document search for the document picker.

Each picker owns one DocumentSearch. Opening the picker fetches right
away; typing afterwards is debounced so only the last query in a burst
reaches the repository.
"""

import asyncio
import logging
from typing import Any, Iterable, Optional

from src.orchestrator.context.resolver import display_name, slug_value
from src.orchestrator.models.document import DocumentContext
from src.services.content_repository import (
    ContentRepository,
    ContentRepositoryError,
    is_draft_id,
    strip_draft_prefix,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 300
DEFAULT_SEARCH_LIMIT = 50

SEARCH_PROJECTION = "{_id, _type, name, title, slug}"


def build_search_query(document_types: Iterable[str], query: str, limit: int) -> tuple[str, dict[str, Any]]:
    """Build the repository query for a picker search.

    Args:
        document_types: Types the picker offers. Empty means any type.
        query: Free text matched against name, title and slug.
        limit: Maximum number of documents to return.

    Returns:
        Tuple of (query string, params).
    """
    filters = []
    params: dict[str, Any] = {}
    types = list(document_types)
    if types:
        filters.append("_type in $types")
        params["types"] = types
    text = query.strip()
    if text:
        filters.append("(name match $q || title match $q || slug.current match $q)")
        params["q"] = f"{text}*"
    condition = " && ".join(filters) or "defined(_id)"
    return (
        f"*[{condition}] | order(_updatedAt desc) [0...{limit}]{SEARCH_PROJECTION}",
        params,
    )


def dedupe_drafts(records: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Collapse draft/published pairs, keeping the draft.

    The first occurrence of a bare ID keeps its position in the list.
    """
    by_id: dict[str, dict[str, Any]] = {}
    for record in records:
        raw_id = record.get("_id")
        if not isinstance(raw_id, str) or not raw_id:
            continue
        bare_id = strip_draft_prefix(raw_id)
        if bare_id not in by_id or is_draft_id(raw_id):
            by_id[bare_id] = record
    return list(by_id.values())


def record_to_context(record: dict[str, Any]) -> DocumentContext:
    return DocumentContext(
        document_id=strip_draft_prefix(record["_id"]),
        document_type=record.get("_type"),
        slug=slug_value(record.get("slug")),
        name=display_name(record),
    )


class DocumentSearch:
    """Search state for one document picker.

    Example:
        search = DocumentSearch(repository, ["page", "article"])
        await search.open()
        await search.set_query("about")
        search.results
    """

    def __init__(
        self,
        repository: ContentRepository,
        document_types: Iterable[str] = (),
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> None:
        self._repository = repository
        self._document_types = list(document_types)
        self._debounce_seconds = max(debounce_ms, 0) / 1000
        self._limit = limit

        self._query = ""
        self._results: list[DocumentContext] = []
        self._is_open = False
        self._just_opened = False
        self._pending: Optional[asyncio.Task] = None

    @property
    def document_types(self) -> list[str]:
        return list(self._document_types)

    @document_types.setter
    def document_types(self, document_types: Iterable[str]) -> None:
        self._document_types = list(document_types)

    @property
    def query(self) -> str:
        return self._query

    @property
    def results(self) -> list[DocumentContext]:
        return list(self._results)

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_searching(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def open(self) -> asyncio.Task:
        """Open the picker with an empty query and fetch immediately.

        Returns:
            The fetch task; await it to get the results.
        """
        self._is_open = True
        self._just_opened = True
        self._query = ""
        return self._schedule()

    def set_query(self, query: str) -> asyncio.Task:
        """Update the query; the fetch fires after the debounce interval.

        Returns:
            The fetch task. A later call cancels it.
        """
        self._query = query
        return self._schedule()

    def close(self) -> None:
        """Close the picker and drop any pending fetch."""
        self._is_open = False
        self._just_opened = False
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def _schedule(self) -> asyncio.Task:
        self._cancel_pending()
        delay = 0.0 if self._just_opened else self._debounce_seconds
        self._just_opened = False
        self._pending = asyncio.ensure_future(self._run(self._query, delay))
        return self._pending

    async def _run(self, query: str, delay: float) -> list[DocumentContext]:
        if delay:
            await asyncio.sleep(delay)
        self._results = await self.search(query)
        return self.results

    async def search(self, query: str) -> list[DocumentContext]:
        """Run one search immediately, bypassing the debounce.

        Repository errors are logged and produce an empty list.
        """
        text, params = build_search_query(self._document_types, query, self._limit)
        try:
            records = await self._repository.fetch(text, params)
        except ContentRepositoryError as e:
            logger.warning("Document search failed for %r: %s", query, e)
            return []
        if not isinstance(records, list):
            return []
        return [record_to_context(r) for r in dedupe_drafts(r for r in records if isinstance(r, dict))]
