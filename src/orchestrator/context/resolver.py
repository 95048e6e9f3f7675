"""Document context resolver.

Answers "which document(s) is this conversation currently about" for
two consumers: cross-tool navigation and the context pills shown when a
saved conversation is reopened.

Derivation walks the message list oldest to newest and registers every
document reference it finds. Each registration carries a source rank:

    TEXT < PAYLOAD < RESULT

A registration of equal or higher rank overwrites the fields it knows;
a lower-ranked one only fills fields that are still empty. Every
registration moves the document to the front of the output, so the
list is ordered most-recently-referenced first. Records registered in
the same step (one query result set) keep their own order.

Enrichment fetches are tagged with (conversation_id, generation). The
generation is bumped on every conversation switch, and results whose
tag no longer matches are discarded instead of applied.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Iterable, Optional

from src.errors import AssistantError
from src.orchestrator.context.extraction import (
    PatternReferenceExtractor,
    ReferenceExtractor,
    infer_type_from_query,
)
from src.orchestrator.models.action import ActionStatus, ActionType
from src.orchestrator.models.conversation import Message
from src.orchestrator.models.document import DocumentContext
from src.services.content_repository import (
    ContentRepository,
    ContentRepositoryError,
    strip_draft_prefix,
)

logger = logging.getLogger(__name__)

DEFAULT_SLUG_REQUIRED_TYPES = ("page",)
DEFAULT_MAX_PREPOPULATED_DOCUMENTS = 5

SLUG_PROJECTION = "{slug}"
PREPOPULATE_PROJECTION = "{_id, _type, name, title, slug}"


class ReferenceSource(IntEnum):
    """Precedence of a reference's origin; higher wins."""

    TEXT = 0
    PAYLOAD = 1
    RESULT = 2


@dataclass
class _Entry:
    document_id: str
    document_type: Optional[str] = None
    slug: Optional[str] = None
    name: Optional[str] = None
    rank: ReferenceSource = ReferenceSource.TEXT
    step: int = 0
    index: int = 0


def slug_value(raw: Any) -> Optional[str]:
    """Read a slug stored either as ``{"current": ...}`` or a plain string."""
    if isinstance(raw, dict):
        current = raw.get("current")
        return current if isinstance(current, str) and current else None
    if isinstance(raw, str) and raw:
        return raw
    return None


def display_name(record: dict[str, Any]) -> Optional[str]:
    """Prefer ``name``, falling back to ``title``."""
    for key in ("name", "title"):
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class _ContextMap:
    """Accumulates references and applies the precedence rules."""

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._step = 0

    def next_step(self) -> int:
        self._step += 1
        return self._step

    def register(
        self,
        raw_id: str,
        source: ReferenceSource,
        step: int,
        index: int = 0,
        document_type: Optional[str] = None,
        slug: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        if not raw_id:
            return
        key = strip_draft_prefix(raw_id)
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = _Entry(
                document_id=key,
                document_type=document_type,
                slug=slug,
                name=name,
                rank=source,
                step=step,
                index=index,
            )
            return

        overwrite = source >= entry.rank
        for attr, value in (
            ("document_type", document_type),
            ("slug", slug),
            ("name", name),
        ):
            if value is None:
                continue
            if overwrite or getattr(entry, attr) is None:
                setattr(entry, attr, value)
        entry.rank = max(entry.rank, source)
        entry.step = step
        entry.index = index

    def ordered(self) -> list[DocumentContext]:
        entries = sorted(self._entries.values(), key=lambda e: (-e.step, e.index))
        return [
            DocumentContext(
                document_id=e.document_id,
                document_type=e.document_type,
                slug=e.slug,
                name=e.name,
            )
            for e in entries
        ]


def extract_document_contexts(
    messages: Iterable[Message],
    extractor: Optional[ReferenceExtractor] = None,
) -> list[DocumentContext]:
    """Derive the ordered document context list from a message list.

    Pure and deterministic: the same messages always produce the same list.

    Args:
        messages: Conversation messages, oldest first.
        extractor: Free-text reference extractor. Defaults to the
            pattern-based one.

    Returns:
        Deduplicated contexts keyed by bare ID, most recent first.
    """
    extractor = extractor or PatternReferenceExtractor()
    contexts = _ContextMap()

    for message in messages:
        if message.content:
            refs = extractor.extract(message.content)
            if refs:
                step = contexts.next_step()
                for i, ref in enumerate(refs):
                    contexts.register(
                        ref.document_id,
                        ReferenceSource.TEXT,
                        step,
                        index=i,
                        document_type=ref.document_type,
                        name=ref.name,
                    )

        for action in message.actions:
            payload = action.payload
            if payload.document_id:
                contexts.register(
                    payload.document_id,
                    ReferenceSource.PAYLOAD,
                    contexts.next_step(),
                    document_type=payload.document_type,
                )

            if action.status != ActionStatus.completed or action.result is None:
                continue
            result = action.result

            if result.document_id:
                data = result.data if isinstance(result.data, dict) else {}
                contexts.register(
                    result.document_id,
                    ReferenceSource.RESULT,
                    contexts.next_step(),
                    document_type=data.get("_type") or payload.document_type,
                    slug=slug_value(data.get("slug")),
                    name=display_name(data),
                )

            if action.type == ActionType.query and result.data:
                records = result.data if isinstance(result.data, list) else [result.data]
                query_type = infer_type_from_query(payload.query)
                step = contexts.next_step()
                for i, record in enumerate(records):
                    if not isinstance(record, dict) or not record.get("_id"):
                        continue
                    contexts.register(
                        str(record["_id"]),
                        ReferenceSource.RESULT,
                        step,
                        index=i,
                        document_type=record.get("_type") or query_type,
                        slug=slug_value(record.get("slug")),
                        name=display_name(record),
                    )

    return contexts.ordered()


class DocumentContextResolver:
    """Keeps the active conversation's document context current.

    One resolver serves one session manager. ``refresh`` is called on
    every message-list change; ``switch_conversation`` on every switch.

    Example:
        resolver = DocumentContextResolver(repository)
        resolver.switch_conversation("conv-1")
        resolver.refresh(messages)
        await resolver.enrich()
        resolver.documents[0].slug
    """

    def __init__(
        self,
        repository: Optional[ContentRepository] = None,
        extractor: Optional[ReferenceExtractor] = None,
        slug_required_types: Iterable[str] = DEFAULT_SLUG_REQUIRED_TYPES,
        max_prepopulated_documents: int = DEFAULT_MAX_PREPOPULATED_DOCUMENTS,
    ) -> None:
        self._repository = repository
        self._extractor = extractor or PatternReferenceExtractor()
        self._slug_required_types = frozenset(slug_required_types)
        self._max_prepopulated = max_prepopulated_documents

        self._conversation_id: Optional[str] = None
        self._generation = 0
        self._documents: list[DocumentContext] = []
        self._has_manual_selection = False
        # Fields learned from the repository, re-applied after each re-derivation
        self._enriched: dict[str, dict[str, Optional[str]]] = {}

    @property
    def repository(self) -> Optional[ContentRepository]:
        return self._repository

    @property
    def conversation_id(self) -> Optional[str]:
        return self._conversation_id

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def documents(self) -> list[DocumentContext]:
        """Current contexts, most recent first."""
        return list(self._documents)

    @property
    def has_manual_selection(self) -> bool:
        """Whether the current selection was authored by the user."""
        return self._has_manual_selection

    @property
    def slug_required_types(self) -> frozenset[str]:
        return self._slug_required_types

    def requires_slug(self, document_type: Optional[str]) -> bool:
        return document_type in self._slug_required_types

    def switch_conversation(self, conversation_id: Optional[str]) -> None:
        """Reset state for a newly active conversation.

        Clears the manual selection and its flag, and invalidates every
        fetch still in flight for the previous conversation.
        """
        self._generation += 1
        self._conversation_id = conversation_id
        self._documents = []
        self._has_manual_selection = False
        self._enriched.clear()
        logger.debug(
            "Document context switched to %s (generation %d)",
            conversation_id,
            self._generation,
        )

    def refresh(self, messages: Iterable[Message]) -> list[DocumentContext]:
        """Re-derive contexts from the message list.

        A manual selection suppresses re-derivation until the
        conversation changes.

        Returns:
            The current context list.
        """
        if self._has_manual_selection:
            return self.documents

        derived = extract_document_contexts(messages, self._extractor)
        loading = {d.document_id for d in self._documents if d.is_loading}
        for context in derived:
            known = self._enriched.get(context.document_id, {})
            for attr, value in known.items():
                if value is not None and getattr(context, attr) is None:
                    setattr(context, attr, value)
            context.is_loading = context.document_id in loading
        self._documents = derived
        return self.documents

    def set_manual_selection(self, documents: Iterable[DocumentContext]) -> None:
        """Replace the context with a user-curated selection."""
        self._documents = [
            DocumentContext(
                document_id=strip_draft_prefix(d.document_id),
                document_type=d.document_type,
                slug=d.slug,
                name=d.name,
            )
            for d in documents
        ]
        self._has_manual_selection = True

    def remove_document(self, document_id: str) -> bool:
        """Drop one document from the selection.

        Removing a pill is a user edit, so it also marks the selection as
        user-authored.

        Returns:
            True if the document was present.
        """
        key = strip_draft_prefix(document_id)
        remaining = [d for d in self._documents if d.document_id != key]
        if len(remaining) == len(self._documents):
            return False
        self._documents = remaining
        self._has_manual_selection = True
        return True

    def find(self, document_id: str) -> Optional[DocumentContext]:
        key = strip_draft_prefix(document_id)
        for context in self._documents:
            if context.document_id == key:
                return context
        return None

    def _tag(self) -> tuple[Optional[str], int]:
        return (self._conversation_id, self._generation)

    def _is_current(self, tag: tuple[Optional[str], int]) -> bool:
        return tag == self._tag()

    def _remember(self, document_id: str, **fields: Optional[str]) -> None:
        known = self._enriched.setdefault(document_id, {})
        for attr, value in fields.items():
            if value is not None:
                known[attr] = value

    async def enrich(self) -> Optional[DocumentContext]:
        """Fetch the slug for the most recent candidate if it needs one.

        Returns:
            The updated context, or None when nothing was fetched or the
            result was stale.
        """
        if not self._documents:
            return None
        return await self.enrich_document(self._documents[0].document_id)

    async def enrich_document(self, document_id: str) -> Optional[DocumentContext]:
        """Fetch the slug for one candidate.

        The candidate is marked loading for the duration. On failure it
        is kept as-is, without a slug.

        Returns:
            The updated context, or None when nothing was fetched or the
            result was stale.
        """
        target = self.find(document_id)
        if (
            target is None
            or self._repository is None
            or target.slug
            or not self.requires_slug(target.document_type)
        ):
            return None

        tag = self._tag()
        target.is_loading = True
        slug: Optional[str] = None
        try:
            record = await self._repository.get_document(target.document_id, SLUG_PROJECTION)
            if record:
                slug = slug_value(record.get("slug"))
        except ContentRepositoryError as e:
            error = AssistantError.from_code(
                "E-3001", document_id=target.document_id, reason=e.message
            )
            logger.warning("%s", error)
        finally:
            target.is_loading = False

        if not self._is_current(tag):
            logger.info(
                "Discarding stale enrichment for %s (issued for %s)",
                target.document_id,
                tag[0],
            )
            return None

        current = self.find(target.document_id)
        if current is None:
            return None
        current.is_loading = False
        if slug:
            current.slug = slug
            self._remember(current.document_id, slug=slug)
        return current

    async def prepopulate(self) -> list[DocumentContext]:
        """Load full details for the leading candidates of a reopened conversation.

        Fetches ``{_id, _type, name, title, slug}`` for up to
        ``max_prepopulated_documents`` candidates. A failed fetch leaves
        that candidate with what the scan found.

        Returns:
            The current context list, or an empty list if the result was stale.
        """
        if self._repository is None or not self._documents:
            return self.documents

        tag = self._tag()
        candidates = self._documents[: self._max_prepopulated]
        fetched: dict[str, dict[str, Any]] = {}
        for candidate in candidates:
            candidate.is_loading = True
            try:
                record = await self._repository.get_document(
                    candidate.document_id, PREPOPULATE_PROJECTION
                )
            except ContentRepositoryError as e:
                logger.warning(
                    "Could not load details for %s: %s", candidate.document_id, e.message
                )
                record = None
            finally:
                candidate.is_loading = False
            if not self._is_current(tag):
                logger.info("Discarding stale pre-population for conversation %s", tag[0])
                return []
            if record:
                fetched[candidate.document_id] = record

        candidate_ids = {c.document_id for c in candidates}
        for context in self._documents:
            if context.document_id in candidate_ids:
                context.is_loading = False

        for document_id, record in fetched.items():
            current = self.find(document_id)
            if current is None:
                continue
            current.document_type = record.get("_type") or current.document_type
            current.name = display_name(record) or current.name
            current.slug = slug_value(record.get("slug")) or current.slug
            self._remember(
                document_id,
                document_type=current.document_type,
                name=current.name,
                slug=current.slug,
            )
        return self.documents
