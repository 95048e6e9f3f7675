"""Abstract content repository client.

The assistant core only needs four capabilities from the document store
(fetch, create, patch, delete) plus draft/published ID duality: a
document may exist as ``drafts.<id>`` and ``<id>``. The core always
normalizes to the bare ID and lets the client decide which variant a
write targets.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

DRAFTS_PREFIX = "drafts."


def strip_draft_prefix(document_id: str) -> str:
    """Return the bare (published) form of a document ID."""
    if document_id.startswith(DRAFTS_PREFIX):
        return document_id[len(DRAFTS_PREFIX):]
    return document_id


def to_draft_id(document_id: str) -> str:
    """Return the draft form of a document ID."""
    return DRAFTS_PREFIX + strip_draft_prefix(document_id)


def is_draft_id(document_id: str) -> bool:
    """Check whether a document ID is the draft variant."""
    return document_id.startswith(DRAFTS_PREFIX)


class ContentRepositoryError(Exception):
    """Raised when a repository call fails.

    Attributes:
        message: Human-readable failure description.
        status_code: HTTP status code, when the failure came from a response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ContentRepository(ABC):
    """Abstract base class for content repository clients.

    Concrete implementations must handle:
    - Running read queries
    - Creating, patching and deleting documents

    Example implementation:
        class HttpContentRepository(ContentRepository):
            async def fetch(self, query, params=None):
                # POST to the query endpoint
                ...
    """

    @abstractmethod
    async def fetch(self, query: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Run a read query.

        Args:
            query: Query expression in the repository's query language.
            params: Values for parameters referenced by the query.

        Returns:
            The query result: a list of records, a single record, or None.

        Raises:
            ContentRepositoryError: If the query fails.
        """
        ...

    @abstractmethod
    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        """Create a document.

        Args:
            document: Document body including ``_type`` and optionally ``_id``.

        Returns:
            The created document as stored.

        Raises:
            ContentRepositoryError: If the write fails.
        """
        ...

    @abstractmethod
    async def patch(
        self,
        document_id: str,
        fields: dict[str, Any],
        unset: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        """Set and unset fields on an existing document.

        Args:
            document_id: Target document ID.
            fields: Field values to set.
            unset: Field paths to remove.

        Returns:
            The patched document.

        Raises:
            ContentRepositoryError: If the write fails.
        """
        ...

    @abstractmethod
    async def delete(self, document_id: str) -> dict[str, Any]:
        """Delete a document.

        Args:
            document_id: Target document ID.

        Returns:
            Repository acknowledgement for the deletion.

        Raises:
            ContentRepositoryError: If the write fails.
        """
        ...

    async def create_or_replace(self, document: dict[str, Any]) -> dict[str, Any]:
        """Write a document under its ``_id``, replacing any existing one.

        Clients whose backend has a native replace should override this;
        the default deletes then creates and is not atomic.

        Args:
            document: Document body including ``_id`` and ``_type``.

        Returns:
            The stored document.

        Raises:
            ContentRepositoryError: If either write fails.
        """
        existing = await self.fetch_exact(document["_id"])
        if existing is not None:
            await self.delete(document["_id"])
        return await self.create(document)

    async def fetch_exact(self, document_id: str) -> Optional[dict[str, Any]]:
        """Fetch exactly one ID variant, without draft/published matching.

        Args:
            document_id: Draft or bare document ID, used as-is.

        Returns:
            The document, or None if that variant does not exist.
        """
        result = await self.fetch("*[_id == $id][0]", {"id": document_id})
        if isinstance(result, dict):
            return result
        return None

    async def get_document(
        self,
        document_id: str,
        projection: str = "",
    ) -> Optional[dict[str, Any]]:
        """Fetch a single document by either its draft or published ID.

        Args:
            document_id: Draft or bare document ID.
            projection: Optional projection appended to the query,
                e.g. ``{slug}``.

        Returns:
            The matching document, or None if it does not exist.

        Raises:
            ContentRepositoryError: If the query fails.
        """
        bare_id = strip_draft_prefix(document_id)
        query = f"*[_id == $id || _id == $draftId][0]{projection}"
        result = await self.fetch(query, {"id": bare_id, "draftId": to_draft_id(bare_id)})
        if isinstance(result, dict):
            return result
        return None
