"""Best-effort extraction of document references from free text.

Query results are sometimes rendered as prose or raw JSON in a message
instead of arriving as structured action data. The extractor scans for
``"_id": "..."`` style fragments and pairs the i-th ID with the i-th
type and name it finds. It may over- or under-match; structured action
data always takes precedence over what it returns.

The resolver depends only on the ReferenceExtractor protocol so a
stricter extractor can replace the pattern-based one.
"""

import re
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class TextReference:
    """A document reference scraped from text.

    Attributes:
        document_id: Raw repository ID as it appeared (may carry a draft prefix).
        document_type: Paired ``_type`` value, if any.
        name: Paired ``name`` value, if any.
    """

    document_id: str
    document_type: Optional[str] = None
    name: Optional[str] = None


class ReferenceExtractor(Protocol):
    """Extracts document references from message text."""

    def extract(self, text: str) -> list[TextReference]:
        """Return references in the order they appear."""
        ...


_ID_PATTERN = re.compile(r'"_id"\s*:\s*"([^"]+)"')
_TYPE_PATTERN = re.compile(r'"_type"\s*:\s*"([^"]+)"')
_NAME_PATTERN = re.compile(r'"name"\s*:\s*"([^"]+)"')


class PatternReferenceExtractor:
    """Permissive regex extractor for ``{_id, _type, name}`` fragments."""

    def extract(self, text: str) -> list[TextReference]:
        if not text:
            return []
        ids = _ID_PATTERN.findall(text)
        if not ids:
            return []
        types = _TYPE_PATTERN.findall(text)
        names = _NAME_PATTERN.findall(text)
        return [
            TextReference(
                document_id=doc_id,
                document_type=types[i] if i < len(types) else None,
                name=names[i] if i < len(names) else None,
            )
            for i, doc_id in enumerate(ids)
        ]


_QUERY_TYPE_PATTERN = re.compile(r"""_type\s*==\s*["'](\w+)["']""")


def infer_type_from_query(query: Optional[str]) -> Optional[str]:
    """Pull the document type out of a ``_type == "x"`` filter clause."""
    if not query:
        return None
    match = _QUERY_TYPE_PATTERN.search(query)
    return match.group(1) if match else None
