"""Service layer for the studio assistant.

Provides the content repository client, content operations, persistence,
and the conversation session manager.
"""

from src.services.content_repository import (
    ContentRepository,
    ContentRepositoryError,
    strip_draft_prefix,
    to_draft_id,
)

__all__ = [
    "ContentRepository",
    "ContentRepositoryError",
    "strip_draft_prefix",
    "to_draft_id",
]
