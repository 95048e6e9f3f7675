"""Session flags: small key/value switches that survive a reload.

Flags hold booleans or short strings only (sidebar open/closed, "resume
this conversation in the floating assistant"). They are read once when a
surface mounts and written on toggle; this is not a structured store.
"""

import logging
from typing import Callable, ContextManager, Optional, Protocol

from sqlalchemy.orm import Session

from src.db.connection import get_db_context
from src.db.models import SessionFlagRecord, utc_now_iso

logger = logging.getLogger(__name__)

SIDEBAR_OPEN = "assistant-sidebar-open"
FLOATING_CHAT_OPEN = "assistant-floating-chat-open"
FLOATING_PENDING_CONVERSATION = "assistant-floating-pending-conversation"

KNOWN_FLAGS = frozenset({SIDEBAR_OPEN, FLOATING_CHAT_OPEN, FLOATING_PENDING_CONVERSATION})

FlagValue = bool | str


class SessionFlagStore(Protocol):
    """Read/write access to session flags."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: FlagValue) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...


def _serialize(value: FlagValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    raise ValueError(f"Session flags hold booleans or strings, got {type(value).__name__}")


class SessionFlagService:
    """SQLAlchemy-backed SessionFlagStore.

    Args:
        db: SQLAlchemy session (sync).
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, key: str) -> Optional[str]:
        """Return the raw string value of a flag, or None if unset."""
        record = self._db.get(SessionFlagRecord, key)
        return record.value if record else None

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Return a flag as a boolean."""
        value = self.get(key)
        if value is None:
            return default
        return value.lower() == "true"

    def set(self, key: str, value: FlagValue) -> None:
        """Write a flag.

        Raises:
            ValueError: If the value is not a bool or str.
        """
        serialized = _serialize(value)
        record = self._db.get(SessionFlagRecord, key)
        if record is None:
            record = SessionFlagRecord(key=key, value=serialized)
            self._db.add(record)
        else:
            record.value = serialized
            record.updated_at = utc_now_iso()
        self._db.commit()

    def delete(self, key: str) -> bool:
        """Remove a flag. Returns True if it existed."""
        record = self._db.get(SessionFlagRecord, key)
        if record is None:
            return False
        self._db.delete(record)
        self._db.commit()
        return True

    def all(self) -> dict[str, str]:
        """Return every stored flag."""
        return {r.key: r.value for r in self._db.query(SessionFlagRecord).all()}

    def take_pending_conversation(self) -> Optional[str]:
        """Read and clear the conversation queued for the floating assistant."""
        conversation_id = self.get(FLOATING_PENDING_CONVERSATION)
        if conversation_id:
            self.delete(FLOATING_PENDING_CONVERSATION)
            logger.info("Resuming conversation %s in floating assistant", conversation_id)
        return conversation_id


class ScopedSessionFlagStore:
    """SessionFlagStore that opens a fresh DB session per call.

    Args:
        session_factory: Context manager yielding a Session. Defaults to
            ``get_db_context``.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], ContextManager[Session]]] = None,
    ) -> None:
        self._session_factory = session_factory or get_db_context

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            return SessionFlagService(db).get(key)

    def set(self, key: str, value: FlagValue) -> None:
        with self._session_factory() as db:
            SessionFlagService(db).set(key, value)

    def delete(self, key: str) -> bool:
        with self._session_factory() as db:
            return SessionFlagService(db).delete(key)
