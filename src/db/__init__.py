"""Database module for conversation persistence and session flags."""

from src.db.connection import (
    SessionLocal,
    engine,
    get_db,
    get_db_context,
    init_db,
)
from src.db.models import (
    Base,
    ConversationRecord,
    MessageRecord,
    SessionFlagRecord,
)

__all__ = [
    # Models
    "Base",
    "ConversationRecord",
    "MessageRecord",
    "SessionFlagRecord",
    # Connection
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "init_db",
]
