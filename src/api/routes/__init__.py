"""FastAPI route modules.

Exports all route modules for inclusion in the main application.
"""

from src.api.routes import actions, context, conversations, session_flags

__all__ = [
    "actions",
    "context",
    "conversations",
    "session_flags",
]
