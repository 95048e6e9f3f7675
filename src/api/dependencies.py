"""Shared FastAPI dependencies.

The session manager is process-wide: conversations, the active
conversation and the document context live in memory and are written
through to the database. Its stores open their own DB session per
write, so nothing request-scoped is held across an await.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from src.config import AssistantConfig, load_config
from src.db.connection import get_db
from src.orchestrator.actions.executor import ActionExecutor
from src.orchestrator.context.resolver import DocumentContextResolver
from src.services.assistant_responder import HttpAssistantResponder
from src.services.content_operations import ContentOperations
from src.services.content_repository import ContentRepository
from src.services.conversation_persistence_service import ScopedConversationStore
from src.services.document_search import DocumentSearch
from src.services.http_content_repository import HttpContentRepository
from src.services.session_flags import ScopedSessionFlagStore, SessionFlagService
from src.services.session_manager import ConversationSessionManager

logger = logging.getLogger(__name__)

_session_manager: Optional[ConversationSessionManager] = None


@lru_cache
def get_config() -> AssistantConfig:
    """Load configuration once per process."""
    return load_config()


def build_repository(config: AssistantConfig) -> Optional[ContentRepository]:
    """Create the content repository client, or None when unconfigured."""
    repo_config = config.repository
    if not repo_config.is_configured:
        logger.warning("Content repository not configured; actions will fail")
        return None
    return HttpContentRepository(
        project_id=repo_config.project_id,
        dataset=repo_config.dataset,
        token=repo_config.token,
        api_version=repo_config.api_version,
        base_url=repo_config.base_url,
        timeout=repo_config.timeout_seconds,
    )


def build_session_manager(
    config: AssistantConfig,
    repository: Optional[ContentRepository] = None,
) -> ConversationSessionManager:
    """Wire the executor, resolver and responder from configuration."""
    executor = ActionExecutor(ContentOperations(repository))
    resolver = DocumentContextResolver(
        repository=repository,
        slug_required_types=config.context.slug_required_types,
        max_prepopulated_documents=config.context.max_prepopulated_documents,
    )
    responder = None
    if config.assistant.endpoint:
        responder = HttpAssistantResponder(
            config.assistant.endpoint,
            system_prompt=config.assistant.system_prompt,
            timeout=config.assistant.timeout_seconds,
        )
    return ConversationSessionManager(
        executor,
        resolver,
        responder=responder,
        store=ScopedConversationStore(),
        flags=ScopedSessionFlagStore(),
        page_size=config.sessions.page_size,
        auto_execute_enabled=config.actions.auto_execute_enabled,
        max_auto_execute_age_seconds=config.actions.max_auto_execute_age_seconds,
    )


def get_manager_instance() -> ConversationSessionManager:
    """Return the process-wide session manager, creating it on first use."""
    global _session_manager
    if _session_manager is None:
        config = get_config()
        _session_manager = build_session_manager(config, build_repository(config))
    return _session_manager


def set_manager_instance(manager: Optional[ConversationSessionManager]) -> None:
    """Replace (or clear) the process-wide session manager."""
    global _session_manager
    _session_manager = manager


def get_flag_service(db: Session = Depends(get_db)) -> SessionFlagService:
    """Dependency to get SessionFlagService instance."""
    return SessionFlagService(db)


async def get_session_manager() -> ConversationSessionManager:
    """Dependency returning the process-wide session manager.

    Declared async so the manager is only ever touched on the event loop.
    """
    return get_manager_instance()


async def get_document_search(
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> Optional[DocumentSearch]:
    """Dependency returning a one-shot picker search, or None without a repository."""
    repository = manager.resolver.repository
    if repository is None:
        return None
    config = get_config()
    return DocumentSearch(
        repository,
        debounce_ms=config.search.debounce_ms,
        limit=config.search.limit,
    )
