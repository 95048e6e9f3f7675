"""FastAPI routes for the active conversation's document context.

Endpoints:
    GET    /context                       - Current documents
    PUT    /context/selection             - Replace with a manual selection
    DELETE /context/documents/{id}        - Remove one document
    POST   /context/enrich                - Fetch the first document's slug
    POST   /context/navigation            - Plan "continue in" navigation
    GET    /context/search                - Document picker search
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from src.api.dependencies import get_document_search, get_session_manager
from src.api.schemas import (
    ContextResponse,
    DocumentContextResponse,
    DocumentSearchResponse,
    ManualSelectionRequest,
    NavigationRequest,
    NavigationResponse,
)
from src.errors import NotFoundError
from src.services.document_search import DocumentSearch
from src.services.session_manager import ConversationSessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/context", tags=["context"])


def _context_response(manager: ConversationSessionManager) -> ContextResponse:
    resolver = manager.resolver
    return ContextResponse(
        conversation_id=resolver.conversation_id,
        generation=resolver.generation,
        has_manual_selection=resolver.has_manual_selection,
        documents=[DocumentContextResponse.from_context(d) for d in resolver.documents],
    )


@router.get("", response_model=ContextResponse)
async def get_context(
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ContextResponse:
    """Documents the active conversation concerns, most recent first."""
    return _context_response(manager)


@router.put("/selection", response_model=ContextResponse)
async def set_selection(
    payload: ManualSelectionRequest,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ContextResponse:
    """Replace the derived context with the user's explicit choice.

    Message-derived updates are ignored until the conversation changes.
    """
    manager.set_manual_selection(d.to_context() for d in payload.documents)
    return _context_response(manager)


@router.delete("/documents/{document_id}", response_model=ContextResponse)
async def remove_document(
    document_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ContextResponse:
    """Remove one document from the context."""
    if not manager.remove_document(document_id):
        raise HTTPException(status_code=404, detail=f"Document '{document_id}' not in context")
    return _context_response(manager)


@router.post("/enrich", response_model=ContextResponse)
async def enrich_context(
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ContextResponse:
    """Fetch the slug of the most recent document if it needs one."""
    await manager.enrich_context()
    return _context_response(manager)


@router.post("/navigation", response_model=NavigationResponse)
async def plan_navigation(
    payload: NavigationRequest,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> NavigationResponse:
    """Plan navigation to another editing surface.

    With several documents in context and none chosen, the response lists
    the candidates instead of a URL.
    """
    try:
        plan = await manager.continue_in(payload.mode, document_id=payload.document_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return NavigationResponse.from_plan(plan)


@router.get("/search", response_model=DocumentSearchResponse)
async def search_documents(
    q: str = Query("", description="Text matched against name, title and slug"),
    types: Optional[list[str]] = Query(None, description="Document types to include"),
    search: Optional[DocumentSearch] = Depends(get_document_search),
) -> DocumentSearchResponse:
    """Search documents for the picker.

    Clients debounce typing themselves; this endpoint runs one query.
    """
    if search is None:
        raise HTTPException(status_code=503, detail="Content repository is not configured")
    if types:
        search.document_types = types
    results = await search.search(q)
    return DocumentSearchResponse(
        query=q,
        results=[DocumentContextResponse.from_context(r) for r in results],
    )
