"""FastAPI application for the studio assistant API.

Provides the main application instance with routers, middleware,
and exception handlers configured.
"""

import logging
import os
import sys
import time as _time
from contextlib import asynccontextmanager
from importlib.metadata import version as _pkg_version

from fastapi import FastAPI, Request

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
# Ensure our application loggers are captured
logging.getLogger("src").setLevel(logging.INFO)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.dependencies import get_manager_instance
from src.api.routes import actions, context, conversations, session_flags
from src.db.connection import close_db, get_db_context, init_db
from src.errors import AssistantError, DomainError, NotFoundError
from src.orchestrator.actions.lifecycle import InvalidActionTransition
from src.services.content_repository import ContentRepositoryError
from src.services.conversation_persistence_service import ConversationPersistenceService

logger = logging.getLogger(__name__)

_startup_time: float = 0.0

# Error codes that mean "the thing you asked about does not exist"
_NOT_FOUND_CODES = frozenset({"E-1004", "E-2003"})
_UPSTREAM_CODES = frozenset({"E-2001", "E-2002"})


def _parse_allowed_origins() -> list[str]:
    """Parse comma-separated CORS allowlist from ALLOWED_ORIGINS env var."""
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _status_for(error: AssistantError) -> int:
    if error.code in _NOT_FOUND_CODES:
        return 404
    if error.code in _UPSTREAM_CODES:
        return 502
    if error.code == "E-4002":
        return 503
    if error.code == "E-1001":
        return 409
    return 400


def load_persisted_conversations() -> int:
    """Load stored conversations into the session manager.

    Returns:
        Number of conversations loaded.
    """
    with get_db_context() as db:
        stored = ConversationPersistenceService(db).load_conversations(active_only=False)
    get_manager_instance().load_conversations(stored)
    return len(stored)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan: create tables, restore conversations, release the pool."""
    global _startup_time

    _startup_time = _time.time()
    init_db()

    # Non-blocking: a corrupt history must not keep the API down
    try:
        count = load_persisted_conversations()
        logger.info("Restored %d conversations", count)
    except Exception as e:
        logger.error("Conversation restore failed (non-blocking): %s", e)

    yield

    close_db()


app = FastAPI(
    title="Studio Assistant API",
    description="Conversational assistant for a headless CMS studio",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS allowlist is env-driven. If unset, CORS is disabled (same-origin only).
allowed_origins = _parse_allowed_origins()
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )


@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError) -> JSONResponse:
    """Handle AssistantError exceptions with consistent format."""
    return JSONResponse(
        status_code=_status_for(exc),
        content=exc.to_response(),
    )


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map typed domain errors to HTTP status codes."""
    status_code = 404 if isinstance(exc, NotFoundError) else 400
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(InvalidActionTransition)
async def invalid_transition_handler(
    request: Request, exc: InvalidActionTransition
) -> JSONResponse:
    """An action control was used in a status that does not allow it."""
    error = AssistantError.from_code(
        "E-1001",
        action_id=exc.action_id,
        current=exc.current_state.value,
        target=exc.attempted_state.value,
        details={"allowed": [s.value for s in exc.allowed_transitions]},
    )
    return await assistant_error_handler(request, error)


@app.exception_handler(ContentRepositoryError)
async def repository_error_handler(
    request: Request, exc: ContentRepositoryError
) -> JSONResponse:
    """The content repository failed outside of action execution."""
    logger.warning("Content repository error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


# Include routers
app.include_router(conversations.router, prefix="/api/v1")
app.include_router(actions.router, prefix="/api/v1")
app.include_router(context.router, prefix="/api/v1")
app.include_router(session_flags.router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with basic status."""
    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    try:
        version = _pkg_version("studio-assistant")
    except Exception:
        version = "unknown"

    manager = get_manager_instance()
    return {
        "status": "healthy",
        "version": version,
        "uptime_seconds": uptime,
        "conversations": len(manager.conversations),
    }


@app.get("/api")
def api_root() -> dict:
    """API root with links to docs."""
    return {
        "name": "Studio Assistant API",
        "version": "0.1.0",
        "docs": "/docs",
        "redoc": "/redoc",
    }
