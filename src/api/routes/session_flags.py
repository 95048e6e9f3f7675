"""FastAPI routes for session flags.

Flags are small switches read when a surface mounts: whether the sidebar
is open, and which conversation the floating assistant should resume.
"""

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_flag_service
from src.api.schemas import (
    PendingConversationResponse,
    SessionFlagsResponse,
    SessionFlagUpdate,
)
from src.services.session_flags import KNOWN_FLAGS, SessionFlagService

router = APIRouter(prefix="/session/flags", tags=["session"])


def _check_key(key: str) -> None:
    if key not in KNOWN_FLAGS:
        raise HTTPException(status_code=404, detail=f"Unknown session flag '{key}'")


@router.get("", response_model=SessionFlagsResponse)
def list_flags(flags: SessionFlagService = Depends(get_flag_service)) -> SessionFlagsResponse:
    """Return every stored flag."""
    return SessionFlagsResponse(flags=flags.all())


@router.post("/pending-conversation/take", response_model=PendingConversationResponse)
def take_pending_conversation(
    flags: SessionFlagService = Depends(get_flag_service),
) -> PendingConversationResponse:
    """Read and clear the conversation queued for the floating assistant."""
    return PendingConversationResponse(conversation_id=flags.take_pending_conversation())


@router.put("/{key}", response_model=SessionFlagsResponse)
def set_flag(
    key: str,
    payload: SessionFlagUpdate,
    flags: SessionFlagService = Depends(get_flag_service),
) -> SessionFlagsResponse:
    """Write one flag."""
    _check_key(key)
    flags.set(key, payload.value)
    return SessionFlagsResponse(flags=flags.all())


@router.delete("/{key}", status_code=204)
def delete_flag(key: str, flags: SessionFlagService = Depends(get_flag_service)) -> None:
    """Remove one flag. Removing an unset flag is not an error."""
    _check_key(key)
    flags.delete(key)
