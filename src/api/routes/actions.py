"""FastAPI routes for action handles.

Each proposed action is addressed by its ID. Executing a gated action
without confirming it leaves it pending; confirm is the explicit approval.
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_session_manager
from src.api.schemas import ActionPreviewResponse, ActionResponse
from src.orchestrator.actions.parser import format_action_for_display
from src.services.session_manager import ConversationSessionManager

router = APIRouter(prefix="/actions", tags=["actions"])


@router.get("/{action_id}", response_model=ActionResponse)
async def get_action(
    action_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ActionResponse:
    """Return an action's status, result and gate decision."""
    return ActionResponse.from_handle(manager.action_handle(action_id))


@router.post("/{action_id}/execute", response_model=ActionResponse)
async def execute_action(
    action_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ActionResponse:
    """Execute an action that needs no confirmation."""
    handle = manager.action_handle(action_id)
    await handle.execute()
    return ActionResponse.from_handle(handle)


@router.post("/{action_id}/confirm", response_model=ActionResponse)
async def confirm_action(
    action_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ActionResponse:
    """Execute an action after the user approved it."""
    handle = manager.action_handle(action_id)
    await handle.confirm()
    return ActionResponse.from_handle(handle)


@router.post("/{action_id}/cancel", response_model=ActionResponse)
async def cancel_action(
    action_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ActionResponse:
    """Cancel a pending or executing action. Terminal actions are unchanged."""
    handle = manager.action_handle(action_id)
    await handle.cancel()
    return ActionResponse.from_handle(handle)


@router.get("/{action_id}/preview", response_model=ActionPreviewResponse)
async def preview_action(
    action_id: str,
    manager: ConversationSessionManager = Depends(get_session_manager),
) -> ActionPreviewResponse:
    """Describe what an action would change.

    ``summary`` is a markdown rendering of the proposal for the
    confirmation dialog; ``preview`` shows the affected document.
    """
    handle = manager.action_handle(action_id)
    return ActionPreviewResponse(
        action_id=action_id,
        summary=format_action_for_display(handle.action),
        preview=await handle.preview(),
    )
