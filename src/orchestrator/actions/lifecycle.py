"""Action lifecycle state machine.

Every status change on an Action goes through ``transition`` so the
edge set and the result/error invariants are enforced in one place.
"""

import logging
from typing import Optional

from src.orchestrator.models.action import Action, ActionResult, ActionStatus

logger = logging.getLogger(__name__)


class InvalidActionTransition(Exception):
    """Raised when attempting an invalid action state transition.

    Attributes:
        action_id: ID of the action.
        current_state: The current state of the action.
        attempted_state: The state that was attempted.
        allowed_transitions: List of valid transition targets from current state.
    """

    def __init__(
        self,
        action_id: str,
        current_state: ActionStatus,
        attempted_state: ActionStatus,
        allowed_transitions: list[ActionStatus],
    ) -> None:
        self.action_id = action_id
        self.current_state = current_state
        self.attempted_state = attempted_state
        self.allowed_transitions = allowed_transitions
        allowed_str = ", ".join(s.value for s in allowed_transitions) or "none (terminal)"
        super().__init__(
            f"Action '{action_id}' cannot transition from '{current_state.value}' "
            f"to '{attempted_state.value}'. Allowed transitions: {allowed_str}"
        )


# Valid state transitions for the action lifecycle
VALID_TRANSITIONS: dict[ActionStatus, list[ActionStatus]] = {
    ActionStatus.pending: [ActionStatus.executing, ActionStatus.cancelled],
    ActionStatus.executing: [
        ActionStatus.completed,
        ActionStatus.failed,
        ActionStatus.cancelled,
    ],
    ActionStatus.completed: [],  # terminal
    ActionStatus.failed: [],  # terminal (retry regenerates fresh actions)
    ActionStatus.cancelled: [],  # terminal
}


def can_transition(current: ActionStatus, target: ActionStatus) -> bool:
    """Check whether a status change is allowed.

    Args:
        current: Current action status.
        target: Desired action status.

    Returns:
        True if the edge exists in VALID_TRANSITIONS.
    """
    return target in VALID_TRANSITIONS.get(current, [])


def transition(
    action: Action,
    new_status: ActionStatus,
    result: Optional[ActionResult] = None,
    error: Optional[str] = None,
) -> Action:
    """Move an action to a new status, in place.

    ``result`` is recorded only on completion and ``error`` only on
    failure; every other target clears both.

    Args:
        action: The action to update.
        new_status: Target status.
        result: Execution outcome, required for ``completed``.
        error: Failure description, required for ``failed``.

    Returns:
        The same action instance.

    Raises:
        InvalidActionTransition: If the edge is not allowed.
        ValueError: If the outcome arguments do not match the target.
    """
    current = action.status
    if not can_transition(current, new_status):
        raise InvalidActionTransition(
            action_id=action.id,
            current_state=current,
            attempted_state=new_status,
            allowed_transitions=VALID_TRANSITIONS.get(current, []),
        )

    if new_status == ActionStatus.completed:
        if result is None:
            raise ValueError("A completed action requires a result")
        action.result = result
        action.error = None
    elif new_status == ActionStatus.failed:
        action.result = None
        action.error = error or "Action failed"
    else:
        action.result = None
        action.error = None

    action.status = new_status
    logger.info(
        "Action %s (%s): %s -> %s",
        action.id,
        action.type.value,
        current.value,
        new_status.value,
    )
    return action
