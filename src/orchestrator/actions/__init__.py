"""Action lifecycle core.

Modules:
    lifecycle: State machine (VALID_TRANSITIONS, transition).
    gate: Confirmation gate (auto-execute vs. require confirmation).
    parser: Action extraction from assistant responses.
    events: Observer protocol and emitter for lifecycle events.
    executor: ActionExecutor driving actions against the repository.
    handle: ActionHandle host surface with at-most-once auto-execution.

The executor and handle depend on the service layer and are imported
from their modules directly.
"""

from src.orchestrator.actions.events import ActionEventEmitter, ActionEventObserver
from src.orchestrator.actions.gate import (
    DESTRUCTIVE_OPERATIONS,
    GateDecision,
    gate,
    is_destructive,
)
from src.orchestrator.actions.lifecycle import (
    VALID_TRANSITIONS,
    InvalidActionTransition,
    can_transition,
    transition,
)
from src.orchestrator.actions.parser import (
    extract_text_content,
    parse_actions,
    validate_action,
)

__all__ = [
    "ActionEventEmitter",
    "ActionEventObserver",
    "DESTRUCTIVE_OPERATIONS",
    "GateDecision",
    "gate",
    "is_destructive",
    "VALID_TRANSITIONS",
    "InvalidActionTransition",
    "can_transition",
    "transition",
    "extract_text_content",
    "parse_actions",
    "validate_action",
]
