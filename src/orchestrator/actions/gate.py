"""Confirmation gate for assistant-proposed actions.

Queries and additive edits run immediately to keep the conversation
fluid. Anything that can destroy user data waits for an explicit click.
The gate is a pure function of the action and never performs I/O.
"""

from enum import Enum

from src.orchestrator.models.action import Action, ActionStatus, ActionType


class GateDecision(str, Enum):
    """What the host should do with a proposed action."""

    auto_execute = "auto_execute"
    require_confirmation = "require_confirmation"
    not_executable = "not_executable"


# Named field operations that lose data when applied
DESTRUCTIVE_OPERATIONS: frozenset[str] = frozenset(
    {
        "unpublish",
        "unset",
        "remove",
        "replace",
        "clear",
        "discard_draft",
    }
)

# Fields whose overwrite breaks existing public routes
ROUTE_FIELDS: frozenset[str] = frozenset({"slug"})


def _compact(operation: str) -> str:
    """Fold camelCase, dashed and snake_case spellings onto one key."""
    return operation.strip().lower().replace("_", "").replace("-", "")


_DESTRUCTIVE_KEYS = frozenset(_compact(op) for op in DESTRUCTIVE_OPERATIONS)


def touches_route_field(path: str) -> bool:
    """True if a patch path is a route field or lies inside one.

    Repository patches accept field paths, so ``slug.current`` and
    ``slug[0]`` rewrite the route as surely as ``slug`` does.
    """
    return any(
        path == field or path.startswith((f"{field}.", f"{field}["))
        for field in ROUTE_FIELDS
    )


def is_destructive(action: Action) -> bool:
    """Classify an action as destructive.

    Destructive actions are deletes, and creates/updates that name a
    destructive field operation, unset fields, set a field to null, or
    (for updates) overwrite a route field such as the slug.

    Args:
        action: The action to classify.

    Returns:
        True if the action requires explicit confirmation.
    """
    if action.type == ActionType.delete:
        return True
    if action.type not in (ActionType.create, ActionType.update):
        return False

    payload = action.payload
    if payload.operation and _compact(payload.operation) in _DESTRUCTIVE_KEYS:
        return True
    if payload.unset:
        return True

    values = payload.field_values or {}
    if any(value is None for value in values.values()):
        return True
    if action.type == ActionType.update and any(touches_route_field(key) for key in values):
        return True
    return False


def gate(action: Action) -> GateDecision:
    """Decide whether an action runs automatically.

    Args:
        action: The proposed action.

    Returns:
        ``not_executable`` for explain actions and anything outside
        ``pending``; ``require_confirmation`` for destructive actions;
        ``auto_execute`` otherwise.
    """
    if action.type == ActionType.explain or action.status != ActionStatus.pending:
        return GateDecision.not_executable
    if is_destructive(action):
        return GateDecision.require_confirmation
    return GateDecision.auto_execute
