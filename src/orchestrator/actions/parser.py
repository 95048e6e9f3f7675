"""Parse assistant responses into structured actions.

The assistant proposes operations as JSON objects embedded in its reply,
in any of three forms:

    ```action
    {"type": "update", "description": "...", "payload": {...}}
    ```

    ```json
    {"type": "query", "query": "*[_type == 'page']"}
    ```

    [ACTION]{"type": "navigate", "documentId": "abc"}[/ACTION]

Blocks that fail to parse, or whose type is unknown, are skipped with a
warning. Every parsed action starts in ``pending``.
"""

import json
import logging
import re
from typing import Any, Optional

from src.orchestrator.models.action import (
    Action,
    ActionPayload,
    ActionStatus,
    ActionType,
    generate_action_id,
)

logger = logging.getLogger(__name__)

_ACTION_BLOCK = re.compile(r"```action\s*([\s\S]*?)```")
_JSON_BLOCK = re.compile(r"```json\s*([\s\S]*?)```")
_INLINE_ACTION = re.compile(r"\[ACTION\]\s*(\{[\s\S]*?\})\s*\[/ACTION\]")

_TRAILING_COMMA_OBJECT = re.compile(r",\s*}")
_TRAILING_COMMA_ARRAY = re.compile(r",\s*]")
_UNQUOTED_KEY = re.compile(r"([{,]\s*)([A-Za-z_]\w*)(\s*):")

DEFAULT_DESCRIPTIONS: dict[ActionType, str] = {
    ActionType.create: "Create a new document",
    ActionType.update: "Update an existing document",
    ActionType.delete: "Delete a document",
    ActionType.query: "Query documents",
    ActionType.navigate: "Navigate to a document",
    ActionType.explain: "Explanation",
}


def safe_parse_json(text: str) -> Optional[Any]:
    """Parse JSON, tolerating trailing commas and bare object keys.

    Args:
        text: Candidate JSON text.

    Returns:
        The decoded value, or None if it cannot be parsed.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    cleaned = _TRAILING_COMMA_OBJECT.sub("}", text)
    cleaned = _TRAILING_COMMA_ARRAY.sub("]", cleaned)
    cleaned = _UNQUOTED_KEY.sub(r'\1"\2"\3:', cleaned)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Failed to parse JSON after cleanup: %s", text[:100])
        return None


def _first(data: dict[str, Any], *keys: str) -> Any:
    """Return the first truthy value among the given keys."""
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def parse_payload(data: Any) -> ActionPayload:
    """Build an ActionPayload from nested or flat action data.

    Accepts the aliases the assistant sometimes uses: ``groq`` for
    ``query``, ``data`` for ``fields``, ``url`` for ``path`` and
    ``message`` for ``explanation``.

    Args:
        data: The ``payload`` object, or the whole action object when flat.

    Returns:
        Parsed payload; empty when ``data`` is not an object.
    """
    if not isinstance(data, dict):
        return ActionPayload()

    field_values = _first(data, "fields", "data")
    unset = data.get("unset") or []
    if isinstance(unset, str):
        unset = [unset]

    return ActionPayload(
        document_id=_first(data, "documentId", "document_id"),
        document_type=_first(data, "documentType", "document_type"),
        field_values=field_values if isinstance(field_values, dict) else None,
        query=_first(data, "query", "groq"),
        params=data.get("params") if isinstance(data.get("params"), dict) else None,
        path=_first(data, "path", "url"),
        explanation=_first(data, "explanation", "message"),
        operation=data.get("operation") or None,
        unset=[str(item) for item in unset] if isinstance(unset, list) else [],
    )


def parse_action_data(data: Any) -> Optional[Action]:
    """Convert one decoded action object into a pending Action.

    Args:
        data: Decoded JSON object with at least a ``type`` key.

    Returns:
        The parsed Action, or None if the object is not a valid action.
    """
    if not isinstance(data, dict):
        logger.warning("Ignoring action data that is not an object")
        return None

    try:
        action_type = ActionType(data.get("type"))
    except ValueError:
        logger.warning("Ignoring action with unknown type: %r", data.get("type"))
        return None

    payload_source = data.get("payload") or data
    description = data.get("description") or DEFAULT_DESCRIPTIONS[action_type]

    return Action(
        id=generate_action_id(),
        type=action_type,
        description=str(description),
        status=ActionStatus.pending,
        payload=parse_payload(payload_source),
    )


def parse_actions(content: str) -> list[Action]:
    """Extract every action proposed in an assistant response.

    Actions are returned in the order they appear in the text.

    Args:
        content: Raw assistant response text.

    Returns:
        List of pending actions.
    """
    found: list[tuple[int, Any]] = []

    for match in _ACTION_BLOCK.finditer(content):
        data = safe_parse_json(match.group(1).strip())
        if data is None:
            logger.warning("Failed to parse action block: %s", match.group(1)[:100])
            continue
        found.append((match.start(), data))

    for match in _JSON_BLOCK.finditer(content):
        data = safe_parse_json(match.group(1).strip())
        # Plain JSON blocks only count when they look like an action
        if isinstance(data, dict) and "type" in data:
            found.append((match.start(), data))

    for match in _INLINE_ACTION.finditer(content):
        data = safe_parse_json(match.group(1).strip())
        if data is None:
            logger.warning("Failed to parse inline action: %s", match.group(1)[:100])
            continue
        found.append((match.start(), data))

    found.sort(key=lambda item: item[0])
    actions = []
    for _, data in found:
        action = parse_action_data(data)
        if action is not None:
            actions.append(action)
    return actions


def extract_text_content(content: str) -> str:
    """Strip action blocks from a response, leaving the prose.

    Args:
        content: Raw assistant response text.

    Returns:
        Response text without action blocks, whitespace-normalized.
    """
    text = _ACTION_BLOCK.sub("", content)
    text = _INLINE_ACTION.sub("", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def validate_action(action: Action) -> list[str]:
    """List the required parameters an action is missing.

    Args:
        action: The action to check.

    Returns:
        Human-readable validation messages; empty when the action is complete.
    """
    errors: list[str] = []
    payload = action.payload

    if action.type == ActionType.create:
        if not payload.document_type:
            errors.append("Document type is required for create action")
    elif action.type == ActionType.update:
        if not payload.document_id:
            errors.append("Document ID is required for update action")
        if not payload.field_values and not payload.unset and not payload.operation:
            errors.append("Fields are required for update action")
    elif action.type == ActionType.delete:
        if not payload.document_id:
            errors.append("Document ID is required for delete action")
    elif action.type == ActionType.query:
        if not payload.query:
            errors.append("Query is required for query action")
    elif action.type == ActionType.navigate:
        if not payload.document_id and not payload.path:
            errors.append("Document ID or path is required for navigate action")

    return errors


def format_action_for_display(action: Action) -> str:
    """Render an action as a short markdown summary.

    Args:
        action: The action to render.

    Returns:
        Multi-line markdown string.
    """
    lines = [f"**{action.description}**", f"Type: {action.type.value}"]
    payload = action.payload
    if payload.document_type:
        lines.append(f"Document Type: {payload.document_type}")
    if payload.document_id:
        lines.append(f"Document ID: {payload.document_id}")
    if payload.query:
        lines.append(f"Query: {payload.query}")
    if payload.field_values:
        lines.append(f"Fields: {json.dumps(payload.field_values, indent=2, default=str)}")
    return "\n".join(lines)
