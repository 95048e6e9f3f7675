"""Error code registry with E-XXXX format codes.

This module defines the error code system for the studio assistant,
organizing errors into categories:
- E-1xxx: Action errors (lifecycle, validation, execution)
- E-2xxx: Content repository errors
- E-3xxx: Document context errors
- E-4xxx: Conversation/system errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    ACTION = "action"  # E-1xxx: Action errors
    REPOSITORY = "repository"  # E-2xxx: Content repository errors
    CONTEXT = "context"  # E-3xxx: Document context errors
    SYSTEM = "system"  # E-4xxx: Conversation/system errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str  # E-XXXX format
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Action errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.ACTION,
        title="Invalid Action Transition",
        message_template="Action '{action_id}' cannot move from '{current}' to '{target}'.",
        remediation="Ask the assistant to propose a new action.",
    ),
    "E-1004": ErrorCode(
        code="E-1004",
        category=ErrorCategory.ACTION,
        title="Action Not Found",
        message_template="No action with id '{action_id}' exists in the active conversation.",
        remediation="Reload the conversation and try again.",
    ),
    "E-1005": ErrorCode(
        code="E-1005",
        category=ErrorCategory.ACTION,
        title="Action Execution Failed",
        message_template="{action_type} failed: {reason}",
        remediation="Review the error, then retry the last message to get a fresh proposal.",
    ),
    # Repository errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.REPOSITORY,
        title="Repository Unreachable",
        message_template="Could not reach the content repository: {reason}",
        remediation="Check the project ID, dataset and network connection.",
        is_retryable=True,
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.REPOSITORY,
        title="Repository Request Rejected",
        message_template="The content repository rejected the request (HTTP {status_code}): {reason}",
        remediation="Verify the API token has write access to the dataset.",
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.REPOSITORY,
        title="Document Not Found",
        message_template="Document '{document_id}' was not found in the content repository.",
        remediation="The document may have been deleted. Search for it again.",
    ),
    # Context errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.CONTEXT,
        title="Enrichment Failed",
        message_template="Could not load details for document '{document_id}': {reason}",
        remediation="Navigation will use the document type and ID instead of its preview URL.",
        is_retryable=True,
    ),
    # Conversation/system errors (E-4xxx)
    "E-4002": ErrorCode(
        code="E-4002",
        category=ErrorCategory.SYSTEM,
        title="Assistant Unavailable",
        message_template="The assistant did not respond: {reason}",
        remediation="Retry the last message.",
        is_retryable=True,
    ),
    "E-4003": ErrorCode(
        code="E-4003",
        category=ErrorCategory.SYSTEM,
        title="Nothing To Retry",
        message_template="There is no user message to retry in this conversation.",
        remediation="Send a new message instead.",
    ),
    "E-4004": ErrorCode(
        code="E-4004",
        category=ErrorCategory.SYSTEM,
        title="No Active Conversation",
        message_template="No conversation is currently selected.",
        remediation="Create or select a conversation first.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
