"""Error handling framework for the studio assistant.

This package provides:
- Error code registry with E-XXXX format codes
- AssistantError with registry-backed message formatting
- Typed domain exceptions for API status mapping

Error categories:
- E-1xxx: Action errors
- E-2xxx: Content repository errors
- E-3xxx: Document context errors
- E-4xxx: Conversation/system errors
"""

from src.errors.registry import (
    ErrorCategory,
    ErrorCode,
    ERROR_REGISTRY,
    get_error,
    get_errors_by_category,
)
from src.errors.formatter import (
    AssistantError,
    format_error,
)
from src.errors.domain import (
    DomainError,
    NotFoundError,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Formatter
    "AssistantError",
    "format_error",
    # Domain
    "DomainError",
    "NotFoundError",
]
