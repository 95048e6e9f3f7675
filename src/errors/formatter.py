"""Assistant error type and its display forms.

AssistantError carries a registry code plus the rendered message. The
message alone is what an action or message shows inline; the API adds
the title, remediation and retry hint around it.
"""

from dataclasses import dataclass, field
from typing import Any

from src.errors.registry import get_error


@dataclass
class AssistantError(Exception):
    """Application error with code, message, and context.

    Attributes:
        code: Error code in E-XXXX format.
        message: Rendered message; shown as-is on failed actions.
        remediation: What the user can do about it.
        title: Short registry title, empty for unregistered codes.
        is_retryable: Whether retrying without changes may succeed.
        details: Structured context that is not part of the message.
    """

    code: str
    message: str
    remediation: str
    title: str = ""
    is_retryable: bool = False
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(cls, code: str, **kwargs: object) -> "AssistantError":
        """Create an error from its registry code.

        Args:
            code: Error code in E-XXXX format.
            **kwargs: Values for the message template. ``details`` is
                kept on the error instead.

        Returns:
            AssistantError with the rendered message. Placeholders without
            a value leave the template unrendered.
        """
        details = kwargs.pop("details", {})
        if not isinstance(details, dict):
            details = {}

        error_def = get_error(code)
        if error_def is None:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                remediation="Contact support.",
                details=details,
            )

        try:
            message = error_def.message_template.format(**kwargs)
        except KeyError:
            message = error_def.message_template

        return cls(
            code=error_def.code,
            message=message,
            remediation=error_def.remediation,
            title=error_def.title,
            is_retryable=error_def.is_retryable,
            details=details,
        )

    def to_response(self) -> dict[str, Any]:
        """JSON body for API error responses."""
        return {
            "error_code": self.code,
            "title": self.title or None,
            "message": self.message,
            "remediation": self.remediation,
            "retryable": self.is_retryable,
            "details": self.details or None,
        }


def format_error(error: AssistantError, include_remediation: bool = True) -> str:
    """Render an error for the conversation error banner.

    Args:
        error: The error to render.
        include_remediation: Append the remediation on its own line.

    Returns:
        ``"<title>: <message>"`` (or the code when untitled), optionally
        followed by the remediation.
    """
    lines = [f"{error.title or error.code}: {error.message}"]
    if include_remediation and error.remediation:
        lines.append(error.remediation)
    return "\n".join(lines)
