"""Action executor driving actions through their lifecycle.

The executor is the only component that moves an action out of
``pending``. It consults the confirmation gate, runs the repository call
through ContentOperations, and records the outcome on the live action
instance owned by the conversation.

Cancellation is fire-and-forget: the repository call is not interrupted,
but once the action has been cancelled any outcome that arrives later is
discarded.
"""

import logging
from typing import Optional

from src.errors import AssistantError
from src.orchestrator.actions.events import ActionEventEmitter
from src.orchestrator.actions.gate import GateDecision, gate
from src.orchestrator.actions.lifecycle import transition
from src.orchestrator.models.action import Action, ActionResult, ActionStatus
from src.services.content_operations import ContentOperations
from src.services.content_repository import ContentRepositoryError

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Executes assistant actions against the content repository.

    Example:
        executor = ActionExecutor(ContentOperations(repository))
        executor.events.add_observer(context_observer)
        await executor.execute(action)
        if action.status == ActionStatus.pending:
            # Destructive: wait for the user, then
            await executor.execute(action, confirmed=True)
    """

    def __init__(
        self,
        operations: ContentOperations,
        events: Optional[ActionEventEmitter] = None,
    ) -> None:
        """Initialize the executor.

        Args:
            operations: Repository-backed operation runner.
            events: Emitter for lifecycle events. A private one is created
                when omitted.
        """
        self._operations = operations
        self._events = events or ActionEventEmitter()

    @property
    def events(self) -> ActionEventEmitter:
        """Get the event emitter for observer registration."""
        return self._events

    @property
    def operations(self) -> ContentOperations:
        """Get the operation runner."""
        return self._operations

    async def execute(self, action: Action, confirmed: bool = False) -> Action:
        """Run an action if the gate (or the user) allows it.

        Non-executable actions and gated actions without confirmation are
        left untouched. Repository failures are recorded on the action and
        never raised.

        Args:
            action: Live action instance from the conversation.
            confirmed: True when the user explicitly approved the action.

        Returns:
            The same action instance.
        """
        decision = gate(action)
        if decision == GateDecision.not_executable:
            logger.debug(
                "Action %s is not executable (type=%s, status=%s)",
                action.id,
                action.type.value,
                action.status.value,
            )
            return action
        if decision == GateDecision.require_confirmation and not confirmed:
            logger.info("Action %s awaits user confirmation", action.id)
            return action

        transition(action, ActionStatus.executing)
        await self._events.emit_action_started(action)

        result: Optional[ActionResult] = None
        error_code: Optional[str] = None
        error_message: Optional[str] = None
        try:
            result = await self._operations.execute_action(action)
        except Exception as e:
            error_code, error_message = self._translate_error(action, e)

        # The action may have been cancelled while the call was outstanding
        if action.status != ActionStatus.executing:
            logger.info(
                "Discarding outcome for action %s (now %s)",
                action.id,
                action.status.value,
            )
            return action

        if result is not None and result.success:
            transition(action, ActionStatus.completed, result=result)
            await self._events.emit_action_completed(action)
            return action

        if result is not None:
            error_code, error_message = self._failure_from_result(action, result)

        logger.warning(
            "Action %s failed [%s]: %s", action.id, error_code, error_message
        )
        transition(action, ActionStatus.failed, error=error_message)
        await self._events.emit_action_failed(action)
        return action

    async def cancel(self, action: Action) -> bool:
        """Cancel a pending or in-flight action.

        Args:
            action: Live action instance from the conversation.

        Returns:
            True if the action was cancelled, False if it was already terminal.
        """
        if action.status not in (ActionStatus.pending, ActionStatus.executing):
            return False
        transition(action, ActionStatus.cancelled)
        await self._events.emit_action_cancelled(action)
        return True

    async def preview(self, action: Action) -> dict:
        """Describe what an action would do without running it."""
        return await self._operations.preview_action(action)

    def _failure_from_result(
        self, action: Action, result: ActionResult
    ) -> tuple[str, str]:
        """Build the error for an operation that reported failure."""
        error = AssistantError.from_code(
            "E-1005",
            action_type=action.type.value.capitalize(),
            reason=result.message,
        )
        return error.code, error.message

    def _translate_error(self, action: Action, error: Exception) -> tuple[str, str]:
        """Translate exception to error code and message.

        Maps exceptions to the E-XXXX error code format from
        the error registry.

        Args:
            action: The action being executed.
            error: Exception that occurred.

        Returns:
            Tuple of (error_code, error_message).
        """
        if isinstance(error, ContentRepositoryError):
            if error.status_code == 404:
                translated = AssistantError.from_code(
                    "E-2003", document_id=action.payload.document_id or "unknown"
                )
            elif error.status_code is not None:
                translated = AssistantError.from_code(
                    "E-2002", status_code=error.status_code, reason=error.message
                )
            else:
                translated = AssistantError.from_code("E-2001", reason=error.message)
        elif isinstance(error, AssistantError):
            translated = error
        else:
            translated = AssistantError.from_code(
                "E-1005",
                action_type=action.type.value.capitalize(),
                reason=str(error) or type(error).__name__,
            )
        return translated.code, translated.message
