"""Host-facing surface for a single action.

An ActionHandle is what an action card binds to: it exposes the live
status/result/error for display and the execute/confirm/cancel controls.
The host calls ``auto_execute`` whenever it re-evaluates the card; the
handle makes sure that fires at most once per action.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from src.orchestrator.actions.executor import ActionExecutor
from src.orchestrator.actions.gate import GateDecision, gate, is_destructive
from src.orchestrator.models.action import Action, ActionResult, ActionStatus
from src.orchestrator.models.conversation import utc_now

logger = logging.getLogger(__name__)

DEFAULT_MAX_AUTO_EXECUTE_AGE_SECONDS = 10


class ActionHandle:
    """Controls and display state for one proposed action.

    Attributes:
        action: The live action instance owned by the conversation.
        proposed_at: When the proposing message was created.
    """

    def __init__(
        self,
        action: Action,
        executor: ActionExecutor,
        proposed_at: datetime,
        auto_execute_enabled: bool = True,
        max_auto_execute_age_seconds: float = DEFAULT_MAX_AUTO_EXECUTE_AGE_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.action = action
        self.proposed_at = proposed_at
        self._executor = executor
        self._auto_execute_enabled = auto_execute_enabled
        self._max_age = timedelta(seconds=max_auto_execute_age_seconds)
        self._clock = clock

    @property
    def status(self) -> ActionStatus:
        return self.action.status

    @property
    def result(self) -> Optional[ActionResult]:
        return self.action.result

    @property
    def error(self) -> Optional[str]:
        return self.action.error

    @property
    def decision(self) -> GateDecision:
        return gate(self.action)

    @property
    def is_destructive(self) -> bool:
        return is_destructive(self.action)

    def is_recent(self, now: Optional[datetime] = None) -> bool:
        """Whether the proposing message is young enough to auto-execute.

        Reopened conversations must not replay old proposals.
        """
        now = now or self._clock()
        return now - self.proposed_at < self._max_age

    def should_auto_execute(self, now: Optional[datetime] = None) -> bool:
        """Check every auto-execution precondition without side effects."""
        return (
            self._auto_execute_enabled
            and not self.action.auto_executed
            and self.decision == GateDecision.auto_execute
            and self.is_recent(now)
        )

    async def auto_execute(self, now: Optional[datetime] = None) -> bool:
        """Run the action automatically, at most once.

        The marker is set before the repository call is issued, so a
        re-evaluation while the call is outstanding is a no-op.

        Returns:
            True if this call triggered execution.
        """
        if not self.should_auto_execute(now):
            return False
        if not self.action.mark_auto_executed():
            return False
        logger.info("Auto-executing action %s (%s)", self.action.id, self.action.type.value)
        await self._executor.execute(self.action)
        return True

    async def execute(self) -> Action:
        """Execute without confirmation; gated actions stay pending."""
        return await self._executor.execute(self.action)

    async def confirm(self) -> Action:
        """Execute after explicit user approval."""
        return await self._executor.execute(self.action, confirmed=True)

    async def cancel(self) -> bool:
        """Cancel the action if it has not reached a terminal status."""
        return await self._executor.cancel(self.action)

    async def preview(self) -> dict[str, Any]:
        """Describe the action's effect for the confirmation surface."""
        return await self._executor.preview(self.action)
