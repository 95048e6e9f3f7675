"""Observer pattern for action lifecycle events.

Provides the ActionEventObserver protocol and ActionEventEmitter class
for notifying interested components (document context, persistence,
logging) when an action changes status.
"""

import logging
from typing import Protocol

from src.orchestrator.models.action import Action

logger = logging.getLogger(__name__)


class ActionEventObserver(Protocol):
    """Observer protocol for action lifecycle events.

    Implementations subscribe via ActionEventEmitter. The action passed to
    each callback is the live instance from the conversation, already
    carrying its new status.
    """

    async def on_action_started(self, action: Action) -> None:
        """Called when an action moves to executing."""
        ...

    async def on_action_completed(self, action: Action) -> None:
        """Called when an action completes; ``action.result`` is set."""
        ...

    async def on_action_failed(self, action: Action) -> None:
        """Called when an action fails; ``action.error`` is set."""
        ...

    async def on_action_cancelled(self, action: Action) -> None:
        """Called when an action is cancelled."""
        ...


class ActionEventEmitter:
    """Emits action lifecycle events to registered observers.

    Exceptions from individual observers are caught and logged to prevent
    one broken observer from stopping event delivery to others.
    """

    def __init__(self) -> None:
        """Initialize emitter with empty observer list."""
        self._observers: list[ActionEventObserver] = []

    def add_observer(self, observer: ActionEventObserver) -> None:
        """Register an observer to receive action events.

        Args:
            observer: Observer implementing ActionEventObserver protocol.
        """
        self._observers.append(observer)

    def remove_observer(self, observer: ActionEventObserver) -> None:
        """Unregister an observer.

        Args:
            observer: Observer to remove from notification list.
        """
        self._observers.remove(observer)

    async def _emit(self, hook: str, action: Action) -> None:
        for observer in list(self._observers):
            try:
                await getattr(observer, hook)(action)
            except Exception as e:
                logger.error(
                    "Observer %s failed %s: %s",
                    type(observer).__name__,
                    hook,
                    e,
                )

    async def emit_action_started(self, action: Action) -> None:
        """Emit action started event to all observers."""
        await self._emit("on_action_started", action)

    async def emit_action_completed(self, action: Action) -> None:
        """Emit action completed event to all observers."""
        await self._emit("on_action_completed", action)

    async def emit_action_failed(self, action: Action) -> None:
        """Emit action failed event to all observers."""
        await self._emit("on_action_failed", action)

    async def emit_action_cancelled(self, action: Action) -> None:
        """Emit action cancelled event to all observers."""
        await self._emit("on_action_cancelled", action)
