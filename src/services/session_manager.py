"""Conversation session manager.

Owns the active conversation and its message list, the recency-grouped
conversation history, and the per-action handles the host binds to. It
is the only component allowed to raise a conversation-wide error, and
only when the assistant produced no response at all.

The manager observes the action executor: whenever an action changes
status it re-persists the owning message and, if that conversation is
active, re-derives the document context so query results feed the
candidate pool.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Protocol

from src.errors import AssistantError, NotFoundError, format_error
from src.orchestrator.actions.executor import ActionExecutor
from src.orchestrator.actions.handle import (
    DEFAULT_MAX_AUTO_EXECUTE_AGE_SECONDS,
    ActionHandle,
)
from src.orchestrator.actions.parser import parse_actions
from src.orchestrator.context.navigation import NavigationMode, NavigationPlan, plan_navigation
from src.orchestrator.context.resolver import DocumentContextResolver
from src.orchestrator.models.action import Action
from src.orchestrator.models.conversation import (
    DEFAULT_CONVERSATION_TITLE,
    Conversation,
    Message,
    MessageRole,
    MessageStatus,
    utc_now,
)
from src.orchestrator.models.document import DocumentContext
from src.services.conversation_history import (
    DEFAULT_PAGE_SIZE,
    ConversationPage,
    ConversationPaginator,
    sort_by_recency,
)
from src.services.session_flags import (
    FLOATING_CHAT_OPEN,
    FLOATING_PENDING_CONVERSATION,
    SessionFlagStore,
)

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50


class AssistantResponder(Protocol):
    """The assistant model integration, reduced to one call."""

    async def respond(self, conversation_id: str, history: list[Message]) -> str:
        """Produce the assistant's reply text for a conversation.

        Args:
            conversation_id: ID of the conversation being answered.
            history: Messages so far, oldest first, ending with the user turn.

        Returns:
            Full reply text, possibly containing action blocks.
        """
        ...


class ConversationStore(Protocol):
    """Persistence operations the manager needs."""

    def create_conversation(self, conversation: Conversation) -> object:
        ...

    def save_message(self, conversation_id: str, message: Message) -> object:
        ...

    def delete_message(self, conversation_id: str, message_id: str) -> bool:
        ...

    def update_title(self, conversation_id: str, title: str) -> bool:
        ...

    def archive_conversation(self, conversation_id: str) -> bool:
        ...

    def restore_conversation(self, conversation_id: str) -> bool:
        ...


def derive_title(content: str) -> str:
    """Build a conversation title from the first user message."""
    text = " ".join(content.split())
    if not text:
        return DEFAULT_CONVERSATION_TITLE
    if len(text) <= TITLE_MAX_LENGTH:
        return text
    return text[: TITLE_MAX_LENGTH - 3].rstrip() + "..."


class ConversationSessionManager:
    """Owns conversations, the active message list and action handles.

    Example:
        manager = ConversationSessionManager(executor, resolver, responder)
        manager.create_conversation()
        reply = await manager.send_message("Find the about page")
        for handle in manager.handles_for(reply):
            print(handle.status)
    """

    def __init__(
        self,
        executor: ActionExecutor,
        resolver: DocumentContextResolver,
        responder: Optional[AssistantResponder] = None,
        store: Optional[ConversationStore] = None,
        flags: Optional[SessionFlagStore] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        auto_execute_enabled: bool = True,
        max_auto_execute_age_seconds: float = DEFAULT_MAX_AUTO_EXECUTE_AGE_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._executor = executor
        self._resolver = resolver
        self._responder = responder
        self._store = store
        self._flags = flags
        self._paginator = ConversationPaginator(page_size)
        self._auto_execute_enabled = auto_execute_enabled
        self._max_auto_execute_age = max_auto_execute_age_seconds
        self._clock = clock

        self._conversations: dict[str, Conversation] = {}
        self._active_id: Optional[str] = None
        self._handles: dict[str, ActionHandle] = {}
        self._error: Optional[str] = None
        self._loading: set[str] = set()

        executor.events.add_observer(self)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def executor(self) -> ActionExecutor:
        return self._executor

    @property
    def resolver(self) -> DocumentContextResolver:
        return self._resolver

    @property
    def store(self) -> Optional[ConversationStore]:
        return self._store

    @property
    def flags(self) -> Optional[SessionFlagStore]:
        return self._flags

    @property
    def active_conversation(self) -> Optional[Conversation]:
        if self._active_id is None:
            return None
        return self._conversations.get(self._active_id)

    @property
    def messages(self) -> list[Message]:
        """The active conversation's message list (the owned list, not a copy)."""
        conversation = self.active_conversation
        return conversation.messages if conversation else []

    @property
    def conversations(self) -> list[Conversation]:
        """Active (non-archived) conversations, most recent first."""
        return sort_by_recency(c for c in self._conversations.values() if not c.archived)

    @property
    def archived_conversations(self) -> list[Conversation]:
        return sort_by_recency(c for c in self._conversations.values() if c.archived)

    @property
    def error(self) -> Optional[str]:
        """Conversation-wide error banner, if any."""
        return self._error

    @property
    def is_loading(self) -> bool:
        """Whether the active conversation is waiting on an assistant reply."""
        return self._active_id in self._loading

    def is_conversation_loading(self, conversation_id: str) -> bool:
        return conversation_id in self._loading

    @property
    def documents(self) -> list[DocumentContext]:
        return self._resolver.documents

    def clear_error(self) -> None:
        self._error = None

    def get_conversation(self, conversation_id: str) -> Conversation:
        """Look up a loaded conversation.

        Raises:
            NotFoundError: If no such conversation is loaded.
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        return conversation

    # ------------------------------------------------------------------
    # Conversation list
    # ------------------------------------------------------------------

    def load_conversations(self, conversations: Iterable[Conversation]) -> None:
        """Replace the loaded conversations, e.g. from persistence at startup."""
        self._conversations = {c.id: c for c in conversations}
        self._handles.clear()
        self._paginator.reset()
        if self._active_id not in self._conversations:
            self._activate(None)

    def page(self, now: Optional[datetime] = None) -> ConversationPage:
        """Grouped view of the currently revealed conversations."""
        return self._paginator.page(self.conversations, now or self._clock())

    def load_more(self, now: Optional[datetime] = None) -> ConversationPage:
        """Reveal another page of conversations."""
        self._paginator.load_more()
        return self.page(now)

    def create_conversation(self, title: Optional[str] = None) -> Conversation:
        """Create a conversation and make it active."""
        now = self._clock()
        conversation = Conversation(
            title=title or DEFAULT_CONVERSATION_TITLE,
            created_at=now,
            updated_at=now,
        )
        self._conversations[conversation.id] = conversation
        self._persist("create conversation", lambda s: s.create_conversation(conversation))
        logger.info("Created conversation %s", conversation.id)
        self._activate(conversation.id)
        return conversation

    def select_conversation(self, conversation_id: Optional[str]) -> Optional[Conversation]:
        """Switch the active conversation.

        Switching clears any manual document selection and invalidates
        enrichment still in flight for the previous conversation.
        Re-selecting the active conversation is a no-op.

        Raises:
            NotFoundError: If the conversation is not loaded.
        """
        if conversation_id is not None:
            self.get_conversation(conversation_id)
        if conversation_id == self._active_id:
            return self.active_conversation
        self._activate(conversation_id)
        return self.active_conversation

    async def open_conversation(self, conversation_id: str) -> Conversation:
        """Select a conversation and pre-populate its document context.

        Raises:
            NotFoundError: If the conversation is not loaded.
        """
        conversation = self.select_conversation(conversation_id)
        await self._resolver.prepopulate()
        return conversation

    def delete_conversation(self, conversation_id: str) -> None:
        """Archive a conversation; if it was active, select the next most recent.

        Raises:
            NotFoundError: If the conversation is not loaded.
        """
        conversation = self.get_conversation(conversation_id)
        conversation.archived = True
        self._persist("archive conversation", lambda s: s.archive_conversation(conversation_id))
        logger.info("Archived conversation %s", conversation_id)
        if conversation_id == self._active_id:
            remaining = self.conversations
            self._activate(remaining[0].id if remaining else None)

    def restore_conversation(self, conversation_id: str) -> Conversation:
        """Bring an archived conversation back into the list.

        Raises:
            NotFoundError: If the conversation is not loaded.
        """
        conversation = self.get_conversation(conversation_id)
        conversation.archived = False
        self._persist("restore conversation", lambda s: s.restore_conversation(conversation_id))
        return conversation

    def rename_conversation(self, conversation_id: str, title: str) -> Conversation:
        """Set a conversation's title.

        Raises:
            NotFoundError: If the conversation is not loaded.
        """
        conversation = self.get_conversation(conversation_id)
        conversation.title = title.strip() or DEFAULT_CONVERSATION_TITLE
        conversation.touch(self._clock())
        self._persist(
            "rename conversation",
            lambda s: s.update_title(conversation_id, conversation.title),
        )
        return conversation

    def _activate(self, conversation_id: Optional[str]) -> None:
        previous = self._active_id
        self._active_id = conversation_id
        self._error = None
        self._resolver.switch_conversation(conversation_id)
        if conversation_id is not None:
            self._resolver.refresh(self.messages)
        logger.info("Active conversation: %s -> %s", previous, conversation_id)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def add_message(self, message: Message, conversation: Optional[Conversation] = None) -> Message:
        """Append a message to a conversation (the active one by default).

        Raises:
            AssistantError: E-4004 if there is no conversation to append to.
        """
        conversation = conversation or self.active_conversation
        if conversation is None:
            raise AssistantError.from_code("E-4004")
        conversation.messages.append(message)
        conversation.touch(self._clock())
        self._save_message(conversation, message)
        self._refresh_if_active(conversation)
        return message

    async def send_message(self, content: str) -> Message:
        """Send a user turn and record the assistant's reply.

        A conversation is created if none is active. Actions proposed in
        the reply are parsed, and the eligible ones auto-execute while the
        conversation is still active. If the assistant call fails, the
        reply is marked ``error`` and the error banner is set.

        Returns:
            The assistant message.

        Raises:
            AssistantError: E-4002 if no responder is configured.
        """
        if self._responder is None:
            raise AssistantError.from_code("E-4002", reason="no assistant is configured")

        conversation = self.active_conversation or self.create_conversation()
        is_first_turn = not any(m.role == MessageRole.user for m in conversation.messages)

        self.add_message(Message(role=MessageRole.user, content=content, timestamp=self._clock()), conversation)
        if is_first_turn and conversation.title == DEFAULT_CONVERSATION_TITLE:
            self.rename_conversation(conversation.id, derive_title(content))

        history = list(conversation.messages)
        reply = Message(
            role=MessageRole.assistant,
            status=MessageStatus.streaming,
            timestamp=self._clock(),
        )
        self.add_message(reply, conversation)
        self._error = None
        self._loading.add(conversation.id)
        try:
            text = await self._responder.respond(conversation.id, history)
        except Exception as e:
            error = AssistantError.from_code("E-4002", reason=str(e) or type(e).__name__)
            logger.warning("Assistant call failed for %s: %s", conversation.id, e)
            reply.status = MessageStatus.error
            reply.content = error.message
            self._save_message(conversation, reply)
            if conversation.id == self._active_id:
                self._error = format_error(error)
            return reply
        finally:
            self._loading.discard(conversation.id)

        reply.content = text
        reply.actions = parse_actions(text)
        reply.status = MessageStatus.complete
        conversation.touch(self._clock())
        self._save_message(conversation, reply)
        self._refresh_if_active(conversation)

        if conversation.id == self._active_id:
            await self.auto_execute(reply)
        return reply

    async def retry_last_message(self) -> Message:
        """Re-issue the last user turn, replacing everything after it.

        Stale actions are never resubmitted; the assistant proposes fresh ones.

        Raises:
            AssistantError: E-4004 with no active conversation, E-4003 when
                there is no user message to retry.
        """
        conversation = self.active_conversation
        if conversation is None:
            raise AssistantError.from_code("E-4004")

        last_user_index = None
        for index in range(len(conversation.messages) - 1, -1, -1):
            if conversation.messages[index].role == MessageRole.user:
                last_user_index = index
                break
        if last_user_index is None:
            raise AssistantError.from_code("E-4003")

        content = conversation.messages[last_user_index].content
        removed = conversation.messages[last_user_index:]
        del conversation.messages[last_user_index:]
        for message in removed:
            for action in message.actions:
                self._handles.pop(action.id, None)
            self._persist(
                "delete message",
                lambda s, mid=message.id: s.delete_message(conversation.id, mid),
            )
        logger.info("Retrying last message in %s", conversation.id)
        self._refresh_if_active(conversation)
        return await self.send_message(content)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _locate_action(self, action_id: str) -> Optional[tuple[Conversation, Message, Action]]:
        for conversation in self._conversations.values():
            for message in conversation.messages:
                for action in message.actions:
                    if action.id == action_id:
                        return conversation, message, action
        return None

    def action_handle(self, action_id: str) -> ActionHandle:
        """Return the (cached) handle for an action in any loaded conversation.

        Raises:
            AssistantError: E-1004 if the action does not exist.
        """
        handle = self._handles.get(action_id)
        if handle is not None:
            return handle
        located = self._locate_action(action_id)
        if located is None:
            raise AssistantError.from_code("E-1004", action_id=action_id)
        _, message, action = located
        handle = ActionHandle(
            action,
            self._executor,
            proposed_at=message.timestamp,
            auto_execute_enabled=self._auto_execute_enabled,
            max_auto_execute_age_seconds=self._max_auto_execute_age,
            clock=self._clock,
        )
        self._handles[action_id] = handle
        return handle

    def handles_for(self, message: Message) -> list[ActionHandle]:
        return [self.action_handle(action.id) for action in message.actions]

    async def auto_execute(self, message: Message) -> list[ActionHandle]:
        """Auto-execute every eligible action of a message, in order.

        Returns:
            Handles whose execution this call triggered.
        """
        triggered = []
        for handle in self.handles_for(message):
            if await handle.auto_execute():
                triggered.append(handle)
        return triggered

    async def _on_action_changed(self, action: Action) -> None:
        located = self._locate_action(action.id)
        if located is None:
            return
        conversation, message, _ = located
        self._save_message(conversation, message)
        self._refresh_if_active(conversation)

    async def on_action_started(self, action: Action) -> None:
        await self._on_action_changed(action)

    async def on_action_completed(self, action: Action) -> None:
        await self._on_action_changed(action)

    async def on_action_failed(self, action: Action) -> None:
        await self._on_action_changed(action)

    async def on_action_cancelled(self, action: Action) -> None:
        await self._on_action_changed(action)

    # ------------------------------------------------------------------
    # Document context
    # ------------------------------------------------------------------

    def _refresh_if_active(self, conversation: Conversation) -> None:
        if conversation.id == self._active_id:
            self._resolver.refresh(conversation.messages)

    def set_manual_selection(self, documents: Iterable[DocumentContext]) -> list[DocumentContext]:
        self._resolver.set_manual_selection(documents)
        return self._resolver.documents

    def remove_document(self, document_id: str) -> bool:
        return self._resolver.remove_document(document_id)

    async def enrich_context(self) -> list[DocumentContext]:
        await self._resolver.enrich()
        return self._resolver.documents

    async def continue_in(
        self,
        mode: NavigationMode,
        document_id: Optional[str] = None,
    ) -> NavigationPlan:
        """Plan navigation to another editing surface.

        With several documents in context and no explicit choice, the plan
        carries the candidates for the user to pick from. Otherwise the
        target's slug is fetched if the surface needs it, and the floating
        assistant is told to resume this conversation. If the active
        conversation changes during the slug fetch, the plan carries no URL
        and no flags are written.

        Args:
            mode: Target editing surface.
            document_id: Explicit choice among the candidates.

        Raises:
            NotFoundError: If ``document_id`` is not in the current context.
        """
        mode = NavigationMode(mode)
        contexts = self._resolver.documents
        if document_id is not None:
            chosen = self._resolver.find(document_id)
            if chosen is None:
                raise NotFoundError("Document context", document_id)
            contexts = [chosen]

        conversation_id = self._active_id
        if len(contexts) == 1 and mode == NavigationMode.presentation:
            await self._resolver.enrich_document(contexts[0].document_id)
            if self._active_id != conversation_id:
                logger.info(
                    "Conversation switched from %s during navigation; dropping plan",
                    conversation_id,
                )
                return NavigationPlan(mode=mode)
            refreshed = self._resolver.find(contexts[0].document_id)
            contexts = [refreshed] if refreshed else contexts

        plan = plan_navigation(mode, contexts, self._resolver.slug_required_types)
        if plan.url is not None:
            self._record_resume_flags(conversation_id)
        return plan

    def _record_resume_flags(self, conversation_id: Optional[str]) -> None:
        if self._flags is None or conversation_id is None:
            return
        try:
            self._flags.set(FLOATING_PENDING_CONVERSATION, conversation_id)
            self._flags.set(FLOATING_CHAT_OPEN, True)
        except Exception as e:
            logger.warning("Could not record floating assistant flags: %s", e)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save_message(self, conversation: Conversation, message: Message) -> None:
        self._persist("save message", lambda s: s.save_message(conversation.id, message))

    def _persist(self, what: str, operation: Callable[[ConversationStore], object]) -> None:
        """Run a store write; failures are logged and never interrupt the session."""
        if self._store is None:
            return
        try:
            operation(self._store)
        except Exception as e:
            logger.warning("Failed to %s: %s", what, e)
