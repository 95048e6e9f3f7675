"""HTTP client for the assistant chat endpoint.

The endpoint receives the role/content history and returns the reply
as JSON (``{"content": "..."}`` or ``{"text": "..."}``). Any proposed
actions are embedded in the reply text and parsed by the session manager.
"""

import logging
from typing import Optional

import httpx

from src.orchestrator.models.conversation import Message, MessageStatus

logger = logging.getLogger(__name__)

DEFAULT_RESPONDER_TIMEOUT_SECONDS = 120.0


class AssistantResponderError(Exception):
    """The chat endpoint could not produce a reply."""


class HttpAssistantResponder:
    """AssistantResponder backed by an HTTP chat endpoint.

    Example:
        responder = HttpAssistantResponder("http://localhost:3000/api/claude")
        text = await responder.respond(conversation.id, conversation.messages)
    """

    def __init__(
        self,
        endpoint: str,
        system_prompt: Optional[str] = None,
        timeout: float = DEFAULT_RESPONDER_TIMEOUT_SECONDS,
    ) -> None:
        self._endpoint = endpoint
        self._system_prompt = system_prompt
        self._timeout = timeout

    def _build_body(self, history: list[Message]) -> dict:
        body: dict = {
            "messages": [
                {"role": m.role.value, "content": m.content}
                for m in history
                if m.status != MessageStatus.error and m.content
            ],
            "stream": False,
        }
        if self._system_prompt:
            body["system"] = self._system_prompt
        return body

    async def respond(self, conversation_id: str, history: list[Message]) -> str:
        """Request the assistant's reply.

        Raises:
            AssistantResponderError: On transport failure or a non-2xx reply.
        """
        logger.debug(
            "Requesting reply for %s (%d messages)", conversation_id, len(history)
        )
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._endpoint, json=self._build_body(history))
        except httpx.RequestError as e:
            raise AssistantResponderError(f"Chat endpoint unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("error")
            except ValueError:
                detail = None
            raise AssistantResponderError(
                detail or f"API request failed: {response.status_code}"
            )

        data = response.json()
        return data.get("content") or data.get("text") or ""
