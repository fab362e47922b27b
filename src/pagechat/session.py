from __future__ import annotations
import logging
from enum import Enum
from typing import Awaitable, Callable, Iterable
from uuid import uuid4

from .flow import answer_question_with_context
from .history import ConversationHistory
from .schemas import AnswerResult, ChatMessage, Notification, SessionSnapshot, is_http_url

logger = logging.getLogger(__name__)

EMPTY_ANSWER_REPLY = "Sorry, I couldn't generate a response for that. There might have been an issue."
MISSING_URL_ERROR = "Invalid or missing webpage URL for context."

AnswerFn = Callable[[dict, ConversationHistory], Awaitable[AnswerResult]]


class SessionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILURE = "failure"


class ChatSession:
    """
    Client-side state for one chat widget.

    Holds the visible message list, the input buffer and the loading/error
    flags, and owns the conversation history sent with each question. Only
    one submission runs at a time; ``is_loading`` doubles as the lock.
    """

    def __init__(
        self,
        url: str | None = None,
        page_url: str | None = None,
        initial_messages: Iterable[ChatMessage] | None = None,
        initial_input: str = "",
        history: ConversationHistory | None = None,
        answer_fn: AnswerFn | None = None,
        on_response: Callable[[AnswerResult], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        notify: Callable[[Notification], None] | None = None,
        session_id: str | None = None,
    ):
        self.id = session_id or uuid4().hex
        self.url = url
        self.page_url = page_url
        self.messages: list[ChatMessage] = list(initial_messages or [])
        self.input = initial_input
        self.is_loading = False
        self.error: Exception | None = None
        self.state = SessionState.IDLE
        self.history = history if history is not None else ConversationHistory()
        self.notifications: list[Notification] = []
        self._answer = answer_fn or answer_question_with_context
        self._on_response = on_response
        self._on_error = on_error
        self._notify_cb = notify

    def set_input(self, text: str) -> None:
        self.input = text

    def set_messages(self, messages: Iterable[ChatMessage]) -> None:
        self.messages = list(messages)

    def clear_history(self) -> None:
        self.history.clear()

    def resolve_url(self) -> str:
        return self.url or self.page_url or ""

    def _transition(self, state: SessionState) -> None:
        logger.debug(f"Session {self.id}: {self.state.value} -> {state.value}")
        self.state = state

    def _append(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def _notify(self, title: str, description: str) -> None:
        notification = Notification(title=title, description=description, variant="destructive")
        self.notifications.append(notification)
        logger.warning(f"{title}: {description}")
        if self._notify_cb:
            self._notify_cb(notification)

    def _fail(self, error: Exception) -> None:
        self.error = error
        if self._on_error:
            self._on_error(error)

    async def submit(self) -> bool:
        """Send the current input. Returns False when the submission was ignored."""
        if not self.input.strip() or self.is_loading:
            return False

        self._append("user", self.input)
        question = self.input
        self.input = ""
        self.is_loading = True
        self.error = None
        self._transition(SessionState.SUBMITTING)

        try:
            url = self.resolve_url()
            if not is_http_url(url):
                raise ValueError(MISSING_URL_ERROR)

            result = await self._answer({"url": url, "question": question}, self.history)

            if not getattr(result, "answer", None):
                logger.warning(f"Received null or empty answer from the AI: {result!r}")
                self._append("assistant", EMPTY_ANSWER_REPLY)
                self._fail(RuntimeError("AI returned an empty or invalid response."))
                self._notify("Response Error", "The AI returned an empty or invalid response.")
                self._transition(SessionState.FAILURE)
            else:
                self._append("assistant", result.answer)
                if self._on_response:
                    self._on_response(result)
                self._transition(SessionState.SUCCESS)
        except Exception as e:
            logger.error(f"Chat API Error: {e}")
            message = str(e) or "An unknown error occurred."
            self._fail(RuntimeError(message))
            self._notify("Error", f"Failed to get response: {message}")
            self._append("assistant", f"Sorry, I encountered an error: {message}")
            self._transition(SessionState.FAILURE)
        finally:
            self.is_loading = False
            self._transition(SessionState.IDLE)

        return True

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            state=self.state.value,
            messages=list(self.messages),
            input=self.input,
            is_loading=self.is_loading,
            error=str(self.error) if self.error else None,
            notifications=list(self.notifications),
        )
