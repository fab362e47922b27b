from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Union

from .history import ConversationHistory
from .llm import LLM, get_llm
from .outcome import Err, ErrorKind
from .prompts import build_context_prompt

logger = logging.getLogger(__name__)

# Naive prompt-injection heuristic, matched as lowercase substrings
BYPASS_KEYWORDS = ("forget", "ignore", "outside", "bypass", "no context")

EMPTY_PROMPT_ERROR = "Error: Invalid or empty prompt."
NO_CONTEXT_ERROR = "Error: No context provided (website content required)."
BYPASS_ERROR = (
    "Error: Prompt attempts to bypass context. "
    "Only questions related to the provided website are allowed."
)


def check_request(prompt: str, context: str) -> Err | None:
    """Return the rejection for a prompt/context pair, or None if it may be sent."""
    if not isinstance(prompt, str) or not prompt.strip():
        return Err(ErrorKind.GUARD, EMPTY_PROMPT_ERROR)
    if not isinstance(context, str) or not context.strip():
        return Err(ErrorKind.GUARD, NO_CONTEXT_ERROR)
    prompt_lower = prompt.lower()
    if any(keyword in prompt_lower for keyword in BYPASS_KEYWORDS):
        return Err(ErrorKind.GUARD, BYPASS_ERROR)
    return None


@dataclass(frozen=True)
class StreamChunk:
    text: str


@dataclass(frozen=True)
class StreamDone:
    response: str


@dataclass(frozen=True)
class StreamFailed:
    error: Err


StreamEvent = Union[StreamChunk, StreamDone, StreamFailed]


class ContextChatClient:
    """
    Answers prompts from a given context, with the session's prior turns attached.

    ``events`` is the primitive: zero or more ``StreamChunk`` followed by exactly
    one terminal ``StreamDone`` or ``StreamFailed``. ``stream`` flattens that into
    plain text (a failure becomes one error chunk) and ``generate`` joins it.
    """

    def __init__(self, llm: LLM | None = None):
        self.llm = llm or get_llm()

    async def events(
        self, prompt: str, context: str, history: ConversationHistory | None = None
    ) -> AsyncIterator[StreamEvent]:
        history = history if history is not None else ConversationHistory()

        rejection = check_request(prompt, context)
        if rejection:
            logger.warning(f"Rejected prompt: {rejection.message}")
            yield StreamFailed(rejection)
            return

        combined_prompt = build_context_prompt(context, history.turns, prompt)

        response = ""
        try:
            async for part in self.llm.stream(combined_prompt):
                if part:
                    response += part
                    yield StreamChunk(part)
        except Exception as e:
            logger.error(f"{self.llm.name} streaming error: {e}", exc_info=True)
            yield StreamFailed(Err(ErrorKind.PROVIDER, f"Error: Failed to stream content from {self.llm.name}."))
            return

        history.record(prompt, response)
        yield StreamDone(response)

    async def stream(
        self, prompt: str, context: str, history: ConversationHistory | None = None
    ) -> AsyncIterator[str]:
        async for event in self.events(prompt, context, history):
            if isinstance(event, StreamChunk):
                yield event.text
            elif isinstance(event, StreamFailed):
                yield event.error.message

    async def generate(self, prompt: str, context: str, history: ConversationHistory | None = None) -> str:
        full = ""
        async for chunk in self.stream(prompt, context, history):
            full += chunk
        return full
