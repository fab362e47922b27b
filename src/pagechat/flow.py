from __future__ import annotations
import logging
from typing import Any, AsyncIterator, Awaitable, Callable

from pydantic import ValidationError

from .client import ContextChatClient
from .crawler import crawl_webpage
from .history import ConversationHistory
from .outcome import Err, ErrorKind, Outcome
from .prompts import build_prompt
from .schemas import AnswerRequest, AnswerResult

logger = logging.getLogger(__name__)

# Passed to the client as its "context"; the real page text travels inside the prompt.
# The client's empty-context check therefore never sees the page itself.
PAGE_CONTEXT_LABEL = "the page content"

Crawler = Callable[[str], Awaitable[Outcome]]


def format_validation_error(e: ValidationError) -> str:
    issues = ", ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in e.errors()
    )
    return f"Error: Invalid input. {issues}"


def unexpected_error(e: Exception) -> Err:
    return Err(ErrorKind.UNEXPECTED, f"Error: {e}" if str(e) else "Unknown error occurred.")


class AnswerService:
    """Validate a question, pull the page text, and ask the model. Never raises."""

    def __init__(self, client: ContextChatClient | None = None, crawler: Crawler | None = None):
        self.client = client or ContextChatClient()
        self.crawler = crawler or crawl_webpage

    def validate(self, payload: Any) -> AnswerRequest | Err:
        if isinstance(payload, AnswerRequest):
            return payload
        try:
            return AnswerRequest.model_validate(payload)
        except ValidationError as e:
            message = format_validation_error(e)
            logger.info(f"Rejected input: {message}")
            return Err(ErrorKind.VALIDATION, message)

    async def _summarize(self, url: str) -> Outcome:
        try:
            return await self.crawler(url)
        except Exception as e:
            return Err(ErrorKind.FETCH, f"Error: Could not retrieve content from {url}. {e}")

    async def build_prompt_for(self, request: AnswerRequest) -> str:
        page = await self._summarize(request.url)
        if not page.ok:
            logger.warning(f"Falling back to general knowledge for {request.url}")
        return build_prompt(request.url, request.question, page)

    async def answer(self, payload: Any, history: ConversationHistory | None = None) -> AnswerResult:
        request = self.validate(payload)
        if isinstance(request, Err):
            return AnswerResult(answer=request.message)

        try:
            logger.info(f"Processing question for {request.url}: '{request.question}'")
            prompt = await self.build_prompt_for(request)
            answer = await self.client.generate(prompt, PAGE_CONTEXT_LABEL, history)
            return AnswerResult(answer=answer)
        except Exception as e:
            logger.error(f"Exception in answer(): {e}", exc_info=True)
            return AnswerResult(answer=unexpected_error(e).message)

    async def stream(self, payload: Any, history: ConversationHistory | None = None) -> AsyncIterator[str]:
        request = self.validate(payload)
        if isinstance(request, Err):
            yield request.message
            return

        try:
            prompt = await self.build_prompt_for(request)
            async for chunk in self.client.stream(prompt, PAGE_CONTEXT_LABEL, history):
                yield chunk
        except Exception as e:
            logger.error(f"Exception in stream(): {e}", exc_info=True)
            yield unexpected_error(e).message


answer_service: AnswerService | None = None


def get_answer_service() -> AnswerService:
    global answer_service
    if answer_service is None:
        answer_service = AnswerService()
    return answer_service


async def answer_question_with_context(
    payload: Any, history: ConversationHistory | None = None
) -> AnswerResult:
    return await get_answer_service().answer(payload, history)


async def stream_answer(payload: Any, history: ConversationHistory | None = None) -> AsyncIterator[str]:
    async for chunk in get_answer_service().stream(payload, history):
        yield chunk
