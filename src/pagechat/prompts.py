from __future__ import annotations
from typing import Iterable

from .config import settings
from .crawler import crawl_failure_message
from .history import ConversationTurn
from .outcome import Err, ErrorKind, Ok, Outcome

ELLIPSIS = "..."

CONTEXT_ONLY_INSTRUCTIONS = (
    "You are a chatbot restricted to answering questions based solely on the following context "
    "from a website. Do not use external knowledge or answer questions unrelated to the context. "
    'If the question is irrelevant, respond with: "This question is outside the provided context." '
    "Consider the conversation history to maintain coherence."
)


def truncate_content(text: str, limit: int | None = None) -> str:
    limit = settings.max_content_chars if limit is None else limit
    return text[:limit] + ELLIPSIS if len(text) > limit else text


def classify_page_text(url: str, text: str) -> Outcome:
    """Tag a plain-text extraction result as page content or crawl failure."""
    if text == crawl_failure_message(url) or text.startswith("Error:"):
        return Err(ErrorKind.FETCH, text)
    return Ok(text)


def build_prompt(url: str, question: str, extracted: Outcome | str) -> str:
    if isinstance(extracted, str):
        extracted = classify_page_text(url, extracted)

    if not extracted.ok:
        return f"""The webpage at {url} could not be retrieved: {extracted.render()}

Please answer the following question using general knowledge:

Q: {question}"""

    summary = truncate_content(extracted.text)
    return f"""You are an assistant helping users with questions about this webpage: {url}

Webpage Content:
{summary}

Now answer the user's question clearly and concisely.

Q: {question}"""


def render_history(turns: Iterable[ConversationTurn]) -> str:
    return "\n\n".join(f"User: {t.prompt}\nAssistant: {t.response}" for t in turns)


def build_context_prompt(context: str, turns: Iterable[ConversationTurn], question: str) -> str:
    """Instruction sent to the model: context, prior turns, then the new question."""
    return f"""{CONTEXT_ONLY_INSTRUCTIONS}

Context: {context}

Conversation History:
{render_history(turns)}

User Question: {question}

Answer based only on the provided context and history."""
