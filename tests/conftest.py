"""
Shared fakes for the page-chat tests.

No test touches the network: page fetches and model calls are replaced
with the in-memory stand-ins below.
"""

import asyncio
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pagechat.client import ContextChatClient
from pagechat.flow import AnswerService
from pagechat.llm import LLM
from pagechat.outcome import Ok


class FakeLLM(LLM):
    """Streams canned chunks, optionally failing after them."""

    name = "Fake"

    def __init__(self, chunks=("Hello", " world"), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.prompts = []

    async def stream(self, prompt):
        self.prompts.append(prompt)
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


class FakeCrawler:
    """Returns a fixed outcome and remembers every URL it was asked for."""

    def __init__(self, outcome=None, error=None):
        self.outcome = outcome or Ok("Example Domain illustrative page")
        self.error = error
        self.urls = []

    async def __call__(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.outcome


def run(coro):
    return asyncio.run(coro)


async def _collect(agen):
    return [item async for item in agen]


def collect(agen):
    """Drain an async iterator into a list."""
    return asyncio.run(_collect(agen))


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_crawler():
    return FakeCrawler()


@pytest.fixture
def service(fake_llm, fake_crawler):
    return AnswerService(client=ContextChatClient(fake_llm), crawler=fake_crawler)
