from __future__ import annotations
import re
import logging

import httpx
from bs4 import BeautifulSoup

from .config import settings
from .outcome import Err, ErrorKind, Ok, Outcome

logger = logging.getLogger(__name__)

# Elements that never carry page content
NON_CONTENT_TAGS = ["script", "style", "nav", "footer", "header"]

_WHITESPACE = re.compile(r"\s+")


def no_content_message(url: str) -> str:
    return f"No meaningful content found at {url}"


def crawl_failure_message(url: str) -> str:
    return f"Failed to crawl content from {url}."


def extract_text(html: str) -> str:
    """Reduce an HTML document to a single line of visible body text."""
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(NON_CONTENT_TAGS):
        tag.decompose()

    root = soup.body or soup
    return _WHITESPACE.sub(" ", root.get_text()).strip()


async def crawl_webpage(url: str) -> Outcome:
    """
    Fetch ``url`` and return its text content.

    Never raises: a failed fetch or parse comes back as ``Err(FETCH)`` and an
    empty page as ``Ok`` carrying the no-content notice.
    """
    headers = {"User-Agent": settings.crawl_user_agent}
    try:
        async with httpx.AsyncClient(timeout=settings.crawl_timeout, follow_redirects=True) as client:
            r = await client.get(url, headers=headers)
            r.raise_for_status()
            text = extract_text(r.text)
    except Exception as e:
        logger.error(f"Error crawling {url}: {e}")
        return Err(ErrorKind.FETCH, crawl_failure_message(url))

    logger.info(f"Crawled {url}: {len(text)} characters")
    if not text:
        return Ok(no_content_message(url))
    return Ok(text)


async def fetch_page_text(url: str) -> str:
    """Same as ``crawl_webpage`` but with failures rendered in-band as text."""
    return (await crawl_webpage(url)).render()
