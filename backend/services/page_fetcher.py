"""HTTP page fetcher that turns HTML pages into titled text blocks."""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx
from bs4 import BeautifulSoup, Tag

from config import FETCH_TIMEOUT_SECONDS, USER_AGENT
from models.content import RawBlock

logger = logging.getLogger(__name__)


@dataclass
class FetchError:
    """Structured error from page fetch operations."""
    code: str
    message: str
    details: Dict[str, Any]


class PageFetchError(Exception):
    """Custom exception for page fetch errors with structured error information."""

    def __init__(self, error: FetchError):
        self.error = error
        super().__init__(error.message)


HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
TEXT_TAGS = ("p", "li", "tr", "dd", "dt", "blockquote", "pre")
NOISE_TAGS = ("script", "style", "noscript", "nav", "footer", "header", "form", "iframe", "svg")


def _clean(text: str) -> str:
    return " ".join(text.split())


def _element_text(element: Tag) -> str:
    """Text of a text-bearing element; table rows become ``cell | cell``."""
    if element.name == "tr":
        cells = [_clean(cell.get_text(" ")) for cell in element.find_all(["th", "td"])]
        return " | ".join(cell for cell in cells if cell)
    return _clean(element.get_text(" "))


def parse_blocks(html: str, selectors: Sequence[str] = ()) -> List[RawBlock]:
    """
    Split an HTML page into heading-delimited text blocks.

    The first selector that matches anything defines the content roots; without
    a match the whole body is used. Each heading starts a new block whose text
    is the paragraphs, list items and table rows that follow it.

    Args:
        html: Page markup
        selectors: CSS selectors for the content area, tried in order

    Returns:
        List of RawBlock objects in document order
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(NOISE_TAGS):
        tag.decompose()

    page_title = _clean(soup.title.get_text()) if soup.title else ""

    roots: List[Tag] = []
    for selector in selectors:
        roots = soup.select(selector)
        if roots:
            break
    if not roots:
        roots = [soup.body or soup]

    blocks: List[RawBlock] = []
    for root in roots:
        title = page_title
        lines: List[str] = []

        for element in root.find_all(list(HEADING_TAGS + TEXT_TAGS)):
            if element.name in HEADING_TAGS:
                if lines:
                    blocks.append(RawBlock(title=title, text="\n".join(lines)))
                title = _clean(element.get_text(" ")) or page_title
                lines = []
                continue
            # Nested text elements are covered by their outer element
            if element.find_parent(list(TEXT_TAGS)) is not None:
                continue
            text = _element_text(element)
            if text:
                lines.append(text)

        if lines:
            blocks.append(RawBlock(title=title, text="\n".join(lines)))

    if not blocks:
        text = _clean(" ".join(root.get_text(" ") for root in roots))
        if text:
            blocks.append(RawBlock(title=page_title, text=text))

    return blocks


class PageFetcher:
    """Fetches pages over HTTP and parses them into RawBlock lists."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        user_agent: str = USER_AGENT,
    ):
        """
        Initialize the page fetcher.

        Args:
            client: Shared httpx.AsyncClient; one is created when omitted
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header sent with every request
        """
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
        )

    async def fetch(self, url: str, selectors: Sequence[str] = ()) -> List[RawBlock]:
        """
        Fetch a page and extract its text blocks.

        Args:
            url: Page URL
            selectors: CSS selectors for the content area

        Returns:
            List of RawBlock objects

        Raises:
            PageFetchError: Structured error with code, message, and details
        """
        logger.debug(f"Fetching page: {url}")
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise PageFetchError(FetchError(
                code="timeout",
                message=f"Timed out fetching {url}",
                details={"url": url, "error": str(e)},
            ))
        except httpx.HTTPStatusError as e:
            raise PageFetchError(FetchError(
                code="http_status",
                message=f"HTTP {e.response.status_code} fetching {url}",
                details={"url": url, "status_code": e.response.status_code},
            ))
        except httpx.HTTPError as e:
            raise PageFetchError(FetchError(
                code="transport",
                message=f"Transport error fetching {url}: {e}",
                details={"url": url, "error": str(e)},
            ))

        try:
            blocks = parse_blocks(response.text, selectors)
        except Exception as e:
            raise PageFetchError(FetchError(
                code="parse",
                message=f"Could not parse {url}: {e}",
                details={"url": url, "error": str(e)},
            ))

        logger.info(f"Fetched {url}: {len(blocks)} blocks")
        return blocks

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
