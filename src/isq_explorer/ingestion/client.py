"""
Client Module - HTTP document fetcher with rate limiting and retries.
=====================================================================

Fetches ISQ pages and wraps them as queryable documents:
- GET requests for schedule and profile pages
- POST form submissions for the department schedule search
- Thread-safe rate limiting, shared by all worker threads
- Automatic retries with exponential backoff

Network failures are returned as the error case of a Try instead of being
raised, so a single bad request never escapes a worker thread.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import requests
from bs4 import BeautifulSoup, Tag
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from isq_explorer.shared.config import ScrapingConfig, get_settings
from isq_explorer.shared.errors import HtmlElementError, HtmlPageError
from isq_explorer.shared.logging import get_logger
from isq_explorer.shared.outcome import Try
from isq_explorer.shared.utils import is_blank

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Documents
# ─────────────────────────────────────────────────────────────────────────────


class HtmlDocument:
    """
    A parsed HTML page that remembers where it came from.

    Example:
        >>> doc = HtmlDocument("https://example.com", "<select id='x'></select>")
        >>> doc.query("#x").is_ok()
        True
    """

    def __init__(self, url: str, html: str):
        self.url = url
        self.html = html
        self.soup = BeautifulSoup(html, "lxml")

    def query(self, selector: str) -> Try[Tag]:
        """Select the first element matching a CSS selector."""
        element = self.soup.select_one(selector)
        if element is None:
            return Try.err(HtmlPageError(self.url, f"No element matches selector '{selector}'"))
        return Try.ok(element)

    def query_all(self, selector: str) -> list[Tag]:
        """Select every element matching a CSS selector."""
        return self.soup.select(selector)

    @property
    def text(self) -> str:
        return self.soup.get_text(" ", strip=True)

    def __repr__(self) -> str:
        return f"HtmlDocument(url={self.url!r})"


def option_elements(select: Tag) -> list[Tag]:
    """Return the <option> children of a <select> element."""
    if select.name != "select":
        raise HtmlElementError(select, "Expected a <select> element")
    return select.find_all("option")


def child_elements(element: Tag) -> list[Tag]:
    """Direct child elements of a tag, ignoring text nodes."""
    return [c for c in element.children if isinstance(c, Tag)]


def expect_anchor(cell: Tag) -> Try[Tag]:
    """
    Get the single <a> element inside a table cell.

    Returns:
        Try holding the anchor, or an HtmlElementError for the cell
    """
    children = child_elements(cell)
    if len(children) == 1 and children[0].name == "a":
        return Try.ok(children[0])
    return Try.err(HtmlElementError(cell, "The given cell was not an <a> element"))


def cell_is_blank(cell: Tag) -> bool:
    return is_blank(cell.get_text())


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class ClientStats:
    """Request statistics for one client."""

    total_requests: int = 0
    successful: int = 0
    failed: int = 0
    total_bytes: int = 0
    start_time: datetime = field(default_factory=datetime.now)

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 1.0
        return self.successful / self.total_requests


class HtmlClient:
    """
    HTTP client returning HtmlDocuments.

    Safe to share between worker threads. Only ``requests`` failures are
    captured into the returned Try; programming errors still propagate.

    Example:
        >>> with HtmlClient() as client:
        ...     page = client.fetch("https://example.com")
        ...     if page.is_ok():
        ...         print(page.unwrap().query_all("table"))
    """

    def __init__(
        self,
        config: Optional[ScrapingConfig] = None,
        session: Optional[requests.Session] = None,
        rate_limit: Optional[float] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Scraping configuration (defaults to settings)
            session: Pre-built requests session (mainly for tests)
            rate_limit: Minimum seconds between requests
            timeout: Request timeout in seconds
            max_retries: Maximum attempts per request
        """
        config = config or get_settings().scraping

        self.rate_limit = rate_limit if rate_limit is not None else config.rate_limit
        self.timeout = timeout if timeout is not None else config.timeout
        self.max_retries = max_retries if max_retries is not None else config.max_retries
        self.user_agent = config.user_agent
        self.retry_min_wait = config.retry_min_wait
        self.retry_max_wait = config.retry_max_wait

        self._session = session
        self._rate_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._last_request_time: Optional[float] = None
        self.stats = ClientStats()

        logger.debug(
            f"HtmlClient initialized: rate_limit={self.rate_limit}s, "
            f"timeout={self.timeout}s, retries={self.max_retries}"
        )

    @property
    def session(self) -> requests.Session:
        """Get or create the requests session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(
                {
                    "User-Agent": self.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-US,en;q=0.5",
                }
            )
        return self._session

    def _wait_for_rate_limit(self) -> None:
        """Space requests at least rate_limit seconds apart across threads."""
        if self.rate_limit <= 0:
            return
        with self._rate_lock:
            if self._last_request_time is not None:
                elapsed = time.monotonic() - self._last_request_time
                if elapsed < self.rate_limit:
                    time.sleep(self.rate_limit - elapsed)
            self._last_request_time = time.monotonic()

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Make an HTTP request with retries."""

        @retry(
            retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(min=self.retry_min_wait, max=self.retry_max_wait),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                f"Retry {retry_state.attempt_number}/{self.max_retries} for {method} {url}"
            ),
        )
        def _request_with_retry() -> requests.Response:
            self._wait_for_rate_limit()
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response

        return _request_with_retry()

    def _document(self, method: str, url: str, **kwargs: Any) -> Try[HtmlDocument]:
        with self._stats_lock:
            self.stats.total_requests += 1

        result = Try.of(self._request, method, url, catch=requests.RequestException, **kwargs)

        with self._stats_lock:
            if result.is_err():
                self.stats.failed += 1
            else:
                self.stats.successful += 1
                self.stats.total_bytes += len(result.unwrap().content)

        if result.is_err():
            logger.error(f"Failed to {method} {url}: {result.unwrap_err()}")
            return Try.err(HtmlPageError(url, f"Request failed: {result.unwrap_err()}"))

        return Try.ok(HtmlDocument(url, result.unwrap().text))

    def fetch(self, url: str) -> Try[HtmlDocument]:
        """GET a page."""
        logger.debug(f"GET {url}")
        return self._document("GET", url)

    def submit_form(self, url: str, fields: dict[str, str]) -> Try[HtmlDocument]:
        """POST form fields to a page."""
        logger.debug(f"POST {url} {fields}")
        return self._document("POST", url, data=fields)

    def close(self) -> None:
        """Close the underlying session."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "HtmlClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self.close()
