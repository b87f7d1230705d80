"""Browsing sessions: the page-loading collaborator of the traversal.

``BrowsingSession`` is the interface the traversal and extractor rely on:
navigate, wait until settled, locate elements by CSS selector and read their
text. Every operation that may block checks the session's deadline, which the
orchestrator arms with the per-category timeout.

``HttpSession`` implements it with requests and BeautifulSoup.
"""

import random
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional
from urllib.parse import urlsplit, urlunsplit

import requests  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from bs4.element import Tag

from partcrawl.config import (
    DELAY_MAX,
    DELAY_MIN,
    HEADERS,
    MAX_RETRIES,
    MAX_RETRY_BACKOFF,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF_BASE,
    RETRY_STATUS_CODES,
)
from partcrawl.errors import CategoryTimeout, NavigationError, NavigationTimeout
from partcrawl.logging_config import get_logger

__all__ = [
    "BrowsingSession",
    "HttpSession",
    "to_request_url",
]

logger = get_logger("browser")


class BrowsingSession(ABC):
    """A single-owner page context. Not safe for concurrent use."""

    def __init__(self) -> None:
        self._deadline: Optional[float] = None
        self._timeout: Optional[float] = None

    # -- deadline -------------------------------------------------------------

    def arm_deadline(self, timeout: float) -> None:
        """Bound the total time of the following operations to ``timeout`` seconds."""
        self._timeout = timeout
        self._deadline = time.monotonic() + timeout

    def disarm_deadline(self) -> None:
        self._deadline = None
        self._timeout = None

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when not armed."""
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def check_deadline(self) -> None:
        """Raise CategoryTimeout once the armed deadline has passed."""
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise CategoryTimeout(self._timeout or 0.0)

    # -- page operations ------------------------------------------------------

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Load ``url`` as the current page."""

    @abstractmethod
    def wait_settled(self) -> None:
        """Block until the current page has finished loading."""

    @abstractmethod
    def wait_for(self, descriptor: str, timeout: float) -> Any:
        """Return the first element matching ``descriptor``.

        Raises:
            NavigationTimeout: No match appeared within ``timeout`` seconds.
        """

    @abstractmethod
    def find_all(self, descriptor: str, within: Any = None) -> List[Any]:
        """All elements matching ``descriptor`` on the page or inside ``within``."""

    @abstractmethod
    def find(self, descriptor: str, within: Any = None) -> Optional[Any]:
        """First element matching ``descriptor``, or None."""

    @abstractmethod
    def read_text(self, handle: Any, exclude: Optional[str] = None) -> str:
        """Rendered text of an element, leaving out descendants matching ``exclude``."""

    def close(self) -> None:
        """Release the session's resources."""


def to_request_url(url: str) -> str:
    """Move a listing filter fragment into the query string.

    Fragments are never sent to the server, so "#k=33&page=2" becomes
    "?k=33&page=2" for server-rendered listings.
    """
    parts = urlsplit(url)
    if not parts.fragment:
        return url
    query = "&".join(p for p in (parts.query, parts.fragment) if p)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


class HttpSession(BrowsingSession):
    """Browsing session backed by a requests Session and BeautifulSoup.

    Args:
        cookies: Cookie jar shared with other sessions of the same crawl
        delay_min: Minimum polite delay after each page load (seconds)
        delay_max: Maximum polite delay after each page load (seconds)
    """

    def __init__(
        self,
        cookies: Optional[requests.cookies.RequestsCookieJar] = None,
        delay_min: float = DELAY_MIN,
        delay_max: float = DELAY_MAX,
    ) -> None:
        super().__init__()
        self.delay_min = delay_min
        self.delay_max = delay_max
        self._http = requests.Session()
        self._http.headers.update(HEADERS)
        self._http.headers.setdefault("Accept-Encoding", "gzip, deflate")
        if cookies is not None:
            self._http.cookies = cookies
        self._soup: Optional[BeautifulSoup] = None
        self.current_url: Optional[str] = None

    def navigate(self, url: str) -> None:
        self.check_deadline()
        logger.debug(f"Navigating to {url}")
        html = self.fetch(url)
        self._soup = BeautifulSoup(html, "html.parser")
        self.current_url = url

    def fetch(self, url: str) -> str:
        """GET a page with exponential backoff retry and a polite delay.

        Raises:
            NavigationTimeout: The request kept timing out
            NavigationError: Any other transport or HTTP failure
        """
        request_url = to_request_url(url)
        last_exception: Optional[Exception] = None

        for attempt in range(MAX_RETRIES + 1):
            self.check_deadline()
            try:
                resp = self._http.get(request_url, timeout=self._request_timeout())

                if resp.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    self._backoff(attempt, f"Received {resp.status_code}")
                    continue

                resp.raise_for_status()
                self._polite_delay()
                return str(resp.text)

            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else "unknown"
                raise NavigationError(url, f"HTTP {status}") from e

            except requests.exceptions.Timeout as e:
                last_exception = e
                if attempt < MAX_RETRIES:
                    self._backoff(attempt, "Timeout")
                    continue
                raise NavigationTimeout(url, f"timed out after {MAX_RETRIES + 1} attempts") from e

            except requests.exceptions.ConnectionError as e:
                last_exception = e
                if attempt < MAX_RETRIES:
                    self._backoff(attempt, "Connection error")
                    continue
                raise NavigationError(url, f"connection failed: {e}") from e

            except requests.exceptions.RequestException as e:
                raise NavigationError(url, str(e)) from e

        raise NavigationError(url, f"failed after {MAX_RETRIES} retries") from last_exception

    def _request_timeout(self) -> float:
        remaining = self.remaining()
        if remaining is None:
            return REQUEST_TIMEOUT
        return max(0.1, min(REQUEST_TIMEOUT, remaining))

    def _backoff(self, attempt: int, reason: str) -> None:
        backoff = min(RETRY_BACKOFF_BASE ** attempt, MAX_RETRY_BACKOFF) + random.uniform(0, 1)
        remaining = self.remaining()
        if remaining is not None:
            backoff = min(backoff, max(remaining, 0))
        logger.warning(f"{reason}, backing off {backoff:.1f}s (attempt {attempt + 1}/{MAX_RETRIES})")
        time.sleep(backoff)

    def _polite_delay(self) -> None:
        if self.delay_max > 0:
            time.sleep(random.uniform(self.delay_min, self.delay_max))

    def _page(self) -> BeautifulSoup:
        if self._soup is None:
            raise NavigationError(self.current_url or "<none>", "no page loaded")
        return self._soup

    def wait_settled(self) -> None:
        # A fetched document is complete; there are no pending requests
        self.check_deadline()
        self._page()

    def wait_for(self, descriptor: str, timeout: float) -> Tag:
        self.check_deadline()
        element = self._page().select_one(descriptor)
        if element is None:
            raise NavigationTimeout(
                self.current_url or "<none>",
                f"'{descriptor}' did not appear within {timeout:g}s",
            )
        return element

    def find_all(self, descriptor: str, within: Optional[Tag] = None) -> List[Tag]:
        self.check_deadline()
        root = within if within is not None else self._page()
        return list(root.select(descriptor))

    def find(self, descriptor: str, within: Optional[Tag] = None) -> Optional[Tag]:
        root = within if within is not None else self._page()
        return root.select_one(descriptor)

    def read_text(self, handle: Tag, exclude: Optional[str] = None) -> str:
        excluded = {id(el) for el in handle.select(exclude)} if exclude else set()
        parts = []
        for text in handle.find_all(string=True):
            if excluded and any(id(parent) in excluded for parent in text.parents):
                continue
            stripped = text.strip()
            if stripped:
                parts.append(stripped)
        return " ".join(parts)

    def close(self) -> None:
        self._http.close()
        self._soup = None
