"""Crawl orchestration: many categories over a bounded pool of sessions.

Each category runs on its own worker thread with a session it owns
exclusively until the category finishes. A failing category never affects
its siblings: the failure is caught at the category boundary, logged, and the
records collected so far are still emitted to the sink.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from functools import partial
from queue import Empty, LifoQueue
from typing import Callable, Iterable, Iterator, List, Optional

import requests  # type: ignore[import-untyped]

from partcrawl.browser import BrowsingSession, HttpSession
from partcrawl.config import (
    ALL_CATEGORIES,
    CATEGORY_TIMEOUT,
    PAGINATION_TIMEOUT,
    POOL_SIZE,
    ROOT_URL,
    SEED_SELECTOR,
)
from partcrawl.errors import ConfigurationError, CrawlError, CrawlInterrupted, SeedingError
from partcrawl.logging_config import get_logger, log_crawl_event
from partcrawl.mapping import MappingTable, load_mapping_table, validate_mapping_table
from partcrawl.models import Category, CategoryResult
from partcrawl.serializers import DEFAULT_REGISTRY, SerializerRegistry
from partcrawl.shutdown import shutdown_requested
from partcrawl.sinks import Sink
from partcrawl.traversal import iter_category_pages

__all__ = [
    "SessionPool",
    "seed_session",
    "crawl_category",
    "run",
]

logger = get_logger("orchestrator")

SessionFactory = Callable[[], BrowsingSession]


class SessionPool:
    """At most ``size`` sessions, each lent to one holder at a time.

    Sessions are created lazily and reused. ``active``, ``max_active`` and
    ``acquired`` count holders for monitoring.
    """

    def __init__(self, factory: SessionFactory, size: int = POOL_SIZE) -> None:
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")
        self.size = size
        self._factory = factory
        self._slots = threading.BoundedSemaphore(size)
        self._idle: "LifoQueue[BrowsingSession]" = LifoQueue()
        self._sessions: List[BrowsingSession] = []
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.acquired = 0

    def _checkout(self) -> BrowsingSession:
        try:
            return self._idle.get_nowait()
        except Empty:
            session = self._factory()
            with self._lock:
                self._sessions.append(session)
            return session

    @contextmanager
    def acquire(self) -> Iterator[BrowsingSession]:
        """Borrow a session, blocking while all of them are in use."""
        self._slots.acquire()
        try:
            session = self._checkout()
            with self._lock:
                self.active += 1
                self.acquired += 1
                self.max_active = max(self.max_active, self.active)
            try:
                yield session
            finally:
                session.disarm_deadline()
                with self._lock:
                    self.active -= 1
                self._idle.put(session)
        finally:
            self._slots.release()

    @property
    def created(self) -> int:
        return len(self._sessions)

    def close(self) -> None:
        """Close every session the pool created."""
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            try:
                session.close()
            except Exception as e:
                logger.warning(f"Failed to close session: {e}")


def seed_session(pool: SessionPool, root_url: str = ROOT_URL) -> None:
    """Open the catalog root once before any category is crawled.

    Sessions of one crawl share their cookies, so the state picked up here
    carries over to every category.

    Raises:
        SeedingError: The root page could not be opened.
    """
    with pool.acquire() as session:
        try:
            session.navigate(root_url)
            session.wait_settled()
            session.wait_for(SEED_SELECTOR, timeout=PAGINATION_TIMEOUT)
        except CrawlError as e:
            raise SeedingError(f"Cannot open catalog root {root_url}: {e}") from e
    logger.info(f"Seeded crawl session from {root_url}")


def crawl_category(
    session: BrowsingSession,
    category: Category,
    mapping: MappingTable,
    registry: SerializerRegistry = DEFAULT_REGISTRY,
    timeout: Optional[float] = CATEGORY_TIMEOUT,
) -> CategoryResult:
    """Drain one category's traversal into a CategoryResult.

    This is the isolation boundary: any failure of the traversal ends up in
    ``result.error`` with the records collected before it, including the
    fully extracted items of the failing page. Configuration errors are not
    category failures and propagate.
    """
    category = Category(category)
    result = CategoryResult(category=category)
    started = time.monotonic()

    log_crawl_event("category_start", {
        "message": f"[{category}] Starting",
        "category": category.value,
        "timeout": timeout,
    })

    if timeout:
        session.arm_deadline(timeout)
    try:
        for batch in iter_category_pages(session, category, mapping, registry):
            result.records.extend(batch)
            result.pages += 1
    except ConfigurationError:
        raise
    except CrawlError as e:
        result.records.extend(e.partial_batch)
        result.error = e
    except Exception as e:
        logger.exception(f"[{category}] Unexpected error during traversal")
        result.error = e
    finally:
        session.disarm_deadline()

    elapsed = round(time.monotonic() - started, 2)
    if result.error is not None:
        log_crawl_event("category_failed", {
            "message": f"[{category}] Partial: {type(result.error).__name__}: {result.error}",
            "category": category.value,
            "error_type": type(result.error).__name__,
            "error": str(result.error),
            "records": len(result.records),
            "pages": result.pages,
            "elapsed": elapsed,
        }, level=logging.WARNING)
    else:
        log_crawl_event("category_complete", {
            "message": f"[{category}] Complete: {len(result.records)} records from {result.pages} page(s)",
            "category": category.value,
            "records": len(result.records),
            "pages": result.pages,
            "elapsed": elapsed,
        })
    return result


def _crawl_and_emit(
    pool: SessionPool,
    category: Category,
    sink: Sink,
    mapping: MappingTable,
    registry: SerializerRegistry,
    timeout: Optional[float],
) -> CategoryResult:
    with pool.acquire() as session:
        # Queued categories are not started after a shutdown request, and
        # their previous output is left in place
        if shutdown_requested():
            log_crawl_event("category_skipped", {
                "message": f"[{category}] Not started: shutdown requested",
                "category": category.value,
            }, level=logging.WARNING)
            return CategoryResult(
                category=category,
                error=CrawlInterrupted("Shutdown requested before the category started"),
            )
        result = crawl_category(session, category, mapping, registry, timeout)

    try:
        sink.emit(category, result.records)
    except Exception as e:
        log_crawl_event("sink_failed", {
            "message": f"[{category}] Sink failed to store {len(result.records)} records: {e}",
            "category": category.value,
            "error": str(e),
        }, level=logging.ERROR)
    return result


def _log_summary(results: List[CategoryResult]) -> None:
    incomplete = [r for r in results if not r.complete]
    total = sum(len(r.records) for r in results)

    log_crawl_event("crawl_summary", {
        "message": (
            f"Crawl finished: {len(results)} categories, {total} records, "
            f"{len(incomplete)} incomplete"
        ),
        "categories": len(results),
        "records": total,
        "incomplete": {
            r.category.value: f"{type(r.error).__name__}: {r.error}" for r in incomplete
        },
    })
    for r in incomplete:
        logger.warning(
            f"  {r.category}: partial ({len(r.records)} records) - "
            f"{type(r.error).__name__}: {r.error}"
        )


def run(
    categories: Optional[Iterable[Category]],
    sink: Sink,
    session_factory: Optional[SessionFactory] = None,
    pool_size: int = POOL_SIZE,
    category_timeout: Optional[float] = CATEGORY_TIMEOUT,
    mapping: Optional[MappingTable] = None,
    registry: SerializerRegistry = DEFAULT_REGISTRY,
    seed: bool = True,
) -> List[CategoryResult]:
    """Crawl every category and emit each one's records to ``sink``.

    Args:
        categories: Categories in queue order (default: all of them)
        sink: Receives one emit call per started category, complete or
            partial; categories still queued at shutdown are not emitted
        session_factory: Creates browsing sessions (default: HttpSession
            instances sharing one cookie jar)
        pool_size: Maximum number of categories crawled at once
        category_timeout: Hard bound on one category's traversal (seconds)
        mapping: Mapping table (default: the bundled table)
        registry: Serializers for field values
        seed: Open the catalog root before queuing categories

    Returns:
        One CategoryResult per category, in input order

    Raises:
        ConfigurationError: Invalid mapping table, unregistered custom
            serializer or failed seeding. Nothing is crawled or emitted for
            the first two.
    """
    queue = [Category(c) for c in categories] if categories else list(ALL_CATEGORIES)

    if mapping is None:
        mapping = load_mapping_table()
    validate_mapping_table(mapping, registry)

    if session_factory is None:
        session_factory = partial(HttpSession, cookies=requests.cookies.RequestsCookieJar())

    pool = SessionPool(session_factory, pool_size)
    logger.info(f"Crawling {len(queue)} categories with {pool_size} concurrent sessions")

    try:
        if seed:
            seed_session(pool)

        with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="crawl") as executor:
            futures = [
                executor.submit(
                    _crawl_and_emit, pool, category, sink, mapping, registry, category_timeout
                )
                for category in queue
            ]
            results = [future.result() for future in futures]
    finally:
        pool.close()

    _log_summary(results)
    return results
