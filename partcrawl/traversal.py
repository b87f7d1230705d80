"""Pagination traversal: a category as a lazy stream of page batches."""

import logging
from typing import Iterator, Mapping, Optional

from partcrawl.browser import BrowsingSession
from partcrawl.config import (
    BASE_URL,
    PAGINATION_LAST_SELECTOR,
    PAGINATION_SELECTOR,
    PAGINATION_TIMEOUT,
    PRODUCT_SELECTOR,
    get_variants,
)
from partcrawl.errors import CrawlError, NavigationTimeout, PaginationUnreadable
from partcrawl.extractor import extract_record
from partcrawl.logging_config import get_logger, log_crawl_event
from partcrawl.mapping import MappingTable
from partcrawl.models import Category, PageBatch
from partcrawl.serializers import DEFAULT_REGISTRY, SerializerRegistry
from partcrawl.shutdown import check_shutdown

__all__ = [
    "build_listing_url",
    "read_page_count",
    "iter_category_pages",
]

logger = get_logger("traversal")


def build_listing_url(category: Category, fragment: str, page: int = 1) -> str:
    """Listing URL for one page of a category variant.

    The page parameter is appended to the variant's filter fragment so the
    filter is kept on every page:

        cpu, "#k=33", 1 -> https://pcpartpicker.com/products/cpu/#k=33
        cpu, "#k=33", 2 -> https://pcpartpicker.com/products/cpu/#k=33&page=2
        case, "", 3     -> https://pcpartpicker.com/products/case/#page=3
    """
    url = f"{BASE_URL}/{Category(category).value}/{fragment}"
    if page <= 1:
        return url
    if fragment:
        return f"{url}&page={page}"
    return f"{url}#page={page}"


def read_page_count(session: BrowsingSession, url: str) -> int:
    """Read the number of pages from the pagination control of the current page.

    The last entry of the control holds the highest page number.

    Raises:
        PaginationUnreadable: The control is missing or its last entry is not
            a number.
    """
    try:
        pagination = session.wait_for(PAGINATION_SELECTOR, timeout=PAGINATION_TIMEOUT)
    except NavigationTimeout as e:
        raise PaginationUnreadable(url, e.reason) from e

    last = session.find(PAGINATION_LAST_SELECTOR, within=pagination)
    if last is None:
        raise PaginationUnreadable(url, "pagination control has no entries")

    text = session.read_text(last).strip()
    try:
        num_pages = int(text)
    except ValueError:
        raise PaginationUnreadable(url, f"last entry {text!r} is not a page number") from None
    if num_pages < 1:
        raise PaginationUnreadable(url, f"invalid page count {num_pages}")
    return num_pages


def iter_category_pages(
    session: BrowsingSession,
    category: Category,
    mapping: MappingTable,
    registry: SerializerRegistry = DEFAULT_REGISTRY,
    variants: Optional[Mapping[str, str]] = None,
) -> Iterator[PageBatch]:
    """Yield one batch of records per listing page of a category.

    Variants are visited in declared order and pages in ascending order.
    Items on a page are extracted one after another. The generator owns the
    session's navigation state and cannot be restarted.

    Args:
        session: Session used exclusively by this traversal
        category: Category to traverse
        mapping: Mapping table for spec labels
        registry: Serializers for field values
        variants: Variant name -> URL fragment (default: the category's table)

    Raises:
        PaginationUnreadable: A variant's page count cannot be read
        UnmappedLabel, MalformedValue: From record extraction
        NavigationError, CategoryTimeout: From the session
        CrawlInterrupted: Shutdown was requested between pages

    An error raised while a page is being extracted carries that page's
    already extracted records in ``partial_batch``.
    """
    category = Category(category)
    if variants is None:
        variants = get_variants(category)

    for variant_name, fragment in variants.items():
        check_shutdown()
        first_url = build_listing_url(category, fragment)
        session.navigate(first_url)
        session.wait_settled()
        num_pages = read_page_count(session, first_url)

        label = f"{category}/{variant_name}" if variant_name else str(category)
        logger.info(f"[{label}] {num_pages} page(s)")

        for current_page in range(1, num_pages + 1):
            if current_page > 1:
                check_shutdown()
                session.navigate(build_listing_url(category, fragment, current_page))
                session.wait_settled()

            batch: PageBatch = []
            try:
                for item in session.find_all(PRODUCT_SELECTOR):
                    batch.append(
                        extract_record(session, item, category, variant_name, mapping, registry)
                    )
            except CrawlError as e:
                e.partial_batch = batch
                raise
            log_crawl_event("page_done", {
                "message": f"[{label}] page {current_page}/{num_pages}: {len(batch)} item(s)",
                "category": category.value,
                "variant": variant_name,
                "page": current_page,
                "pages": num_pages,
                "items": len(batch),
            }, level=logging.DEBUG, logger_name="traversal")

            yield batch
