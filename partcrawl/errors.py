"""Exception hierarchy for the crawler.

Two families:

- ``CrawlError`` covers conditions that are fatal to a single category's
  traversal. The orchestrator catches them at the category boundary and emits
  whatever was collected before the failure.
- ``ConfigurationError`` covers a broken setup (mapping table, serializer
  registry, seeding). These abort the whole run.
"""

from typing import Any, Dict, Optional, Sequence

__all__ = [
    "CrawlError",
    "UnmappedLabel",
    "MalformedValue",
    "NavigationError",
    "NavigationTimeout",
    "PaginationUnreadable",
    "CategoryTimeout",
    "CrawlInterrupted",
    "ConfigurationError",
    "MappingTableError",
    "UnregisteredCustomSerializer",
    "SeedingError",
]


class CrawlError(Exception):
    """Base class for errors that abort one category's traversal.

    ``partial_batch`` holds the records of the failing page that were fully
    extracted before the error, in page order.
    """

    partial_batch: Sequence[Dict[str, Any]] = ()


class UnmappedLabel(CrawlError):
    """Raised when a spec label has no mapping table entry for its category."""

    def __init__(self, category: str, label: str):
        self.category = category
        self.label = label
        super().__init__(f"No mapping found for spec '{label}' in category '{category}'")


class MalformedValue(CrawlError):
    """Raised when raw text cannot be parsed by the selected serializer."""

    def __init__(self, kind: str, raw: Optional[str], reason: str = ""):
        self.kind = kind
        self.raw = raw
        self.reason = reason
        message = f"Cannot serialize {raw!r} as {kind}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class NavigationError(CrawlError):
    """Raised when a page could not be loaded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to load {url}: {reason}")


class NavigationTimeout(NavigationError):
    """Raised when a navigation or element wait exceeded its bound."""
    pass


class PaginationUnreadable(CrawlError):
    """Raised when the page count of a listing cannot be determined."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Pagination unreadable on {url}: {reason}")


class CategoryTimeout(CrawlError):
    """Raised when a category exceeded its total traversal time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Category traversal exceeded {timeout:g}s")


class CrawlInterrupted(CrawlError):
    """Raised between pages once a graceful shutdown was requested."""
    pass


class ConfigurationError(Exception):
    """Base class for setup failures that abort the whole run."""
    pass


class MappingTableError(ConfigurationError):
    """Raised when the mapping table is structurally invalid."""
    pass


class UnregisteredCustomSerializer(ConfigurationError):
    """Raised when a field is marked custom but has no registered serializer."""

    def __init__(self, category: str, field_name: str):
        self.category = category
        self.field_name = field_name
        super().__init__(
            f"Field '{field_name}' of category '{category}' is marked custom "
            f"but no serializer is registered for it"
        )


class SeedingError(ConfigurationError):
    """Raised when the seeding session cannot open the catalog root."""
    pass
