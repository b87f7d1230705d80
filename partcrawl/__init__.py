"""PC part catalog crawler package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from partcrawl.config import ALL_CATEGORIES, BASE_URL, get_variants
from partcrawl.errors import ConfigurationError, CrawlError
from partcrawl.mapping import MappingTable, load_mapping_table, validate_mapping_table
from partcrawl.models import Category, CategoryResult, FieldSpec, Record
from partcrawl.orchestrator import SessionPool, crawl_category, run
from partcrawl.serializers import DEFAULT_REGISTRY, SerializerRegistry
from partcrawl.sinks import CsvDirectorySink, JsonDirectorySink, MemorySink
from partcrawl.traversal import iter_category_pages

__all__ = [
    # Version
    "__version__",
    # Config
    "ALL_CATEGORIES",
    "BASE_URL",
    "get_variants",
    # Models
    "Category",
    "CategoryResult",
    "FieldSpec",
    "Record",
    # Errors
    "CrawlError",
    "ConfigurationError",
    # Mapping and serialization
    "MappingTable",
    "load_mapping_table",
    "validate_mapping_table",
    "SerializerRegistry",
    "DEFAULT_REGISTRY",
    # Crawling
    "iter_category_pages",
    "crawl_category",
    "SessionPool",
    "run",
    # Sinks
    "JsonDirectorySink",
    "CsvDirectorySink",
    "MemorySink",
]
