"""Configuration and constants for the crawler."""

import os
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping

from dotenv import load_dotenv

from partcrawl.models import Category

load_dotenv()

__all__ = [
    "ROOT_URL",
    "BASE_URL",
    "HEADERS",
    "REQUEST_TIMEOUT",
    "DELAY_MIN",
    "DELAY_MAX",
    "MAX_RETRIES",
    "RETRY_BACKOFF_BASE",
    "MAX_RETRY_BACKOFF",
    "RETRY_STATUS_CODES",
    "POOL_SIZE",
    "CATEGORY_TIMEOUT",
    "PAGINATION_TIMEOUT",
    "OUTPUT_DIR",
    "MAPPING_PATH",
    "ALL_CATEGORIES",
    "CPU_SOCKETS",
    "MEMORY_GENERATIONS",
    "CATEGORY_VARIANTS",
    "get_variants",
    "SEED_SELECTOR",
    "PAGINATION_SELECTOR",
    "PAGINATION_LAST_SELECTOR",
    "PRODUCT_SELECTOR",
    "NAME_SELECTOR",
    "PRICE_SELECTOR",
    "SPEC_SELECTOR",
    "SPEC_LABEL_SELECTOR",
]

_PACKAGE_DIR = Path(__file__).parent

ROOT_URL = "https://pcpartpicker.com"
BASE_URL = f"{ROOT_URL}/products"

# HTTP headers for polite crawling
HEADERS = {
    "User-Agent": "partcrawl catalog crawler (+https://pcpartpicker.com/products/)",
    "Accept-Language": "en-US,en;q=0.9",
}

# Request timeout per page load (seconds)
REQUEST_TIMEOUT = 15

# Delay after each page load (seconds)
DELAY_MIN = float(os.getenv("PARTCRAWL_DELAY_MIN", "1.0"))
DELAY_MAX = float(os.getenv("PARTCRAWL_DELAY_MAX", "3.0"))

# Transport-level retry with exponential backoff
MAX_RETRIES = 5
RETRY_BACKOFF_BASE = 2.0  # 2^attempt seconds
MAX_RETRY_BACKOFF = 60.0
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

# Concurrency: number of categories crawled at the same time
POOL_SIZE = int(os.getenv("PARTCRAWL_POOL_SIZE", "5"))

# Hard bound on one category's total traversal time (seconds)
CATEGORY_TIMEOUT = float(os.getenv("PARTCRAWL_CATEGORY_TIMEOUT", str(20 * 60)))

# Bound on waiting for the pagination control of a listing (seconds)
PAGINATION_TIMEOUT = 5.0

# Output
OUTPUT_DIR = os.getenv("PARTCRAWL_OUTPUT_DIR", "data-staging")
MAPPING_PATH = os.getenv(
    "PARTCRAWL_MAPPING_PATH", str(_PACKAGE_DIR / "data" / "serialization_map.json")
)

# Default crawl order when no categories are given
ALL_CATEGORIES: List[Category] = list(Category)


# =============================================================================
# Listing Variants
# =============================================================================
# A variant is a filtered sub-listing of a category. Each maps a display name
# (used as the record name prefix) to the listing URL fragment.

CPU_SOCKETS: Mapping[str, str] = MappingProxyType({
    "AM1": "#k=27",
    "AM2p": "#k=2",
    "AM3": "#k=3",
    "AM3p": "#k=4",
    "AM4": "#k=33",
    "AM5": "#k=41",
    "FM1": "#k=20",
    "FM2": "#k=23",
    "FM2p": "#k=26",
    "G34": "#k=31",
    "LGA771": "#k=12",
    "LGA775": "#k=13",
    "LGA1150": "#k=24",
    "LGA1151": "#k=30",
    "LGA1155": "#k=14",
    "LGA1156": "#k=15",
    "LGA1200": "#k=39",
    "LGA1356": "#k=37",
    "LGA1366": "#k=16",
    "LGA1700": "#k=40",
    "LGA2011": "#k=21",
    "LGA2011_3": "#k=28",
    "LGA2066": "#k=35",
    "sTR4": "#k=36",
    "sTRX4": "#k=38",
})

MEMORY_GENERATIONS: Mapping[str, str] = MappingProxyType({
    "DDR2": "#mt=ddr2",
    "DDR3": "#mt=ddr3",
    "DDR4": "#mt=ddr4",
    "DDR5": "#mt=ddr5",
})

# Categories listed without a filter use a single unnamed variant
_UNFILTERED: Mapping[str, str] = MappingProxyType({"": ""})

CATEGORY_VARIANTS: Mapping[Category, Mapping[str, str]] = MappingProxyType({
    Category.CPU: CPU_SOCKETS,
    Category.MEMORY: MEMORY_GENERATIONS,
})


def get_variants(category: Category) -> Mapping[str, str]:
    """Get the ordered variant table for a category."""
    return CATEGORY_VARIANTS.get(category, _UNFILTERED)


# =============================================================================
# Element Descriptors (CSS selectors)
# =============================================================================

SEED_SELECTOR = "nav"
PAGINATION_SELECTOR = ".pagination"
PAGINATION_LAST_SELECTOR = "li:last-child"
PRODUCT_SELECTOR = ".tr__product"
NAME_SELECTOR = ".td__name .td__nameWrapper > p"
PRICE_SELECTOR = ".td__price"
SPEC_SELECTOR = "td.td__spec"
SPEC_LABEL_SELECTOR = ".specLabel"
