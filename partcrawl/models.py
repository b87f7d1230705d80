"""Data models for categories, records and crawl results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

__all__ = [
    "Category",
    "FieldSpec",
    "Record",
    "PageBatch",
    "CategoryResult",
]


class Category(str, Enum):
    """Product types listed on the catalog. The value is the URL slug."""

    CPU = "cpu"
    CPU_COOLER = "cpu-cooler"
    MOTHERBOARD = "motherboard"
    MEMORY = "memory"
    INTERNAL_HARD_DRIVE = "internal-hard-drive"
    VIDEO_CARD = "video-card"
    CASE = "case"
    POWER_SUPPLY = "power-supply"
    OS = "os"
    MONITOR = "monitor"
    SOUND_CARD = "sound-card"
    WIRED_NETWORK_CARD = "wired-network-card"
    WIRELESS_NETWORK_CARD = "wireless-network-card"
    HEADPHONES = "headphones"
    KEYBOARD = "keyboard"
    MOUSE = "mouse"
    SPEAKERS = "speakers"
    WEBCAM = "webcam"
    CASE_ACCESSORY = "case-accessory"
    CASE_FAN = "case-fan"
    FAN_CONTROLLER = "fan-controller"
    THERMAL_PASTE = "thermal-paste"
    EXTERNAL_HARD_DRIVE = "external-hard-drive"
    OPTICAL_DRIVE = "optical-drive"
    UPS = "ups"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, slug: str) -> "Category":
        """Look up a category by its URL slug (e.g. 'cpu-cooler')."""
        try:
            return cls(slug.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown category '{slug}'. Available: {[c.value for c in cls]}"
            ) from None


class FieldSpec(NamedTuple):
    """Mapping table entry: canonical field name and serializer kind."""

    field_name: str
    kind: str


# A record maps field names to None, numbers, text, booleans or lists.
# 'name' and 'price' are always present.
Record = Dict[str, Any]

# Records extracted from one listing page, in page order
PageBatch = List[Record]


@dataclass
class CategoryResult:
    """Outcome of one category's traversal.

    ``records`` holds every record collected before the traversal ended.
    ``error`` is set when the traversal was aborted; the records are then a
    partial result.
    """

    category: Category
    records: List[Record] = field(default_factory=list)
    error: Optional[BaseException] = None
    pages: int = 0

    @property
    def complete(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        return "complete" if self.complete else "partial"
