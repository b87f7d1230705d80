"""Mapping table: (category, raw spec label) -> (field name, serializer kind).

The table is stored as JSON keyed by category slug:

    {"cpu": {"Core Count": ["core_count", "number"], ...}, ...}

It is loaded and validated once at startup and is read-only afterwards.
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from partcrawl.config import MAPPING_PATH
from partcrawl.errors import MappingTableError, UnmappedLabel, UnregisteredCustomSerializer
from partcrawl.logging_config import get_logger
from partcrawl.models import Category, FieldSpec
from partcrawl.serializers import CUSTOM_KIND, DEFAULT_REGISTRY, SerializerRegistry

__all__ = [
    "RESERVED_FIELDS",
    "MappingTable",
    "parse_mapping_table",
    "load_mapping_table",
    "validate_mapping_table",
]

logger = get_logger("mapping")

# Always written by the extractor itself
RESERVED_FIELDS = frozenset({"name", "price"})


class MappingTable:
    """Immutable per-category lookup of spec labels."""

    def __init__(self, entries: Mapping[Category, Mapping[str, FieldSpec]]) -> None:
        self._entries = MappingProxyType({
            Category(category): MappingProxyType(dict(labels))
            for category, labels in entries.items()
        })

    def resolve(self, category: Category, raw_label: str) -> FieldSpec:
        """Look up a spec label for a category.

        The label is trimmed; matching is case-sensitive.

        Raises:
            UnmappedLabel: The label has no entry for this category.
        """
        label = raw_label.strip()
        spec = self._entries.get(Category(category), {}).get(label)
        if spec is None:
            raise UnmappedLabel(str(category), label)
        return spec

    def categories(self):
        return list(self._entries)

    def labels(self, category: Category) -> Mapping[str, FieldSpec]:
        return self._entries.get(Category(category), MappingProxyType({}))

    def fields(self, category: Category) -> Dict[str, str]:
        """Field name -> serializer kind for a category."""
        return {spec.field_name: spec.kind for spec in self.labels(category).values()}

    def __contains__(self, category: object) -> bool:
        try:
            return Category(category) in self._entries
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._entries)


def parse_mapping_table(data: Mapping[str, Any]) -> MappingTable:
    """Build a MappingTable from decoded JSON, checking its structure.

    Every category slug must be known, every descriptor must be a
    ``[field_name, kind]`` pair with a known kind, a field name must have one
    kind within a category, and ``name``/``price`` cannot be mapped.

    Raises:
        MappingTableError: On the first structural problem found.
    """
    entries: Dict[Category, Dict[str, FieldSpec]] = {}

    for slug, labels in data.items():
        try:
            category = Category.parse(slug)
        except ValueError as e:
            raise MappingTableError(str(e)) from e

        if not isinstance(labels, dict):
            raise MappingTableError(f"[{slug}] expected an object of labels")

        field_kinds: Dict[str, str] = {}
        specs: Dict[str, FieldSpec] = {}
        for label, descriptor in labels.items():
            if not isinstance(descriptor, (list, tuple)) or len(descriptor) != 2:
                raise MappingTableError(
                    f"[{slug}] '{label}': expected [field_name, kind], got {descriptor!r}"
                )
            field_name, kind = descriptor
            if not isinstance(field_name, str) or not field_name:
                raise MappingTableError(
                    f"[{slug}] '{label}': field name must be a non-empty string, got {field_name!r}"
                )
            if not isinstance(kind, str):
                raise MappingTableError(f"[{slug}] '{label}': kind must be a string, got {kind!r}")
            if not DEFAULT_REGISTRY.is_known_kind(kind):
                raise MappingTableError(f"[{slug}] '{label}': unknown serializer kind '{kind}'")
            if field_name in RESERVED_FIELDS:
                raise MappingTableError(f"[{slug}] '{label}': field name '{field_name}' is reserved")
            if field_kinds.setdefault(field_name, kind) != kind:
                raise MappingTableError(
                    f"[{slug}] field '{field_name}' mapped with conflicting kinds "
                    f"'{field_kinds[field_name]}' and '{kind}'"
                )
            specs[label.strip()] = FieldSpec(field_name, kind)

        entries[category] = specs

    return MappingTable(entries)


def load_mapping_table(path: Optional[Union[str, Path]] = None) -> MappingTable:
    """Load the mapping table from JSON (bundled table by default)."""
    path = Path(path or MAPPING_PATH)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MappingTableError(f"Cannot read mapping table {path}: {e}") from e

    if not isinstance(data, dict):
        raise MappingTableError(f"Mapping table {path} must be a JSON object")

    table = parse_mapping_table(data)
    logger.debug(f"Loaded mapping table for {len(table)} categories from {path}")
    return table


def validate_mapping_table(
    table: MappingTable,
    registry: SerializerRegistry = DEFAULT_REGISTRY,
) -> None:
    """Check that every custom field has a registered serializer.

    Run before any traversal starts so a broken table fails the whole run
    instead of one category mid-crawl.

    Raises:
        UnregisteredCustomSerializer: For the first custom field without one.
    """
    for category in table.categories():
        for field_name, kind in table.fields(category).items():
            if kind == CUSTOM_KIND and not registry.has_custom(category, field_name):
                raise UnregisteredCustomSerializer(str(category), field_name)
