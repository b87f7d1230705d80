"""Record extraction: one listing item -> one typed record."""

from typing import Any

from partcrawl.browser import BrowsingSession
from partcrawl.config import NAME_SELECTOR, PRICE_SELECTOR, SPEC_LABEL_SELECTOR, SPEC_SELECTOR
from partcrawl.errors import MalformedValue
from partcrawl.mapping import MappingTable
from partcrawl.models import Category, Record
from partcrawl.serializers import CUSTOM_KIND, DEFAULT_REGISTRY, SerializerRegistry

__all__ = ["extract_record"]


def extract_record(
    session: BrowsingSession,
    item: Any,
    category: Category,
    variant_name: str,
    mapping: MappingTable,
    registry: SerializerRegistry = DEFAULT_REGISTRY,
) -> Record:
    """Build a record from a listing item element.

    ``name`` is the item title prefixed with the variant name, ``price`` is a
    number or None. Every spec cell on the item becomes a field via the
    category's mapping table; an empty cell gives None without calling any
    serializer.

    Raises:
        UnmappedLabel: A spec label has no mapping for the category.
        MalformedValue: A value (or the item title) could not be read.

    Nothing is returned on failure; records are never partially built.
    """
    record: Record = {}

    name_el = session.find(NAME_SELECTOR, within=item)
    if name_el is None:
        raise MalformedValue("name", None, f"no element matches '{NAME_SELECTOR}'")
    title = session.read_text(name_el)
    record["name"] = f"{variant_name} {title}" if variant_name else title

    price_el = session.find(PRICE_SELECTOR, within=item)
    price_text = session.read_text(price_el) if price_el is not None else None
    if price_text is None or not price_text.strip():
        record["price"] = None
    else:
        record["price"] = registry.serialize("number", price_text)

    for cell in session.find_all(SPEC_SELECTOR, within=item):
        label_el = session.find(SPEC_LABEL_SELECTOR, within=cell)
        label = session.read_text(label_el).strip() if label_el is not None else ""
        field_name, kind = mapping.resolve(category, label)

        value = session.read_text(cell, exclude=SPEC_LABEL_SELECTOR)
        if not value.strip():
            record[field_name] = None
        elif kind == CUSTOM_KIND:
            record[field_name] = registry.custom_serialize(category, field_name, value)
        else:
            record[field_name] = registry.serialize(kind, value)

    return record
