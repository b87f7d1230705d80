"""Tests for turning listing items into typed records."""

import json
from unittest.mock import MagicMock

import pytest

from partcrawl.config import PRODUCT_SELECTOR
from partcrawl.errors import MalformedValue, UnmappedLabel
from partcrawl.extractor import extract_record
from partcrawl.mapping import load_mapping_table
from partcrawl.models import Category
from partcrawl.serializers import DEFAULT_REGISTRY
from partcrawl.tests.fixture_site import FixtureSession, listing_html, product_row

PAGE_URL = "https://pcpartpicker.com/products/cpu/"


def load_items(*rows):
    """Navigate a session to a page holding ``rows`` and return (session, items)."""
    session = FixtureSession({PAGE_URL: listing_html(rows)})
    session.navigate(PAGE_URL)
    return session, session.find_all(PRODUCT_SELECTOR)


@pytest.fixture
def counting_registry():
    """Registry whose serializer calls are counted."""
    registry = MagicMock(wraps=DEFAULT_REGISTRY)
    return registry


class TestExtractRecord:
    """Tests for extract_record."""

    def test_name_is_prefixed_with_variant(self, mapping):
        session, items = load_items(product_row("AMD Ryzen 5 5600X"))

        record = extract_record(session, items[0], Category.CPU, "AM4", mapping)

        assert record["name"] == "AM4 AMD Ryzen 5 5600X"

    def test_unnamed_variant_keeps_title(self, mapping):
        session, items = load_items(product_row("Logitech G502"))

        record = extract_record(session, items[0], Category.MOUSE, "", mapping)

        assert record["name"] == "Logitech G502"

    def test_price_is_parsed(self, mapping):
        session, items = load_items(product_row("AMD Ryzen 5 5600X", price="$129.99"))

        record = extract_record(session, items[0], Category.CPU, "AM4", mapping)

        assert record["price"] == 129.99

    @pytest.mark.parametrize("price", ["", "   "])
    def test_blank_price_is_none(self, mapping, price):
        session, items = load_items(product_row("AMD Ryzen 5 5600X", price=price))

        record = extract_record(session, items[0], Category.CPU, "AM4", mapping)

        assert record["price"] is None

    def test_missing_price_cell_is_none(self, mapping):
        row = product_row("AMD Ryzen 5 5600X").replace('class="td__price"', 'class="td__other"')
        session, items = load_items(row)

        record = extract_record(session, items[0], Category.CPU, "AM4", mapping)

        assert record["price"] is None

    def test_spec_fields_are_typed(self, mapping):
        row = product_row("AMD Ryzen 5 5600G", specs=[
            ("Core Count", "6"),
            ("Core Clock", "3.9 GHz"),
            ("Integrated Graphics", "Radeon  Vega 7"),
            ("SMT", "Yes"),
        ])
        session, items = load_items(row)

        record = extract_record(session, items[0], Category.CPU, "AM4", mapping)

        assert record == {
            "name": "AM4 AMD Ryzen 5 5600G",
            "price": 129.99,
            "core_count": 6,
            "core_clock": 3.9,
            "graphics": "Radeon Vega 7",
            "smt": True,
        }

    def test_label_text_is_not_part_of_value(self, mapping):
        """The label element inside a spec cell is left out of the value."""
        row = product_row("Keychron K2", specs=[("Style", "Standard")])
        session, items = load_items(row)

        record = extract_record(session, items[0], Category.KEYBOARD, "", mapping)

        assert record["style"] == "Standard"

    def test_custom_fields(self, mapping):
        row = product_row("Corsair Vengeance LPX", specs=[
            ("Speed", "DDR4-3200"),
            ("Modules", "2 x 16GB"),
            ("Color", "Black, Yellow"),
        ])
        session, items = load_items(row)

        record = extract_record(session, items[0], Category.MEMORY, "DDR4", mapping)

        assert record["speed"] == [4, 3200]
        assert record["modules"] == [2, 16]
        assert record["color"] == ["Black", "Yellow"]

    def test_field_absent_without_cell(self, mapping):
        """Fields without a spec cell on the item are not in the record."""
        row = product_row("AMD Ryzen 5 5600X", specs=[("Core Count", "6")])
        session, items = load_items(row)

        record = extract_record(session, items[0], Category.CPU, "AM4", mapping)

        assert "core_clock" not in record
        assert set(record) == {"name", "price", "core_count"}

    def test_empty_value_is_none_without_serializer_call(self, mapping, counting_registry):
        row = product_row("AMD Ryzen 5 5600X", price="", specs=[
            ("Core Count", ""),
            ("Integrated Graphics", "   "),
        ])
        session, items = load_items(row)

        record = extract_record(session, items[0], Category.CPU, "AM4", mapping, counting_registry)

        assert record["core_count"] is None
        assert record["graphics"] is None
        assert counting_registry.serialize.call_count == 0
        assert counting_registry.custom_serialize.call_count == 0

    def test_empty_custom_value_skips_custom_serializer(self, mapping, counting_registry):
        row = product_row("Corsair Vengeance LPX", specs=[("Speed", ""), ("Modules", "2 x 8GB")])
        session, items = load_items(row)

        record = extract_record(session, items[0], Category.MEMORY, "DDR4", mapping, counting_registry)

        assert record["speed"] is None
        counting_registry.custom_serialize.assert_called_once_with(
            Category.MEMORY, "modules", "2 x 8GB"
        )

    def test_unmapped_label_raises(self, mapping):
        row = product_row("AMD Ryzen 5 5600X", specs=[("Core Count", "6"), ("L3 Cache", "32 MB")])
        session, items = load_items(row)

        with pytest.raises(UnmappedLabel) as exc_info:
            extract_record(session, items[0], Category.CPU, "AM4", mapping)
        assert exc_info.value.label == "L3 Cache"

    def test_malformed_value_raises(self, mapping):
        row = product_row("AMD Ryzen 5 5600X", specs=[("Core Count", "many")])
        session, items = load_items(row)

        with pytest.raises(MalformedValue):
            extract_record(session, items[0], Category.CPU, "AM4", mapping)

    def test_missing_name_raises(self, mapping):
        row = product_row("AMD Ryzen 5 5600X").replace("td__nameWrapper", "td__otherWrapper")
        session, items = load_items(row)

        with pytest.raises(MalformedValue):
            extract_record(session, items[0], Category.CPU, "AM4", mapping)

    def test_extraction_is_idempotent(self, mapping):
        row = product_row("Corsair Vengeance LPX", price="$54.99", specs=[
            ("Speed", "DDR4-3600"),
            ("Modules", "2 x 16GB"),
            ("Color", "Black"),
        ])
        session, items = load_items(row)

        first = extract_record(session, items[0], Category.MEMORY, "DDR4", mapping)
        second = extract_record(session, items[0], Category.MEMORY, "DDR4", mapping)

        assert json.dumps(first) == json.dumps(second)

    def test_case_without_bundled_power_supply(self):
        table = load_mapping_table()
        session, items = load_items(
            product_row("NZXT H5 Flow", specs=[("Power Supply", "None")]),
            product_row("Cooler Master Q300L", specs=[("Power Supply", "500 W")]),
        )

        records = [extract_record(session, item, Category.CASE, "", table) for item in items]

        assert [r["psu"] for r in records] == [None, 500]
