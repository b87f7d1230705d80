"""Tests for mapping table loading, validation and lookup."""

import json

import pytest

from partcrawl.errors import MappingTableError, UnmappedLabel, UnregisteredCustomSerializer
from partcrawl.mapping import (
    load_mapping_table,
    parse_mapping_table,
    validate_mapping_table,
)
from partcrawl.models import Category, FieldSpec
from partcrawl.serializers import DEFAULT_REGISTRY, SerializerRegistry


class TestResolve:
    """Tests for label lookup."""

    def test_resolves_label(self, mapping):
        assert mapping.resolve(Category.CPU, "Core Count") == FieldSpec("core_count", "number")

    def test_trims_surrounding_whitespace(self, mapping):
        assert mapping.resolve(Category.CPU, "  Core Count\n") == FieldSpec("core_count", "number")

    def test_lookup_is_case_sensitive(self, mapping):
        with pytest.raises(UnmappedLabel):
            mapping.resolve(Category.CPU, "core count")

    def test_unmapped_label_names_category_and_label(self, mapping):
        with pytest.raises(UnmappedLabel) as exc_info:
            mapping.resolve(Category.CPU, "L3 Cache")
        assert exc_info.value.category == "cpu"
        assert exc_info.value.label == "L3 Cache"

    def test_labels_are_per_category(self, mapping):
        """A label known for one category is unmapped for another."""
        with pytest.raises(UnmappedLabel):
            mapping.resolve(Category.MOUSE, "Core Count")

    def test_category_without_entries(self, mapping):
        assert Category.OS not in mapping
        with pytest.raises(UnmappedLabel):
            mapping.resolve(Category.OS, "Mode")

    def test_accepts_slug(self, mapping):
        assert mapping.resolve("memory", "Speed") == FieldSpec("speed", "custom")

    def test_fields(self, mapping):
        assert mapping.fields(Category.MEMORY) == {
            "speed": "custom",
            "modules": "custom",
            "color": "list",
        }


class TestParseMappingTable:
    """Tests for structural validation of the JSON table."""

    def test_unknown_category(self):
        with pytest.raises(MappingTableError, match="Unknown category"):
            parse_mapping_table({"gpu": {"Memory": ["memory", "number"]}})

    def test_unknown_kind(self):
        with pytest.raises(MappingTableError, match="unknown serializer kind"):
            parse_mapping_table({"cpu": {"Core Count": ["core_count", "integer"]}})

    def test_descriptor_must_be_pair(self):
        with pytest.raises(MappingTableError, match="expected \\[field_name, kind\\]"):
            parse_mapping_table({"cpu": {"Core Count": "core_count"}})

    @pytest.mark.parametrize("descriptor", [
        ["graphics", ["number"]],
        [["graphics"], "number"],
        [None, "number"],
        ["", "string"],
    ])
    def test_descriptor_element_types(self, descriptor):
        with pytest.raises(MappingTableError, match="must be"):
            parse_mapping_table({"cpu": {"Integrated Graphics": descriptor}})

    def test_reserved_field_names(self):
        with pytest.raises(MappingTableError, match="reserved"):
            parse_mapping_table({"cpu": {"Price": ["price", "number"]}})

    def test_conflicting_kinds_for_one_field(self):
        """Two labels may share a field only with the same kind."""
        with pytest.raises(MappingTableError, match="conflicting kinds"):
            parse_mapping_table({"cpu": {
                "Core Clock": ["core_clock", "number"],
                "Performance Core Clock": ["core_clock", "string"],
            }})

    def test_shared_field_with_same_kind(self):
        table = parse_mapping_table({"cpu": {
            "Core Clock": ["core_clock", "number"],
            "Performance Core Clock": ["core_clock", "number"],
        }})
        assert table.resolve(Category.CPU, "Performance Core Clock").field_name == "core_clock"


class TestValidateMappingTable:
    """Tests for the startup check of custom serializers."""

    def test_unregistered_custom_field(self):
        table = parse_mapping_table({"cpu": {"Core Count": ["core_count", "custom"]}})
        with pytest.raises(UnregisteredCustomSerializer) as exc_info:
            validate_mapping_table(table, DEFAULT_REGISTRY)
        assert exc_info.value.field_name == "core_count"

    def test_registered_custom_field(self):
        table = parse_mapping_table({"cpu": {"Core Count": ["core_count", "custom"]}})
        registry = SerializerRegistry({Category.CPU: {"core_count": int}})
        validate_mapping_table(table, registry)


class TestBundledMappingTable:
    """Tests for the mapping table shipped with the package."""

    def test_covers_every_category(self):
        table = load_mapping_table()
        assert set(table.categories()) == set(Category)

    def test_validates_against_default_registry(self):
        validate_mapping_table(load_mapping_table(), DEFAULT_REGISTRY)

    def test_custom_fields_are_registered(self):
        table = load_mapping_table()
        assert table.resolve(Category.MEMORY, "Speed") == FieldSpec("speed", "custom")
        assert table.resolve(Category.MONITOR, "Resolution") == FieldSpec("resolution", "custom")
        assert table.resolve(Category.CASE, "Power Supply") == FieldSpec("psu", "custom")


class TestLoadMappingTable:
    """Tests for reading mapping tables from disk."""

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "map.json"
        path.write_text(json.dumps({"mouse": {"Maximum DPI": ["max_dpi", "number"]}}))

        table = load_mapping_table(path)

        assert table.resolve(Category.MOUSE, "Maximum DPI") == FieldSpec("max_dpi", "number")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "map.json"
        path.write_text("{not json")
        with pytest.raises(MappingTableError, match="Cannot read mapping table"):
            load_mapping_table(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(MappingTableError):
            load_mapping_table(tmp_path / "missing.json")

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "map.json"
        path.write_text("[]")
        with pytest.raises(MappingTableError, match="must be a JSON object"):
            load_mapping_table(path)
