"""Shared fixtures for the crawler test suite."""

from typing import List

import pytest

from partcrawl.mapping import MappingTable, parse_mapping_table
from partcrawl.shutdown import get_shutdown_handler
from partcrawl.tests.fixture_site import product_row

# Every label used by the fixture pages
TEST_MAPPING = {
    "cpu": {
        "Core Count": ["core_count", "number"],
        "Core Clock": ["core_clock", "number"],
        "Integrated Graphics": ["graphics", "string"],
        "SMT": ["smt", "boolean"],
    },
    "memory": {
        "Speed": ["speed", "custom"],
        "Modules": ["modules", "custom"],
        "Color": ["color", "list"],
    },
    "keyboard": {
        "Style": ["style", "string"],
        "Connection Type": ["connection_type", "enum"],
    },
    "mouse": {
        "Maximum DPI": ["max_dpi", "number"],
    },
    "webcam": {
        "FOV": ["fov", "number"],
    },
    "ups": {
        "Capacity (W)": ["capacity_w", "number"],
    },
    "speakers": {
        "Wattage": ["wattage", "number"],
    },
}


@pytest.fixture
def mapping() -> MappingTable:
    """Mapping table complete for the fixture site."""
    return parse_mapping_table(TEST_MAPPING)


@pytest.fixture
def cpu_rows() -> List[str]:
    return [
        product_row("AMD Ryzen 5 5600X", "$129.99", [("Core Count", "6"), ("Core Clock", "3.7 GHz")]),
        product_row("AMD Ryzen 7 5800X3D", "$299.00", [("Core Count", "8"), ("Core Clock", "3.4 GHz")]),
    ]


@pytest.fixture(autouse=True)
def reset_shutdown():
    """Keep the process-wide shutdown flag clear between tests."""
    handler = get_shutdown_handler()
    handler.reset()
    yield
    handler.reset()
