"""Serializers converting raw listing text into typed field values.

Generic kinds are shared by every category:

- ``number``: first decimal number in the text, decoration stripped
- ``boolean``: "Yes" / "No"
- ``list``: comma separated values, each trimmed
- ``string``: trimmed text with collapsed whitespace
- ``enum``: like ``string`` but lower-cased

Fields whose text needs category knowledge (ranges, units, compound values)
are marked ``custom`` in the mapping table and handled by a function
registered for that exact (category, field name) pair.
"""

import re
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from partcrawl.errors import MalformedValue, UnregisteredCustomSerializer
from partcrawl.models import Category

__all__ = [
    "CUSTOM_KIND",
    "GENERIC_KINDS",
    "LIST_DELIMITER",
    "serialize_number",
    "serialize_boolean",
    "serialize_list",
    "serialize_string",
    "serialize_enum",
    "CUSTOM_SERIALIZERS",
    "SerializerRegistry",
    "DEFAULT_REGISTRY",
]

Number = Union[int, float]
Serializer = Callable[[str], Any]

CUSTOM_KIND = "custom"
LIST_DELIMITER = ","

NUMBER_RE = re.compile(r"[-+]?\d[\d,]*(?:\.\d+)?")
UNSIGNED_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
WHITESPACE_RE = re.compile(r"\s+")


# =============================================================================
# Generic Serializers
# =============================================================================

def _to_number(token: str) -> Number:
    cleaned = token.replace(",", "")
    if "." in cleaned:
        return float(cleaned)
    return int(cleaned)


def _numbers(raw: str) -> List[Number]:
    return [_to_number(m) for m in UNSIGNED_RE.findall(raw)]


def serialize_number(raw: Optional[str]) -> Number:
    """Parse the first number in ``raw``, ignoring currency symbols and units.

    "$129.99" -> 129.99, "1,299 MB" -> 1299, "6" -> 6
    """
    if raw is None or not raw.strip():
        raise MalformedValue("number", raw, "empty text")
    match = NUMBER_RE.search(raw)
    if not match:
        raise MalformedValue("number", raw, "no digits found")
    return _to_number(match.group(0))


def serialize_boolean(raw: str) -> bool:
    text = raw.strip().lower()
    if text == "yes":
        return True
    if text == "no":
        return False
    raise MalformedValue("boolean", raw, "expected 'Yes' or 'No'")


def serialize_string(raw: str) -> str:
    return WHITESPACE_RE.sub(" ", raw).strip()


def serialize_enum(raw: str) -> str:
    return serialize_string(raw).lower()


def serialize_list(raw: str) -> List[str]:
    """Split on the list delimiter; each element is normalized like a string."""
    parts = (serialize_string(part) for part in raw.split(LIST_DELIMITER))
    return [part for part in parts if part]


_GENERIC: Mapping[str, Serializer] = MappingProxyType({
    "number": serialize_number,
    "boolean": serialize_boolean,
    "list": serialize_list,
    "string": serialize_string,
    "enum": serialize_enum,
})

GENERIC_KINDS = frozenset(_GENERIC)


# =============================================================================
# Custom Serializers
# =============================================================================

def _range(kind: str) -> Serializer:
    """Build a serializer for "600 - 1500 RPM" style ranges -> [600, 1500].

    A single value is returned as a degenerate range.
    """
    def serialize(raw: str) -> List[Number]:
        values = _numbers(raw)
        if len(values) == 1:
            return [values[0], values[0]]
        if len(values) == 2:
            return values
        raise MalformedValue(kind, raw, "expected a value or a 'min - max' range")
    return serialize


def _memory_speed(raw: str) -> List[int]:
    # "DDR4-3200" -> [4, 3200]
    match = re.search(r"DDR(\d)\s*-\s*(\d+)", raw, re.IGNORECASE)
    if not match:
        raise MalformedValue("memory speed", raw, "expected 'DDRn-speed'")
    return [int(match.group(1)), int(match.group(2))]


def _memory_modules(raw: str) -> List[Number]:
    # "2 x 16GB" -> [2, 16]; module size is always reported in GB
    match = re.search(r"(\d+)\s*x\s*(\d+(?:\.\d+)?)\s*(GB|MB)", raw, re.IGNORECASE)
    if not match:
        raise MalformedValue("memory modules", raw, "expected 'count x sizeGB'")
    count = int(match.group(1))
    size = _to_number(match.group(2))
    if match.group(3).upper() == "MB":
        size = size / 1024
    return [count, size]


def _capacity_gb(raw: str) -> Number:
    # "2 TB" -> 2000, "500 GB" -> 500
    match = re.search(r"(\d+(?:\.\d+)?)\s*(TB|GB)", raw, re.IGNORECASE)
    if not match:
        raise MalformedValue("capacity", raw, "expected a size in GB or TB")
    size = _to_number(match.group(1))
    if match.group(2).upper() == "TB":
        size = size * 1000
    return size


def _resolution(raw: str) -> List[int]:
    # "2560 x 1440" -> [2560, 1440]
    match = re.search(r"(\d+)\s*x\s*(\d+)", raw)
    if not match:
        raise MalformedValue("resolution", raw, "expected 'width x height'")
    return [int(match.group(1)), int(match.group(2))]


def _efficiency(raw: str) -> str:
    # "80+ Gold" -> "gold", plain "80+" -> "standard"
    text = serialize_enum(raw)
    if not text.startswith("80+"):
        raise MalformedValue("efficiency", raw, "expected an 80+ rating")
    return text[len("80+"):].strip() or "standard"


def _frequency_response(raw: str) -> List[Number]:
    # "20 Hz - 20 kHz" -> [20, 20000]
    values: List[Number] = []
    for number, unit in re.findall(r"(\d+(?:\.\d+)?)\s*(kHz|Hz)", raw, re.IGNORECASE):
        value = _to_number(number)
        if unit.lower() == "khz":
            value = value * 1000
        values.append(value)
    if len(values) != 2:
        raise MalformedValue("frequency response", raw, "expected 'min Hz - max kHz'")
    return values


def _volume_litres(raw: str) -> float:
    # "44.2 L" -> 44.2; cubic feet are converted
    match = re.search(r"(\d+(?:\.\d+)?)\s*(L|ft³|ft3)\b", raw)
    if not match:
        raise MalformedValue("volume", raw, "expected litres or cubic feet")
    value = float(match.group(1))
    if match.group(2) != "L":
        value = round(value * 28.3168, 1)
    return value


def _included_psu_watts(raw: str) -> Optional[Number]:
    # Cases list the bundled supply's wattage, or "None" without one
    if raw.strip().lower() == "none":
        return None
    return serialize_number(raw)


CUSTOM_SERIALIZERS: Mapping[Category, Mapping[str, Serializer]] = MappingProxyType({
    Category.MEMORY: {
        "speed": _memory_speed,
        "modules": _memory_modules,
    },
    Category.CPU_COOLER: {
        "fan_rpm": _range("fan rpm"),
        "noise_level": _range("noise level"),
    },
    Category.CASE_FAN: {
        "rpm": _range("rpm"),
        "airflow": _range("airflow"),
        "noise_level": _range("noise level"),
    },
    Category.INTERNAL_HARD_DRIVE: {
        "capacity": _capacity_gb,
    },
    Category.EXTERNAL_HARD_DRIVE: {
        "capacity": _capacity_gb,
    },
    Category.MONITOR: {
        "resolution": _resolution,
    },
    Category.POWER_SUPPLY: {
        "efficiency": _efficiency,
    },
    Category.HEADPHONES: {
        "frequency_response": _frequency_response,
    },
    Category.SPEAKERS: {
        "frequency_response": _frequency_response,
    },
    Category.CASE: {
        "external_volume": _volume_litres,
        "psu": _included_psu_watts,
    },
})


# =============================================================================
# Registry
# =============================================================================

class SerializerRegistry:
    """Dispatches raw text to generic or custom serializers.

    Read-only after construction, so one instance is shared by every
    concurrent traversal.
    """

    def __init__(
        self,
        custom: Optional[Mapping[Category, Mapping[str, Serializer]]] = None,
    ) -> None:
        table: Dict[Category, Mapping[str, Serializer]] = {}
        for category, fields in (custom if custom is not None else CUSTOM_SERIALIZERS).items():
            table[Category(category)] = MappingProxyType(dict(fields))
        self._custom = MappingProxyType(table)

    def is_known_kind(self, kind: str) -> bool:
        return kind in GENERIC_KINDS or kind == CUSTOM_KIND

    def has_custom(self, category: Category, field_name: str) -> bool:
        return field_name in self._custom.get(Category(category), {})

    def serialize(self, kind: str, raw: str) -> Any:
        """Serialize ``raw`` with a generic kind."""
        serializer = _GENERIC.get(kind)
        if serializer is None:
            raise ValueError(f"Unknown serializer kind '{kind}'")
        return serializer(raw)

    def custom_serialize(self, category: Category, field_name: str, raw: str) -> Any:
        """Serialize ``raw`` with the function registered for (category, field).

        Raises:
            UnregisteredCustomSerializer: No function is registered for the
                pair. The mapping table is validated against the registry at
                startup, so this means a broken setup.
        """
        serializer = self._custom.get(Category(category), {}).get(field_name)
        if serializer is None:
            raise UnregisteredCustomSerializer(str(category), field_name)
        return serializer(raw)


DEFAULT_REGISTRY = SerializerRegistry()
