"""Output sinks receiving one finished record list per category.

Sinks are called from worker threads, one call per category. File sinks
write each category to its own file through a temporary file and an atomic
rename, so concurrent calls never interleave.
"""

import csv
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from partcrawl.logging_config import get_logger
from partcrawl.models import Category, Record

__all__ = [
    "Sink",
    "JsonDirectorySink",
    "CsvDirectorySink",
    "MemorySink",
    "record_to_row",
    "SINK_FORMATS",
    "create_sink",
]

logger = get_logger("sinks")


class Sink(ABC):
    """Receives the records of a finished category."""

    @abstractmethod
    def emit(self, category: Category, records: Sequence[Record]) -> None:
        """Store ``records`` as the output of ``category``."""


def _atomic_write(path: Path, write) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
            write(f)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class JsonDirectorySink(Sink):
    """Writes ``<output_dir>/json/<category>.json`` as a JSON array."""

    def __init__(self, output_dir: Union[str, Path]):
        self.directory = Path(output_dir) / "json"

    def path_for(self, category: Category) -> Path:
        return self.directory / f"{Category(category).value}.json"

    def emit(self, category: Category, records: Sequence[Record]) -> None:
        path = self.path_for(category)
        _atomic_write(path, lambda f: json.dump(list(records), f, ensure_ascii=False))
        logger.info(f"Wrote {len(records)} records to {path}")


def record_to_row(record: Record) -> Dict[str, Any]:
    """Flatten a record for CSV: list values become JSON arrays, None stays empty."""
    row: Dict[str, Any] = {}
    for key, value in record.items():
        if isinstance(value, list):
            row[key] = json.dumps(value, ensure_ascii=False)
        elif value is None:
            row[key] = ""
        else:
            row[key] = value
    return row


class CsvDirectorySink(Sink):
    """Writes ``<output_dir>/csv/<category>.csv``.

    Columns are ``name``, ``price`` and then every other field in order of
    first appearance.
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.directory = Path(output_dir) / "csv"

    def path_for(self, category: Category) -> Path:
        return self.directory / f"{Category(category).value}.csv"

    def emit(self, category: Category, records: Sequence[Record]) -> None:
        fieldnames: List[str] = ["name", "price"]
        for record in records:
            for key in record:
                if key not in fieldnames:
                    fieldnames.append(key)

        def write(f):
            writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
            writer.writeheader()
            for record in records:
                writer.writerow(record_to_row(record))

        path = self.path_for(category)
        _atomic_write(path, write)
        logger.info(f"Wrote {len(records)} records to {path}")


class MemorySink(Sink):
    """Keeps emitted results in memory, keyed by category."""

    def __init__(self) -> None:
        self.results: Dict[Category, List[Record]] = {}
        self.calls: List[Category] = []
        self._lock = threading.Lock()

    def emit(self, category: Category, records: Sequence[Record]) -> None:
        with self._lock:
            self.results[Category(category)] = list(records)
            self.calls.append(Category(category))


SINK_FORMATS = {
    "json": JsonDirectorySink,
    "csv": CsvDirectorySink,
}


def create_sink(output_format: str, output_dir: Union[str, Path]) -> Sink:
    """Create a file sink for ``output_format`` ('json' or 'csv')."""
    try:
        sink_class = SINK_FORMATS[output_format]
    except KeyError:
        raise ValueError(
            f"Unknown output format '{output_format}'. Available: {list(SINK_FORMATS)}"
        ) from None
    return sink_class(output_dir)
