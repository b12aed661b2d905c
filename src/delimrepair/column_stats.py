"""Learned per-column statistics for a delimited file.

A pre-pass over the input records, for every column, the longest value and
the set of distinct values. Once a column has more distinct values than the
configured ceiling it is latched as *unbounded* (free text) and its value
set is discarded. Bounded columns are what the line parser later uses as
anchors to realign rows that contain stray delimiters.

The statistics can be cached as JSON::

    {"columns": [{"cardinality": 2, "maxLength": 5, "name": "side",
                  "unbounded": false, "uniqueValues": ["Dark", "Light"]}]}

``cardinality`` is informational and recomputed on load.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from delimrepair.anchor import AnchorColumn, derive_anchor_columns
from delimrepair.file_utils import iter_file_lines
from delimrepair.io_utils import load_json, save_json

log = logging.getLogger(__name__)


def synthesized_names(count: int) -> list[str]:
    """Column names used when the input has no header line."""
    return [f"col_{i}" for i in range(1, count + 1)]


class InvalidMetadataError(ValueError):
    """Raised when cached column statistics are missing a field or mistyped."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"Missing or invalid type for field: {field_name}.")
        self.field = field_name


@dataclass(slots=True)
class ColumnStat:
    """Statistics for one column, mutated only during the pre-pass."""

    name: str
    max_length: int = 0
    unbounded: bool = False
    unique_values: set[str] = field(default_factory=set)

    @property
    def cardinality(self) -> int | None:
        return None if self.unbounded else len(self.unique_values)

    def observe(self, value: str, max_cardinality: int) -> ColumnStat:
        """Record one raw value. Returns self so calls can be chained."""
        if len(value) > self.max_length:
            self.max_length = len(value)

        if not self.unbounded:
            self.unique_values.add(value)
            if len(self.unique_values) > max_cardinality:
                self.unbounded = True
                self.unique_values.clear()

        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "cardinality": self.cardinality,
            "maxLength": self.max_length,
            "name": self.name,
            "unbounded": self.unbounded,
            "uniqueValues": sorted(self.unique_values),
        }

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> ColumnStat:
        """Build from a cache entry, checking fields in a fixed order.

        Raises:
            InvalidMetadataError: naming the first missing or mistyped field.
        """
        max_length = obj.get("maxLength")
        if not isinstance(max_length, int) or isinstance(max_length, bool) or max_length < 0:
            raise InvalidMetadataError("maxLength")

        name = obj.get("name")
        if not isinstance(name, str):
            raise InvalidMetadataError("name")

        unbounded = obj.get("unbounded")
        if not isinstance(unbounded, bool):
            raise InvalidMetadataError("unbounded")

        unique_values = obj.get("uniqueValues")
        if not isinstance(unique_values, list) or not all(
            isinstance(v, str) for v in unique_values
        ):
            raise InvalidMetadataError("uniqueValues")

        return cls(
            name=name,
            max_length=max_length,
            unbounded=unbounded,
            unique_values=set(unique_values),
        )


class FileMetadata:
    """Ordered column statistics for one input file."""

    def __init__(self, columns: list[ColumnStat], *, has_header: bool = False) -> None:
        self._columns = columns
        self._anchor_columns: list[AnchorColumn] | None = None
        self.has_header = has_header

    @property
    def columns(self) -> list[ColumnStat]:
        return self._columns

    @property
    def anchor_columns(self) -> list[AnchorColumn]:
        """Anchors derived from the columns, computed once."""
        if self._anchor_columns is None:
            self._anchor_columns = derive_anchor_columns(self._columns)
        return self._anchor_columns

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": [c.to_dict() for c in self._columns],
            "hasHeader": self.has_header,
        }

    @classmethod
    def from_dict(cls, obj: Any) -> FileMetadata:
        if not isinstance(obj, dict):
            raise InvalidMetadataError("columns")
        raw_columns = obj.get("columns")
        if not isinstance(raw_columns, list) or not all(
            isinstance(c, dict) for c in raw_columns
        ):
            raise InvalidMetadataError("columns")
        columns = [ColumnStat.from_dict(c) for c in raw_columns]
        has_header = obj.get("hasHeader")
        if has_header is None:
            # caches without the key: synthesized names mean no header line
            has_header = [c.name for c in columns] != synthesized_names(len(columns))
        elif not isinstance(has_header, bool):
            raise InvalidMetadataError("hasHeader")
        return cls(columns, has_header=has_header)

    @classmethod
    def load(cls, path: Path) -> FileMetadata | None:
        """Load cached statistics, or None when the cache file does not exist.

        Raises:
            InvalidMetadataError: if the cache exists but is malformed.
        """
        try:
            payload = load_json(path)
        except FileNotFoundError:
            return None
        return cls.from_dict(payload)

    def save(self, path: Path) -> None:
        save_json(self.to_dict(), path)

    @classmethod
    def create(
        cls,
        path: Path,
        *,
        delimiter: str,
        max_cardinality: int,
        metadata_path: Path | None = None,
        number_of_columns: int | None = None,
        encoding: str = "utf-8",
    ) -> FileMetadata:
        """Learn column statistics from ``path``, using the cache when present.

        With ``number_of_columns`` the columns are named ``col_1..col_N`` and
        every line is data. Without it, the first line supplies the names.
        Lines whose field count differs from the column count are ignored.
        """
        if metadata_path is not None:
            cached = cls.load(metadata_path)
            if cached is not None:
                log.info("Loaded column statistics from %s", metadata_path)
                return cached
            log.info("No statistics cache at %s; scanning %s", metadata_path, path)

        columns: list[ColumnStat] | None = None
        if number_of_columns:
            columns = [ColumnStat(name) for name in synthesized_names(number_of_columns)]

        has_header = columns is None
        observed = 0
        skipped = 0
        for line in iter_file_lines(path, encoding=encoding):
            values = line.split(delimiter)
            if columns is None:
                columns = [ColumnStat(v) for v in values]
            elif len(values) == len(columns):
                for column, value in zip(columns, values):
                    column.observe(value, max_cardinality)
                observed += 1
            else:
                skipped += 1

        result = cls(columns or [], has_header=has_header and columns is not None)
        log.debug(
            "Observed %d lines, skipped %d with a mismatched field count",
            observed, skipped,
        )
        if metadata_path is not None:
            result.save(metadata_path)
        return result
