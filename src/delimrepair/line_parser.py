"""Line parser that reconciles rows broken by delimiters inside values.

Each physical line is split on the delimiter and aligned against the anchor
columns. Extra fields found before a bounded anchor are glued back onto the
preceding free-text column; extra fields at the end are glued onto the last
column. A line that cannot be aligned is held, and on every later failure
the held lines are merged (dropping the oldest first) and retried, so a
value that also contained a line break can be recovered.

Parsing is stateful and must see lines in input order. One parser per file.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from delimrepair.anchor import AnchorColumn, anchor_column_count
from delimrepair.column_stats import FileMetadata
from delimrepair.result import Err, Ok, Result

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParseOutput:
    """Outcome of feeding one line to the parser.

    ``columns`` is None while no alignment has succeeded yet.
    ``unprocessed_lines`` holds earlier lines that were discarded by the
    alignment that just succeeded, in input order.
    """

    columns: list[str] | None
    unprocessed_lines: list[str] = field(default_factory=list)


class LineParser:
    """Aligns delimited lines against anchor columns, merging lines as needed."""

    def __init__(
        self,
        delimiter: str,
        metadata: FileMetadata | Sequence[AnchorColumn],
        merge_separator: str = " ",
    ) -> None:
        if not delimiter:
            raise ValueError("delimiter must be a non-empty string")
        self._delimiter = delimiter
        self._merge_separator = merge_separator
        if isinstance(metadata, FileMetadata):
            self._anchors = tuple(metadata.anchor_columns)
        else:
            self._anchors = tuple(metadata)
        self._column_count = anchor_column_count(self._anchors)
        self._lines: list[str] = []

    @property
    def column_count(self) -> int:
        return self._column_count

    @property
    def pending_lines(self) -> tuple[str, ...]:
        """Lines held because they have not been aligned yet."""
        return tuple(self._lines)

    def parse(self, line: str) -> ParseOutput:
        """Try to parse ``line``, merging it with held lines on failure.

        On success any held lines that the alignment did not use are
        returned as unprocessed and the buffer is cleared. On failure the
        line is held and ``ParseOutput(None, [])`` is returned.
        """
        match self._try_align(line.split(self._delimiter)):
            case Ok(value=columns):
                unprocessed = self._lines
                self._lines = []
                return ParseOutput(columns, unprocessed)
            case Err(error=reason):
                log.debug("Line did not align on its own: %s", reason)

        self._lines.append(line)

        if len(self._lines) > 1:
            for skip_count in range(len(self._lines)):
                fields = [
                    value
                    for held in self._lines[skip_count:]
                    for value in held.split(self._delimiter)
                ]
                match self._try_align(fields):
                    case Ok(value=columns):
                        log.debug(
                            "Merged %d held lines, dropped %d",
                            len(self._lines) - skip_count,
                            skip_count,
                        )
                        unprocessed = self._lines[:skip_count]
                        self._lines = []
                        return ParseOutput(columns, unprocessed)
                    case Err():
                        pass

        return ParseOutput(None, [])

    def flush(self) -> list[str]:
        """Return and clear the held lines, e.g. at end of input."""
        lines = self._lines
        self._lines = []
        return lines

    def _try_align(self, fields: Sequence[str]) -> Result[list[str], str]:
        if len(fields) < self._column_count:
            return Err(f"{len(fields)} fields for {self._column_count} columns")

        result: list[str] = []
        cursor = 0
        for anchor in self._anchors:
            end = cursor + anchor.previous_columns
            if end > len(fields):
                return Err("ran out of fields for free-text columns")
            result.extend(fields[cursor:end])
            cursor = end

            column = anchor.column
            if column is None:
                # end-of-row anchor takes everything left
                rest = fields[cursor:]
                if rest:
                    if not result:
                        return Err("no column to absorb trailing fields")
                    result[-1] = self._merge_separator.join([result[-1], *rest])
                cursor = len(fields)
                continue

            if column.unbounded:
                found = cursor if cursor < len(fields) else None
            else:
                found = next(
                    (
                        i for i in range(cursor, len(fields))
                        if fields[i] in column.unique_values
                    ),
                    None,
                )
            if found is None:
                return Err(f"no known value for column {column.name!r}")

            noise = fields[cursor:found]
            if noise:
                if anchor.previous_columns == 0:
                    return Err(f"unexpected fields before column {column.name!r}")
                result[-1] = self._merge_separator.join([result[-1], *noise])
            result.append(fields[found])
            cursor = found + 1

        if cursor != len(fields):
            return Err(f"{len(fields) - cursor} fields left over")
        return Ok(result)
