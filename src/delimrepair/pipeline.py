"""End-to-end repair of one delimited file.

Learns (or loads) column statistics, streams the input through a
LineParser and writes aligned rows to the output file. Lines that could not
be aligned are written verbatim to a separate unprocessed file.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from delimrepair.column_stats import FileMetadata
from delimrepair.file_utils import iter_file_lines, validate_encoding
from delimrepair.line_parser import LineParser

log = logging.getLogger(__name__)

DEFAULT_UNPROCESSED_PATH = Path("unprocessed.txt")
DEFAULT_METADATA_PATH = Path("input-metadata.json")
DEFAULT_MAX_CARDINALITY = 1000


@dataclass(frozen=True, slots=True)
class RepairConfig:
    """Settings for a single repair run."""

    input_path: Path
    output_path: Path
    unprocessed_path: Path = DEFAULT_UNPROCESSED_PATH
    metadata_path: Path | None = DEFAULT_METADATA_PATH  # None disables the cache
    input_delimiter: str = "|"
    output_delimiter: str = "\t"
    merge_separator: str = " "
    number_of_columns: int | None = None
    number_of_rows: int | None = None
    max_cardinality: int = DEFAULT_MAX_CARDINALITY
    input_encoding: str = "utf-8"
    output_encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if not self.input_delimiter:
            raise ValueError("input_delimiter must not be empty")
        if not self.output_delimiter:
            raise ValueError("output_delimiter must not be empty")
        if self.number_of_columns is not None and self.number_of_columns <= 0:
            raise ValueError(
                f"number_of_columns must be > 0, got {self.number_of_columns}"
            )
        if self.number_of_rows is not None and self.number_of_rows <= 0:
            raise ValueError(f"number_of_rows must be > 0, got {self.number_of_rows}")
        if self.max_cardinality < 0:
            raise ValueError(f"max_cardinality must be >= 0, got {self.max_cardinality}")
        validate_encoding(self.input_encoding)
        validate_encoding(self.output_encoding)


@dataclass(frozen=True, slots=True)
class RepairSummary:
    """Counters reported after a repair run."""

    lines_read: int
    rows_written: int
    unprocessed_lines: int
    columns: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines_read": self.lines_read,
            "rows_written": self.rows_written,
            "unprocessed_lines": self.unprocessed_lines,
            "columns": list(self.columns),
        }


def repair_file(config: RepairConfig) -> RepairSummary:
    """Repair ``config.input_path`` into ``config.output_path``.

    When the column names came from a header line, that line is copied to
    the output with the output delimiter and is not parsed. Lines still held
    by the parser when input ends are reported as unprocessed.

    Both output files appear only once the whole input has been written. A
    failure part way, such as a value the output encoding cannot represent,
    leaves neither file behind.

    Raises:
        InvalidMetadataError: if the statistics cache exists but is malformed.
        UnicodeError: if the input cannot be decoded or a value encoded.
    """
    metadata = FileMetadata.create(
        config.input_path,
        delimiter=config.input_delimiter,
        max_cardinality=config.max_cardinality,
        metadata_path=config.metadata_path,
        number_of_columns=config.number_of_columns,
        encoding=config.input_encoding,
    )
    column_names = tuple(c.name for c in metadata.columns)
    log.info(
        "Parsing %s with %d columns (%d bounded)",
        config.input_path,
        len(column_names),
        sum(not c.unbounded for c in metadata.columns),
    )

    parser = LineParser(config.input_delimiter, metadata, config.merge_separator)
    lines_read = 0
    rows_written = 0
    unprocessed_count = 0
    skip_header = metadata.has_header

    config.output_path.parent.mkdir(parents=True, exist_ok=True)
    config.unprocessed_path.parent.mkdir(parents=True, exist_ok=True)
    # written under temporary names and moved into place only on success
    partial_output = _partial_path(config.output_path)
    partial_unprocessed = _partial_path(config.unprocessed_path)
    try:
        with (
            open(partial_output, "w", encoding=config.output_encoding, newline="") as out,
            open(
                partial_unprocessed, "w", encoding=config.output_encoding, newline=""
            ) as unprocessed,
        ):
            for line in iter_file_lines(config.input_path, encoding=config.input_encoding):
                lines_read += 1
                if skip_header:
                    skip_header = False
                    out.write(config.output_delimiter.join(line.split(config.input_delimiter)))
                    out.write("\n")
                    continue

                output = parser.parse(line)
                for held in output.unprocessed_lines:
                    unprocessed.write(held + "\n")
                unprocessed_count += len(output.unprocessed_lines)
                if output.columns is not None:
                    out.write(config.output_delimiter.join(output.columns))
                    out.write("\n")
                    rows_written += 1
                    if (
                        config.number_of_rows is not None
                        and rows_written >= config.number_of_rows
                    ):
                        log.info("Reached row limit of %d", config.number_of_rows)
                        break

            leftover = parser.flush()
            if leftover:
                log.warning(
                    "%d lines could not be aligned before end of input", len(leftover)
                )
            for held in leftover:
                unprocessed.write(held + "\n")
            unprocessed_count += len(leftover)
    except BaseException:
        partial_output.unlink(missing_ok=True)
        partial_unprocessed.unlink(missing_ok=True)
        raise

    partial_output.replace(config.output_path)
    partial_unprocessed.replace(config.unprocessed_path)

    return RepairSummary(
        lines_read=lines_read,
        rows_written=rows_written,
        unprocessed_lines=unprocessed_count,
        columns=column_names,
    )


def _partial_path(path: Path) -> Path:
    return path.with_name(path.name + ".partial")
