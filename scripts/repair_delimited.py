#!/usr/bin/env python3
"""Repair a delimited file whose values contain the delimiter character.

Column statistics are learned in a first pass (or loaded from the cache
file), then every line is realigned against the bounded columns. Rows that
could be aligned go to --output; lines that could not go to --unprocessed.

Usage:
    python3 scripts/repair_delimited.py --input data/people.txt \
      --output data/people.tsv

    # Explicit column count (first line is data), pipe-delimited output
    python3 scripts/repair_delimited.py --input data/raw.txt --output out.txt \
      --number-of-columns 5 --output-delimiter '|' --max-cardinality 200
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import orjson

from delimrepair.column_stats import InvalidMetadataError
from delimrepair.file_utils import validate_encoding
from delimrepair.pipeline import (
    DEFAULT_MAX_CARDINALITY,
    DEFAULT_METADATA_PATH,
    DEFAULT_UNPROCESSED_PATH,
    RepairConfig,
    repair_file,
)

_ESCAPES = {"\\t": "\t", "\\n": "\n", "\\r": "\r", "\\\\": "\\"}


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def _log(msg: str) -> None:
    """Write human-readable message to stderr."""
    print(msg, file=sys.stderr)


def unescape(value: str) -> str:
    """Decode backslash escapes so a tab can be passed as ``\\t``."""
    out: list[str] = []
    i = 0
    while i < len(value):
        pair = value[i:i + 2]
        if pair in _ESCAPES:
            out.append(_ESCAPES[pair])
            i += 2
        else:
            out.append(value[i])
            i += 1
    return "".join(out)


def delimiter_arg(value: str) -> str:
    decoded = unescape(value)
    if not decoded:
        raise argparse.ArgumentTypeError("delimiter must not be empty")
    return decoded


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {number}")
    return number


def encoding_arg(value: str) -> str:
    try:
        return validate_encoding(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Repair delimited files whose values contain the delimiter.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    # file paths
    parser.add_argument(
        "--input", required=True, type=Path,
        help="The path to the input file to process.",
    )
    parser.add_argument(
        "--output", required=True, type=Path,
        help="The path to the output file to produce.",
    )
    parser.add_argument(
        "--unprocessed", type=Path, default=DEFAULT_UNPROCESSED_PATH,
        help="The path to the file that receives lines that could not be aligned.",
    )
    parser.add_argument(
        "--input-metadata", type=Path, default=DEFAULT_METADATA_PATH,
        help="The path to the column statistics cache for the input file.",
    )
    parser.add_argument(
        "--no-metadata-cache", action="store_true",
        help="Always scan the input and never read or write the statistics cache.",
    )
    # delimiters
    parser.add_argument(
        "--input-delimiter", type=delimiter_arg, default="|",
        help="The input file value delimiter.",
    )
    parser.add_argument(
        "--output-delimiter", type=delimiter_arg, default="\t",
        help="The output file value delimiter.",
    )
    parser.add_argument(
        "--delimiter-replacement", type=unescape, default=" ",
        help="The text placed between values that are merged back into one column.",
    )
    # columns, rows, cardinality
    parser.add_argument(
        "--number-of-columns", type=positive_int, default=None,
        help="Columns per row. If omitted, detected from the first line (header).",
    )
    parser.add_argument(
        "--number-of-rows", type=positive_int, default=None,
        help="Maximum number of rows to write. If omitted there is no limit.",
    )
    parser.add_argument(
        "--max-cardinality", type=int, default=DEFAULT_MAX_CARDINALITY,
        help="Distinct values a column may have before it is treated as free text.",
    )
    # encoding
    parser.add_argument(
        "--input-encoding", type=encoding_arg, default="utf-8",
        help="The input file encoding.",
    )
    parser.add_argument(
        "--output-encoding", type=encoding_arg, default="utf-8",
        help="The output file encoding.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Verbose logging",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> RepairConfig:
    return RepairConfig(
        input_path=args.input,
        output_path=args.output,
        unprocessed_path=args.unprocessed,
        metadata_path=None if args.no_metadata_cache else args.input_metadata,
        input_delimiter=args.input_delimiter,
        output_delimiter=args.output_delimiter,
        merge_separator=args.delimiter_replacement,
        number_of_columns=args.number_of_columns,
        number_of_rows=args.number_of_rows,
        max_cardinality=args.max_cardinality,
        input_encoding=args.input_encoding,
        output_encoding=args.output_encoding,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if not args.input.exists():
        _log(f"Error: input file not found: {args.input}")
        return 1

    try:
        config = config_from_args(args)
        summary = repair_file(config)
    except InvalidMetadataError as exc:
        _log(f"Error: invalid statistics cache {args.input_metadata}: {exc}")
        return 1
    except ValueError as exc:
        _log(f"Error: {exc}")
        return 1

    _log(
        f"Wrote {summary.rows_written} rows to {config.output_path}, "
        f"{summary.unprocessed_lines} unprocessed lines to {config.unprocessed_path}"
    )
    dump_json({"status": "ok", **summary.to_dict()})
    return 0


if __name__ == "__main__":
    sys.exit(main())
