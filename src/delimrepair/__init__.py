"""Repair delimited text files whose values contain the delimiter."""

from delimrepair.anchor import AnchorColumn, anchor_column_count, derive_anchor_columns
from delimrepair.column_stats import ColumnStat, FileMetadata, InvalidMetadataError
from delimrepair.line_parser import LineParser, ParseOutput
from delimrepair.pipeline import RepairConfig, RepairSummary, repair_file
from delimrepair.result import Err, Ok, Result

__all__ = [
    "AnchorColumn",
    "ColumnStat",
    "Err",
    "FileMetadata",
    "InvalidMetadataError",
    "LineParser",
    "Ok",
    "ParseOutput",
    "RepairConfig",
    "RepairSummary",
    "Result",
    "anchor_column_count",
    "derive_anchor_columns",
    "repair_file",
]
