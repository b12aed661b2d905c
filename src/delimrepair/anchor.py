"""Anchor columns: fixed points used to realign a row split on stray delimiters.

Given the columns::

    first_name (unbounded), last_name (unbounded), side (bounded), notes (unbounded)

the anchors are::

    AnchorColumn(previous_columns=2, column=side)
    AnchorColumn(previous_columns=1, column=None)

The second entry is the invisible end-of-row anchor that absorbs every
remaining field into ``notes``.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from delimrepair.column_stats import ColumnStat


@dataclass(frozen=True, slots=True)
class AnchorColumn:
    """A bounded column plus the unbounded columns right before it."""

    previous_columns: int
    # None only for the trailing end-of-row anchor
    column: ColumnStat | None = None


def derive_anchor_columns(columns: Sequence[ColumnStat]) -> list[AnchorColumn]:
    """Compress column statistics into an ordered list of anchors.

    Every bounded column becomes an anchor carrying the count of unbounded
    columns since the previous anchor. A trailing run of unbounded columns
    becomes one final anchor with no column. Empty input gives no anchors.
    """
    result: list[AnchorColumn] = []
    run = 0
    for column in columns:
        if column.unbounded:
            run += 1
        else:
            result.append(AnchorColumn(previous_columns=run, column=column))
            run = 0
    if run:
        result.append(AnchorColumn(previous_columns=run))
    return result


def anchor_column_count(anchors: Sequence[AnchorColumn]) -> int:
    """Number of logical columns the anchors describe."""
    return sum(a.previous_columns + (a.column is not None) for a in anchors)
