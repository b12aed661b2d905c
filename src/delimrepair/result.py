"""Tagged success/failure result used by the alignment engine.

Malformed lines are the common case when repairing delimited files, so a
failed alignment is returned as a value rather than raised.

Usage::

    match parser_result:
        case Ok(value=columns): write(columns)
        case Err(error=reason): log.debug(reason)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success case of Result[T, E]."""

    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure case of Result[T, E].

    Keeps the reason the attempt failed so callers can report it.
    """

    error: E


Result: TypeAlias = Union[Ok[T], Err[E]]
