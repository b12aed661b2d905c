"""Streaming access to encoded text files."""
from __future__ import annotations

import codecs
from collections.abc import Iterator
from pathlib import Path


def iter_file_lines(path: Path, *, encoding: str = "utf-8") -> Iterator[str]:
    """Yield the lines of a text file without their line terminators.

    ``\\n``, ``\\r\\n`` and a lone ``\\r`` all end a line. A final newline
    does not produce a trailing empty line.
    """
    with open(path, encoding=encoding, newline=None) as f:
        for line in f:
            yield line[:-1] if line.endswith("\n") else line


def validate_encoding(name: str) -> str:
    """Return the canonical codec name for ``name``.

    Raises:
        ValueError: if Python has no text codec registered under ``name``.
    """
    try:
        info = codecs.lookup(name)
    except LookupError:
        raise ValueError(f"Unknown text encoding: {name!r}") from None
    if not getattr(info, "_is_text_encoding", True):
        raise ValueError(f"Not a text encoding: {name!r}")
    return info.name
