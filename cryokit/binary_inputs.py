"""Hex string decoding and parquet column references for binary arguments."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from cryokit.errors import ParseError

_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")


@dataclass(frozen=True)
class FileColumnReference:
    """A file path and the column to read from it."""

    path: str
    column: str


def hex_string_to_binary(hex_string: str) -> bytes:
    """Decode a hex string, with or without a ``0x`` prefix."""
    digits = hex_string.removeprefix("0x")
    if _HEX_RE.fullmatch(digits) is None:
        raise ParseError("could not parse data as hex")
    return bytes.fromhex(digits)


def hex_strings_to_binary(hex_strings: Iterable[str]) -> list[bytes]:
    """Decode each hex string in turn."""
    return [hex_string_to_binary(text) for text in hex_strings]


def parse_file_column_reference(path: str, default_column: str) -> FileColumnReference:
    """Split ``path[:column]`` into its path and column."""
    if ":" not in path:
        return FileColumnReference(path, default_column)
    pieces = path.split(":")
    if len(pieces) != 2:
        raise ParseError("could not parse path column")
    return FileColumnReference(pieces[0], pieces[1])


def binary_input_label(path: str) -> Optional[str]:
    """Label for values read from a file: the part of its stem after the last ``__``."""
    stem = Path(path).stem
    if not stem:
        return None
    return stem.split("__")[-1]