"""Parsing block specifications such as ``15M:+1000`` into block chunks."""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Iterable, Optional, Protocol

from cryokit.chunks import BlockChunk, BlockNumbers, BlockRange, block_range_to_block_chunk
from cryokit.errors import ParseError
from cryokit.rpc import RpcError

U64_MAX = 2**64 - 1
U32_MAX = 2**32 - 1

_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_UNSIGNED_RE = re.compile(r"\+?[0-9]+")

_SUFFIX_SCALES = {"b": 1e9, "m": 1e6, "k": 1e3}


class BlockSource(Protocol):
    """Anything that can report the latest block number."""

    def get_block_number(self) -> int:
        ...


class RangePosition(Enum):
    """Where a block reference sits within a range."""

    FIRST = "first"
    LAST = "last"
    NONE = "none"


def _parse_float(text: str) -> Optional[float]:
    if _FLOAT_RE.fullmatch(text) is None:
        return None
    return float(text)


def _parse_unsigned(text: str, limit: int) -> Optional[int]:
    if _UNSIGNED_RE.fullmatch(text) is None:
        return None
    value = int(text)
    return value if value <= limit else None


def _to_u64(value: float) -> int:
    """Convert a float to an unsigned 64-bit integer, truncating and saturating."""
    if math.isnan(value) or value <= 0:
        return 0
    if value >= 2.0**64:
        return U64_MAX
    return int(value)


def _round_half_away(value: float) -> float:
    if not math.isfinite(value) or abs(value) >= 2.0**52:
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _latest(source: BlockSource, message: str) -> int:
    try:
        return int(source.get_block_number())
    except (OSError, RpcError) as exc:
        raise ParseError(message) from exc


def get_latest_block_number(source: BlockSource) -> int:
    """Return the latest block number known to ``source``."""
    return _latest(source, "Error retrieving latest block number")


def parse_block_number(block_ref: str, range_position: RangePosition, source: BlockSource) -> int:
    """Parse one block reference: a number, ``latest``, or a number with a B/M/K suffix."""
    if block_ref == "latest":
        return _latest(source, "Error retrieving latest block number")
    if block_ref == "":
        if range_position is RangePosition.FIRST:
            return 0
        if range_position is RangePosition.LAST:
            return _latest(source, "Error retrieving last block number")
        raise ParseError("invalid input")

    scale = _SUFFIX_SCALES.get(block_ref[-1].lower())
    if scale is not None:
        number = _parse_float(block_ref[:-1])
        if number is None:
            raise ParseError("Error parsing block ref")
        return _to_u64(_round_half_away(scale * number))

    number = _parse_float(block_ref)
    if number is None:
        raise ParseError("Error parsing block ref")
    return _to_u64(number)


def parse_block_range(first_ref: str, second_ref: str, source: BlockSource) -> tuple[int, int]:
    """Parse the two sides of ``first:second`` into an inclusive block range."""
    relative_start = first_ref.startswith("-")
    if relative_start:
        end_block = parse_block_number(second_ref, RangePosition.LAST, source)
        offset = _parse_unsigned(first_ref[1:], U64_MAX)
        if offset is None:
            raise ParseError("start_block parse error")
        start_block = end_block - offset
        if start_block < 0:
            raise ParseError("start_block underflow")
    elif second_ref.startswith("+"):
        start_block = parse_block_number(first_ref, RangePosition.FIRST, source)
        offset = _parse_unsigned(second_ref[1:], U64_MAX)
        if offset is None:
            raise ParseError("start_block parse error")
        end_block = start_block + offset
        if end_block > U64_MAX:
            raise ParseError("end_block underflow")
    else:
        start_block = parse_block_number(first_ref, RangePosition.FIRST, source)
        end_block = parse_block_number(second_ref, RangePosition.LAST, source)

    if second_ref != "latest" and second_ref != "" and not relative_start:
        if end_block == 0:
            raise ParseError("end_block underflow")
        end_block -= 1

    if relative_start:
        start_block += 1

    return start_block, end_block


def parse_block_token(token: str, as_range: bool, source: BlockSource) -> BlockChunk:
    """Parse one token such as ``5000``, ``12M:13M``, ``100:200/5`` or ``2000:5000:1000``."""
    parts = token.replace("_", "").split(":")
    if len(parts) == 1:
        return BlockNumbers([parse_block_number(parts[0], RangePosition.NONE, source)])
    if len(parts) == 2:
        first_ref, second_ref = parts
        pieces = second_ref.split("/")
        n_keep = None
        if len(pieces) == 2:
            n_keep = _parse_unsigned(pieces[1], U32_MAX)
            if n_keep is None:
                raise ParseError("cannot parse block interval size")
            second_ref = pieces[0]
        start_block, end_block = parse_block_range(first_ref, second_ref, source)
        return block_range_to_block_chunk(start_block, end_block, as_range, None, n_keep)
    if len(parts) == 3:
        first_ref, second_ref, third_ref = parts
        start_block, end_block = parse_block_range(first_ref, second_ref, source)
        skip = _parse_unsigned(third_ref, U32_MAX)
        if skip is None:
            raise ParseError("start_block parse error")
        return block_range_to_block_chunk(start_block, end_block, False, skip, None)
    raise ParseError("blocks must be in format block_number or start_block:end_block")


def parse_block_inputs(inputs: str, source: BlockSource) -> list[BlockChunk]:
    """Parse space-separated block tokens; a lone range token stays a range."""
    parts = inputs.split(" ")
    if len(parts) == 1:
        return [parse_block_token(parts[0], True, source)]
    return [parse_block_token(part, False, source) for part in parts]


def apply_reorg_buffer(
    block_chunks: Iterable[BlockChunk], reorg_buffer: int, source: BlockSource
) -> list[BlockChunk]:
    """Keep only chunks whose last block is at least ``reorg_buffer`` blocks old."""
    chunks = list(block_chunks)
    if reorg_buffer == 0:
        return chunks
    latest_block = _latest(source, "reorg buffer parse error")
    max_allowed = latest_block - reorg_buffer
    kept = []
    for chunk in chunks:
        max_block = chunk.max_value()
        if max_block is not None and max_block <= max_allowed:
            kept.append(chunk)
    return kept


__all__ = [
    "BlockNumbers",
    "BlockRange",
    "RangePosition",
    "apply_reorg_buffer",
    "get_latest_block_number",
    "parse_block_inputs",
    "parse_block_number",
    "parse_block_range",
    "parse_block_token",
]