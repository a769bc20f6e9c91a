"""Block chunks: explicit block numbers or inclusive block ranges."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar, Union

from cryokit.errors import ParseError

T = TypeVar("T")


@dataclass
class BlockNumbers:
    """An explicit list of block numbers."""

    numbers: list[int]

    def max_value(self) -> Optional[int]:
        """Return the highest block number, or None when the list is empty."""
        return max(self.numbers, default=None)


@dataclass(frozen=True)
class BlockRange:
    """An inclusive range of block numbers."""

    start: int
    end: int

    def max_value(self) -> Optional[int]:
        """Return the last block of the range."""
        return self.end


BlockChunk = Union[BlockNumbers, BlockRange]


def evenly_spaced_subset(items: Sequence[T], subset_length: int) -> list[T]:
    """Pick ``subset_length`` items spread evenly from first to last."""
    if subset_length == 0 or len(items) == 0:
        return []
    if subset_length >= len(items):
        return list(items)
    if subset_length == 1:
        return [items[0]]
    interval = (len(items) - 1) / (subset_length - 1)
    subset = []
    accumulator = 0.0
    for _ in range(subset_length):
        subset.append(items[math.floor(accumulator)])
        accumulator += interval
    return subset


def block_range_to_block_chunk(
    start_block: int,
    end_block: int,
    as_range: bool = False,
    skip: Optional[int] = None,
    n_blocks: Optional[int] = None,
) -> BlockChunk:
    """Turn an inclusive block range into a chunk.

    ``n_blocks`` keeps that many evenly spaced blocks, ``as_range`` keeps the
    range itself, and ``skip`` keeps every ``skip``-th block.
    """
    if end_block < start_block:
        raise ParseError("end_block should not be less than start_block")
    blocks = range(start_block, end_block + 1)
    if n_blocks is not None:
        return BlockNumbers(evenly_spaced_subset(blocks, n_blocks))
    if as_range:
        return BlockRange(start_block, end_block)
    if skip is not None:
        if skip <= 0:
            raise ParseError("block interval size must be positive")
        return BlockNumbers(list(blocks[::skip]))
    return BlockNumbers(list(blocks))