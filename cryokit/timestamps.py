"""Parsing timestamp specifications such as ``-1d:latest`` into block chunks."""

from __future__ import annotations

import math
import re
from typing import Optional, Protocol

from cryokit.blocks import RangePosition, get_latest_block_number
from cryokit.chunks import BlockChunk, BlockNumbers, block_range_to_block_chunk
from cryokit.errors import ParseError
from cryokit.rpc import RpcError

U64_MAX = 2**64 - 1
U32_MAX = 2**32 - 1

_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_UNSIGNED_RE = re.compile(r"\+?[0-9]+")

# Suffixes are case sensitive: "m" is minutes, "M" is months of 30 days.
_UNIT_SECONDS = {
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 86400 * 7,
    "M": 86400 * 30,
    "y": 86400 * 365,
}


class TimestampSource(Protocol):
    """Anything that reports the latest block and the timestamp of a block."""

    def get_block_number(self) -> int:
        ...

    def get_block_timestamp(self, number: int) -> int:
        ...


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


def _block_timestamp(source: TimestampSource, number: int, message: str) -> int:
    try:
        return int(source.get_block_timestamp(number))
    except (OSError, RpcError) as exc:
        raise ParseError(message) from exc


def scale_timestamp(timestamp_ref: str, metric_scale: int) -> int:
    """Parse a number followed by a one-letter unit and scale it to seconds."""
    number = _parse_float(timestamp_ref[:-1])
    if number is None:
        raise ParseError("Error parsing timestamp ref")
    return _to_u64(metric_scale * number)


def get_latest_timestamp(source: TimestampSource) -> int:
    """Return the timestamp of the latest block."""
    latest_block_number = get_latest_block_number(source)
    return _block_timestamp(source, latest_block_number, "Error fetching latest block")


def parse_timestamp_number(
    timestamp_ref: str, range_position: RangePosition, source: TimestampSource
) -> int:
    """Parse one timestamp reference: seconds, ``latest``, or a number with a unit."""
    if timestamp_ref == "latest":
        return get_latest_timestamp(source)
    if timestamp_ref == "":
        if range_position is RangePosition.FIRST:
            return 0
        if range_position is RangePosition.LAST:
            return get_latest_timestamp(source)
        raise ParseError("invalid input")

    scale = _UNIT_SECONDS.get(timestamp_ref[-1])
    if scale is not None:
        return scale_timestamp(timestamp_ref, scale)

    number = _parse_float(timestamp_ref)
    if number is None:
        raise ParseError("Error parsing timestamp ref")
    return _to_u64(number)


def parse_timestamp_range(
    first_ref: str, second_ref: str, source: TimestampSource
) -> tuple[int, int]:
    """Parse the two sides of ``first:second`` into a pair of timestamps."""
    relative_start = first_ref.startswith("-")
    if relative_start:
        end_timestamp = parse_timestamp_number(second_ref, RangePosition.LAST, source)
        offset = parse_timestamp_number(first_ref[1:], RangePosition.NONE, source)
        start_timestamp = end_timestamp - offset
        if start_timestamp < 0:
            raise ParseError("start_timestamp underflow")
    elif second_ref.startswith("+"):
        start_timestamp = parse_timestamp_number(first_ref, RangePosition.FIRST, source)
        offset = parse_timestamp_number(second_ref[1:], RangePosition.NONE, source)
        end_timestamp = start_timestamp + offset
        if end_timestamp > U64_MAX:
            raise ParseError("end_timestamp overflow")
    else:
        start_timestamp = parse_timestamp_number(first_ref, RangePosition.FIRST, source)
        end_timestamp = parse_timestamp_number(second_ref, RangePosition.LAST, source)

    if second_ref != "latest" and second_ref != "" and not relative_start:
        if end_timestamp == 0:
            raise ParseError("end_timestamp underflow")
        end_timestamp -= 1

    return start_timestamp, end_timestamp


def timestamp_to_block_number(timestamp: int, source: TimestampSource) -> int:
    """Return the last block whose timestamp is not after ``timestamp``.

    Uses a binary search over block numbers; a timestamp before every block
    gives block 0.
    """
    latest_block_number = get_latest_block_number(source)
    message = "Error fetching block for timestamp"

    low, high = 0, latest_block_number
    mid = 0
    block_timestamp = 0
    while low <= high:
        mid = (low + high) // 2
        block_timestamp = _block_timestamp(source, mid, message)
        if block_timestamp == timestamp:
            return mid
        if block_timestamp < timestamp:
            low = mid + 1
        else:
            high = mid - 1

    if mid > 0 and block_timestamp > timestamp:
        return mid - 1
    return mid


def parse_timestamp_token(token: str, as_range: bool, source: TimestampSource) -> BlockChunk:
    """Parse one token such as ``1700000000``, ``-1d:latest`` or ``a:b/5`` into blocks."""
    parts = token.replace("_", "").split(":")
    if len(parts) == 1:
        timestamp = parse_timestamp_number(parts[0], RangePosition.NONE, source)
        return BlockNumbers([timestamp_to_block_number(timestamp, source)])
    if len(parts) == 2:
        first_ref, second_ref = parts
        pieces = second_ref.split("/")
        n_keep = None
        if len(pieces) == 2:
            n_keep = _parse_unsigned(pieces[1], U32_MAX)
            if n_keep is None:
                raise ParseError("cannot parse timestamp interval size")
            second_ref = pieces[0]
        start_timestamp, end_timestamp = parse_timestamp_range(first_ref, second_ref, source)
        start_block = timestamp_to_block_number(start_timestamp, source)
        end_block = timestamp_to_block_number(end_timestamp, source)
        return block_range_to_block_chunk(start_block, end_block, as_range, None, n_keep)
    raise ParseError(
        "timestamps must be in format timestamp or start_timestamp:end_timestamp"
    )


def parse_timestamp_inputs(inputs: str, source: TimestampSource) -> list[BlockChunk]:
    """Parse space-separated timestamp tokens; a lone range token stays a range."""
    parts = inputs.split(" ")
    if len(parts) == 1:
        return [parse_timestamp_token(parts[0], True, source)]
    return [parse_timestamp_token(part, False, source) for part in parts]