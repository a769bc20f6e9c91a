"""Pieces of partition planning: time dimension, call data and chunk order."""

from __future__ import annotations

import random
from enum import Enum
from typing import Optional, Sequence, TypeVar

from cryokit.binary_inputs import hex_string_to_binary, hex_strings_to_binary
from cryokit.errors import ParseError

T = TypeVar("T")


class TimeDimension(Enum):
    """Whether a query advances through blocks or through transactions."""

    BLOCKS = "blocks"
    TRANSACTIONS = "transactions"


def parse_time_dimension(has_transactions: bool) -> TimeDimension:
    """Transactions are the time dimension when given, blocks otherwise."""
    return TimeDimension.TRANSACTIONS if has_transactions else TimeDimension.BLOCKS


def parse_call_datas(
    call_datas: Optional[Sequence[str]],
    function: Optional[Sequence[str]],
    inputs: Optional[Sequence[str]],
) -> Optional[list[list[bytes]]]:
    """Build the call data chunks for eth_calls.

    Returns None when nothing is given, otherwise a single chunk of call data.
    With functions and inputs, every function selector is joined with every input.
    """
    if call_datas is None and function is None and inputs is None:
        return None
    if call_datas is not None:
        if function is not None:
            raise ParseError("cannot specify both call_data and function")
        if inputs is not None:
            raise ParseError("cannot specify both call_data and inputs")
        return [hex_strings_to_binary(call_datas)]
    if function is None:
        raise ParseError("must specify function if specifying inputs")
    if inputs is None:
        return [hex_strings_to_binary(function)]
    return [
        hex_string_to_binary(selector) + hex_string_to_binary(argument)
        for selector in function
        for argument in inputs
    ] and [
        [
            hex_string_to_binary(selector) + hex_string_to_binary(argument)
            for selector in function
            for argument in inputs
        ]
    ]


def order_partitions(
    partitions: Sequence[T],
    chunk_order: Optional[str],
    rng: Optional[random.Random] = None,
) -> list[T]:
    """Return partitions in the requested order: normal, reverse or random."""
    ordered = list(partitions)
    if chunk_order is None or chunk_order == "normal":
        return ordered
    if chunk_order == "reverse":
        ordered.reverse()
        return ordered
    if chunk_order == "random":
        (rng if rng is not None else random.Random()).shuffle(ordered)
        return ordered
    raise ParseError("invalid --chunk-order, use normal, reverse, or random")