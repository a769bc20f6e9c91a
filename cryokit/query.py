"""Query dimensions and swapping of aliased address arguments."""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Iterable

from cryokit.cli_args import Args
from cryokit.errors import ParseError


class Dim(Enum):
    """A dimension along which a query can be specified and partitioned."""

    BLOCK_NUMBER = "block_number"
    TRANSACTION_HASH = "transaction_hash"
    CALL_DATA = "call_data"
    ADDRESS = "address"
    CONTRACT = "contract"
    FROM_ADDRESS = "from_address"
    TO_ADDRESS = "to_address"
    SLOT = "slot"
    TOPIC0 = "topic0"
    TOPIC1 = "topic1"
    TOPIC2 = "topic2"
    TOPIC3 = "topic3"


_ARG_FIELDS = {
    Dim.BLOCK_NUMBER: "blocks",
    Dim.TRANSACTION_HASH: "txs",
    Dim.ADDRESS: "address",
    Dim.FROM_ADDRESS: "from_address",
    Dim.TO_ADDRESS: "to_address",
    Dim.CONTRACT: "contract",
    Dim.CALL_DATA: "call_data",
    Dim.SLOT: "slot",
    Dim.TOPIC0: "topic0",
    Dim.TOPIC1: "topic1",
    Dim.TOPIC2: "topic2",
    Dim.TOPIC3: "topic3",
}

_ALIASABLE = frozenset({Dim.ADDRESS, Dim.CONTRACT, Dim.TO_ADDRESS})


def dim_is_some(args: Args, dim: Dim) -> bool:
    """Return whether ``args`` gives a value for dimension ``dim``."""
    return getattr(args, _ARG_FIELDS[dim]) is not None


def apply_arg_aliases(args: Args, arg_aliases: Iterable[tuple[Dim, Dim]]) -> Args:
    """Move each aliased argument ``k`` to its target ``v``, in order.

    Only address, contract and to-address may stand in for one another.
    """
    result = dataclasses.replace(args)
    for source_dim, target_dim in arg_aliases:
        if (
            source_dim == target_dim
            or source_dim not in _ALIASABLE
            or target_dim not in _ALIASABLE
        ):
            raise ParseError("invalid arg alias pairing")
        value = getattr(result, _ARG_FIELDS[source_dim])
        result = dataclasses.replace(
            result,
            **{
                _ARG_FIELDS[target_dim]: None if value is None else list(value),
                _ARG_FIELDS[source_dim]: None,
            },
        )
    return result