import pytest

from cryokit.cli_args import Args
from cryokit.errors import ParseError
from cryokit.query import Dim, apply_arg_aliases, dim_is_some


def test_dim_is_some_false_for_defaults():
    args = Args()
    assert [dim for dim in Dim if dim_is_some(args, dim)] == []


@pytest.mark.parametrize(
    "field_name, dim",
    [
        ("blocks", Dim.BLOCK_NUMBER),
        ("txs", Dim.TRANSACTION_HASH),
        ("address", Dim.ADDRESS),
        ("from_address", Dim.FROM_ADDRESS),
        ("to_address", Dim.TO_ADDRESS),
        ("contract", Dim.CONTRACT),
        ("call_data", Dim.CALL_DATA),
        ("slot", Dim.SLOT),
        ("topic0", Dim.TOPIC0),
        ("topic1", Dim.TOPIC1),
        ("topic2", Dim.TOPIC2),
        ("topic3", Dim.TOPIC3),
    ],
)
def test_dim_is_some_follows_field(field_name, dim):
    args = Args(**{field_name: ["0xab"]})
    assert dim_is_some(args, dim) is True
    assert [d for d in Dim if dim_is_some(args, d)] == [dim]


def test_contract_to_address_alias():
    args = Args(contract=["0xaa"])
    result = apply_arg_aliases(args, [(Dim.CONTRACT, Dim.ADDRESS)])
    assert result.address == ["0xaa"]
    assert result.contract is None


def test_original_args_untouched():
    args = Args(to_address=["0xbb"])
    result = apply_arg_aliases(args, [(Dim.TO_ADDRESS, Dim.CONTRACT)])
    assert args.to_address == ["0xbb"]
    assert args.contract is None
    assert result.contract == ["0xbb"]
    assert result.to_address is None


def test_no_aliases_returns_equal_args():
    args = Args(address=["0xcc"], blocks=["1:2"])
    assert apply_arg_aliases(args, []) == args


def test_aliases_apply_in_order():
    args = Args(address=["0xdd"])
    result = apply_arg_aliases(
        args, [(Dim.ADDRESS, Dim.CONTRACT), (Dim.CONTRACT, Dim.TO_ADDRESS)]
    )
    assert result.to_address == ["0xdd"]
    assert result.address is None
    assert result.contract is None


def test_other_fields_preserved():
    args = Args(contract=["0xee"], blocks=["5"], chunk_size=7)
    result = apply_arg_aliases(args, [(Dim.CONTRACT, Dim.ADDRESS)])
    assert result.blocks == ["5"]
    assert result.chunk_size == 7


@pytest.mark.parametrize(
    "pair",
    [
        (Dim.ADDRESS, Dim.ADDRESS),
        (Dim.SLOT, Dim.ADDRESS),
        (Dim.ADDRESS, Dim.FROM_ADDRESS),
        (Dim.BLOCK_NUMBER, Dim.TRANSACTION_HASH),
    ],
)
def test_invalid_alias_pairing(pair):
    with pytest.raises(ParseError, match="invalid arg alias pairing"):
        apply_arg_aliases(Args(), [pair])