import random

import pytest

from cryokit.errors import ParseError
from cryokit.partitions import (
    TimeDimension,
    order_partitions,
    parse_call_datas,
    parse_time_dimension,
)


def test_time_dimension():
    assert parse_time_dimension(True) is TimeDimension.TRANSACTIONS
    assert parse_time_dimension(False) is TimeDimension.BLOCKS


def test_no_call_data():
    assert parse_call_datas(None, None, None) is None


def test_explicit_call_data():
    assert parse_call_datas(["0x01", "0x0203"], None, None) == [[b"\x01", b"\x02\x03"]]


def test_function_only():
    assert parse_call_datas(None, ["0xaabbccdd"], None) == [[bytes.fromhex("aabbccdd")]]


def test_function_and_inputs_cross_product():
    result = parse_call_datas(None, ["0xaa", "0xbb"], ["0x01", "0x02"])
    assert result == [[b"\xaa\x01", b"\xaa\x02", b"\xbb\x01", b"\xbb\x02"]]


@pytest.mark.parametrize(
    "args, message",
    [
        ((None, None, ["0x01"]), "must specify function if specifying inputs"),
        ((["0x01"], ["0x02"], None), "cannot specify both call_data and function"),
        ((["0x01"], None, ["0x02"]), "cannot specify both call_data and inputs"),
        ((["0x01"], ["0x02"], ["0x03"]), "cannot specify both call_data and function"),
    ],
)
def test_call_data_conflicts(args, message):
    with pytest.raises(ParseError, match=message):
        parse_call_datas(*args)


def test_bad_hex_call_data():
    with pytest.raises(ParseError):
        parse_call_datas(["zz"], None, None)


def test_order_normal_and_default():
    items = [1, 2, 3]
    assert order_partitions(items, None) == items
    assert order_partitions(items, "normal") == items


def test_order_reverse_does_not_mutate():
    items = [1, 2, 3]
    assert order_partitions(items, "reverse") == [3, 2, 1]
    assert items == [1, 2, 3]


def test_order_random_is_permutation_and_seeded():
    items = list(range(50))
    first = order_partitions(items, "random", random.Random(7))
    second = order_partitions(items, "random", random.Random(7))
    assert sorted(first) == items
    assert first == second


def test_order_invalid():
    with pytest.raises(ParseError, match="invalid --chunk-order"):
        order_partitions([1], "sideways")