import pytest

from cryokit.blocks import (
    RangePosition,
    apply_reorg_buffer,
    get_latest_block_number,
    parse_block_inputs,
    parse_block_number,
    parse_block_range,
    parse_block_token,
)
from cryokit.chunks import BlockNumbers, BlockRange
from cryokit.errors import ParseError


class FakeSource:
    def __init__(self, latest=12, fail=False):
        self.latest = latest
        self.fail = fail
        self.calls = 0

    def get_block_number(self):
        self.calls += 1
        if self.fail:
            raise OSError("connection refused")
        return self.latest


@pytest.mark.parametrize(
    "token, expected",
    [
        ("1:2", BlockRange(1, 1)),
        ("0:2", BlockRange(0, 1)),
        ("-10:100", BlockRange(91, 100)),
        ("10:+100", BlockRange(10, 109)),
        ("1:latest", BlockRange(1, 12)),
        ("1:", BlockRange(1, 12)),
    ],
)
def test_block_token_ranges(token, expected):
    assert parse_block_token(token, True, FakeSource(12)) == expected


def test_block_token_single_number():
    assert parse_block_token("1", False, FakeSource()) == BlockNumbers([1])


def test_block_inputs_single_range():
    assert parse_block_inputs("1:2", FakeSource()) == [BlockRange(1, 1)]


def test_block_inputs_multiple():
    assert parse_block_inputs("1 2", FakeSource()) == [BlockNumbers([1]), BlockNumbers([2])]


def test_block_inputs_latest():
    assert parse_block_inputs("1:latest", FakeSource(12)) == [BlockRange(1, 12)]


def test_block_inputs_multiple_complex():
    result = parse_block_inputs("15M:+1 1000:1002 -3:1b 2000", FakeSource())
    assert result == [
        BlockNumbers([15000000]),
        BlockNumbers([1000, 1001]),
        BlockNumbers([999999998, 999999999, 1000000000]),
        BlockNumbers([2000]),
    ]


@pytest.mark.parametrize(
    "block_ref, position, expected",
    [
        ("1", RangePosition.NONE, 1),
        ("latest", RangePosition.NONE, 12),
        ("", RangePosition.FIRST, 0),
        ("", RangePosition.LAST, 12),
        ("1B", RangePosition.NONE, 1000000000),
        ("1M", RangePosition.NONE, 1000000),
        ("1K", RangePosition.NONE, 1000),
        ("1b", RangePosition.NONE, 1000000000),
        ("1m", RangePosition.NONE, 1000000),
        ("1k", RangePosition.NONE, 1000),
    ],
)
def test_block_number_parsing(block_ref, position, expected):
    assert parse_block_number(block_ref, position, FakeSource(12)) == expected


def test_fractional_suffix():
    assert parse_block_number("15.5M", RangePosition.NONE, FakeSource()) == 15500000


def test_every_nth_value():
    assert parse_block_token("2000:5000:1000", False, FakeSource()) == BlockNumbers([2000, 3000, 4000])


def test_n_values_total():
    assert parse_block_token("100:200/5", False, FakeSource()) == BlockNumbers(
        [100, 124, 149, 174, 199]
    )


def test_underscores_ignored():
    assert parse_block_token("5_000", False, FakeSource()) == BlockNumbers([5000])


def test_omitted_start_means_zero():
    assert parse_block_range("", "700", FakeSource()) == parse_block_range("0", "700", FakeSource())


def test_empty_ref_without_position_is_invalid():
    with pytest.raises(ParseError, match="invalid input"):
        parse_block_number("", RangePosition.NONE, FakeSource())


def test_bad_block_ref():
    with pytest.raises(ParseError, match="Error parsing block ref"):
        parse_block_number("abc", RangePosition.NONE, FakeSource())


def test_too_many_colons():
    with pytest.raises(ParseError, match="blocks must be in format"):
        parse_block_token("1:2:3:4", False, FakeSource())


def test_reversed_range():
    with pytest.raises(ParseError, match="end_block should not be less than start_block"):
        parse_block_token("5:3", True, FakeSource())


def test_relative_start_underflow():
    with pytest.raises(ParseError, match="start_block underflow"):
        parse_block_range("-200", "100", FakeSource())


def test_bad_interval_size():
    with pytest.raises(ParseError, match="cannot parse block interval size"):
        parse_block_token("100:200/x", False, FakeSource())


def test_latest_failure_is_parse_error():
    with pytest.raises(ParseError, match="Error retrieving last block number"):
        parse_block_number("", RangePosition.LAST, FakeSource(fail=True))
    with pytest.raises(ParseError, match="Error retrieving latest block number"):
        get_latest_block_number(FakeSource(fail=True))


def test_get_latest_block_number():
    assert get_latest_block_number(FakeSource(42)) == 42


def test_reorg_buffer_zero_keeps_everything_without_query():
    source = FakeSource(fail=True)
    chunks = [BlockNumbers([1, 2]), BlockRange(5, 100)]
    assert apply_reorg_buffer(chunks, 0, source) == chunks
    assert source.calls == 0


def test_reorg_buffer_filters_recent_chunks():
    chunks = [BlockNumbers([1, 2]), BlockRange(5, 10), BlockNumbers([]), BlockRange(3, 9)]
    kept = apply_reorg_buffer(chunks, 3, FakeSource(12))
    assert kept == [BlockNumbers([1, 2]), BlockRange(3, 9)]


def test_reorg_buffer_source_failure():
    with pytest.raises(ParseError, match="reorg buffer parse error"):
        apply_reorg_buffer([BlockRange(1, 2)], 5, FakeSource(fail=True))