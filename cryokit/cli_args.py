"""Command line arguments and their JSON form."""

from __future__ import annotations

import argparse
import re
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from cryokit.version import cryo_version

ABOUT = "cryo extracts blockchain data to parquet, csv, or json"

AFTER_HELP = """Optional Subcommands:
      cryo help                      display help message
      cryo help syntax               display block + tx specification syntax
      cryo help datasets             display list of all datasets
      cryo help <DATASET(S)>         display info about a dataset"""


@dataclass
class Args:
    """Options accepted on the command line."""

    datatype: list[str] = field(default_factory=list)
    blocks: Optional[list[str]] = None
    timestamps: Optional[list[str]] = None
    txs: Optional[list[str]] = None
    align: bool = False
    reorg_buffer: int = 0
    include_columns: Optional[list[str]] = None
    exclude_columns: Optional[list[str]] = None
    columns: Optional[list[str]] = None
    u256_types: Optional[list[str]] = None
    hex: bool = False
    sort: Optional[list[str]] = None
    exclude_failed: bool = False
    rpc: Optional[str] = None
    network_name: Optional[str] = None
    requests_per_second: Optional[int] = None
    max_retries: int = 5
    initial_backoff: int = 500
    max_concurrent_requests: Optional[int] = None
    max_concurrent_chunks: Optional[int] = None
    chunk_order: Optional[str] = None
    dry: bool = False
    remember: bool = False
    verbose: bool = False
    no_verbose: bool = False
    chunk_size: int = 1000
    n_chunks: Optional[int] = None
    partition_by: Optional[list[str]] = None
    output_dir: str = "."
    subdirs: list[str] = field(default_factory=list)
    label: Optional[str] = None
    overwrite: bool = False
    csv: bool = False
    json: bool = False
    row_group_size: Optional[int] = None
    n_row_groups: Optional[int] = None
    no_stats: bool = False
    compression: list[str] = field(default_factory=lambda: ["lz4"])
    report_dir: Optional[Path] = None
    no_report: bool = False
    address: Optional[list[str]] = None
    to_address: Optional[list[str]] = None
    from_address: Optional[list[str]] = None
    call_data: Optional[list[str]] = None
    function: Optional[list[str]] = None
    inputs: Optional[list[str]] = None
    slot: Optional[list[str]] = None
    contract: Optional[list[str]] = None
    topic0: Optional[list[str]] = None
    topic1: Optional[list[str]] = None
    topic2: Optional[list[str]] = None
    topic3: Optional[list[str]] = None
    event_signature: Optional[str] = None
    inner_request_size: int = 1
    js_tracer: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of every field."""
        data: dict[str, Any] = {}
        for name, kind in _FIELD_KINDS.items():
            value = getattr(self, name)
            if value is not None and kind in ("list", "opt_list"):
                value = list(value)
            elif value is not None and kind == "opt_path":
                value = str(value)
            data[name] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Args":
        """Build Args from a mapping; optional fields may be missing, unknown keys are ignored."""
        values: dict[str, Any] = {}
        for name, kind in _FIELD_KINDS.items():
            if name not in data:
                if kind.startswith("opt_"):
                    values[name] = None
                    continue
                raise ValueError(f"missing field `{name}`")
            values[name] = _convert(name, kind, data[name])
        return cls(**values)

    def merge_with_precedence(self, other: "Args") -> "Args":
        """Overlay every field of ``other`` that is not blank onto these args."""
        merged = self.to_dict()
        for name, value in other.to_dict().items():
            if _blank_value(name) != value:
                merged[name] = value
        return Args.from_dict(merged)


# The value kind of each field. A field's blank value (empty, zero or absent)
# is what merging treats as "not set".
_FIELD_KINDS: dict[str, str] = {
    "datatype": "list",
    "blocks": "opt_list",
    "timestamps": "opt_list",
    "txs": "opt_list",
    "align": "bool",
    "reorg_buffer": "int",
    "include_columns": "opt_list",
    "exclude_columns": "opt_list",
    "columns": "opt_list",
    "u256_types": "opt_list",
    "hex": "bool",
    "sort": "opt_list",
    "exclude_failed": "bool",
    "rpc": "opt_str",
    "network_name": "opt_str",
    "requests_per_second": "opt_int",
    "max_retries": "int",
    "initial_backoff": "int",
    "max_concurrent_requests": "opt_int",
    "max_concurrent_chunks": "opt_int",
    "chunk_order": "opt_str",
    "dry": "bool",
    "remember": "bool",
    "verbose": "bool",
    "no_verbose": "bool",
    "chunk_size": "int",
    "n_chunks": "opt_int",
    "partition_by": "opt_list",
    "output_dir": "str",
    "subdirs": "list",
    "label": "opt_str",
    "overwrite": "bool",
    "csv": "bool",
    "json": "bool",
    "row_group_size": "opt_int",
    "n_row_groups": "opt_int",
    "no_stats": "bool",
    "compression": "list",
    "report_dir": "opt_path",
    "no_report": "bool",
    "address": "opt_list",
    "to_address": "opt_list",
    "from_address": "opt_list",
    "call_data": "opt_list",
    "function": "opt_list",
    "inputs": "opt_list",
    "slot": "opt_list",
    "contract": "opt_list",
    "topic0": "opt_list",
    "topic1": "opt_list",
    "topic2": "opt_list",
    "topic3": "opt_list",
    "event_signature": "opt_str",
    "inner_request_size": "int",
    "js_tracer": "opt_str",
}


def _blank_value(name: str) -> Any:
    kind = _FIELD_KINDS[name]
    if kind.startswith("opt_"):
        return None
    return {"list": [], "bool": False, "int": 0, "str": ""}[kind]


def _convert(name: str, kind: str, value: Any) -> Any:
    if value is None:
        if kind.startswith("opt_"):
            return None
        raise ValueError(f"field `{name}` must not be null")
    base = kind.removeprefix("opt_")
    if base == "list":
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValueError(f"field `{name}` must be a list of strings")
        return list(value)
    if base == "bool":
        if not isinstance(value, bool):
            raise ValueError(f"field `{name}` must be a boolean")
        return value
    if base == "int":
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"field `{name}` must be a non-negative integer")
        return value
    if base == "str":
        if not isinstance(value, str):
            raise ValueError(f"field `{name}` must be a string")
        return value
    if not isinstance(value, (str, Path)):
        raise ValueError(f"field `{name}` must be a path")
    return Path(value)


def _non_negative(text: str) -> int:
    try:
        number = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid value '{text}'") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"invalid value '{text}'")
    return number


class _VersionAction(argparse.Action):
    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings=option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        parser.exit(message=f"{parser.prog} {cryo_version()}\n")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ``cryo`` command."""
    parser = argparse.ArgumentParser(
        prog="cryo",
        description=ABOUT,
        epilog=AFTER_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    # Values such as "-1000:7000" are block ranges, not options.
    parser._negative_number_matcher = re.compile(r"^-\.?\d")

    parser.add_argument("-V", "--version", action=_VersionAction, help="Print version")
    parser.add_argument(
        "datatype",
        nargs="*",
        help="datatype(s) to collect, use cryo datasets to see all available",
    )

    content = parser.add_argument_group("Content Options")
    content.add_argument("-b", "--blocks", nargs="+", help="Block numbers, see syntax below")
    content.add_argument("--timestamps", nargs="*", help="Timestamps in unix, see syntax below")
    content.add_argument("-t", "--txs", nargs="+", help="Transaction hashes, see syntax below")
    content.add_argument(
        "-a",
        "--align",
        action="store_true",
        help="Align chunk boundaries to regular intervals,\ne.g. (1000 2000 3000), not (1106 2106 3106)",
    )
    content.add_argument(
        "--reorg-buffer",
        type=_non_negative,
        default=0,
        metavar="N_BLOCKS",
        help="Reorg buffer, save blocks only when this old,\ncan be a number of blocks",
    )
    content.add_argument(
        "-i",
        "--include-columns",
        nargs="*",
        metavar="COLS",
        help="Columns to include alongside the defaults,\nuse `all` to include all available columns",
    )
    content.add_argument(
        "-e", "--exclude-columns", nargs="*", metavar="COLS", help="Columns to exclude from the defaults"
    )
    content.add_argument(
        "--columns",
        nargs="*",
        metavar="COLS",
        help="Columns to use instead of the defaults,\nuse `all` to use all available columns",
    )
    content.add_argument(
        "--u256-types",
        nargs="+",
        help="Set output datatype(s) of U256 integers\n[default: binary, string, f64]",
    )
    content.add_argument("--hex", action="store_true", help="Use hex string encoding for binary columns")
    content.add_argument("-s", "--sort", nargs="*", help="Columns(s) to sort by, `none` for unordered")
    content.add_argument(
        "--exclude-failed", action="store_true", help="Exclude items from failed transactions"
    )

    source = parser.add_argument_group("Source Options")
    source.add_argument("-r", "--rpc", help="RPC url [default: 1. MESC 2. ETH_RPC_URL]")
    source.add_argument("--network-name", help="Network name [default: name of eth_getChainId]")

    acquisition = parser.add_argument_group("Acquisition Options")
    acquisition.add_argument(
        "-l",
        "--requests-per-second",
        type=_non_negative,
        metavar="limit",
        help="Ratelimit on requests per second",
    )
    acquisition.add_argument(
        "--max-retries", type=_non_negative, default=5, metavar="R", help="Max retries for provider errors"
    )
    acquisition.add_argument(
        "--initial-backoff",
        type=_non_negative,
        default=500,
        metavar="B",
        help="Initial retry backoff time (ms)",
    )
    acquisition.add_argument(
        "--max-concurrent-requests",
        type=_non_negative,
        metavar="M",
        help="Global number of concurrent requests",
    )
    acquisition.add_argument(
        "--max-concurrent-chunks",
        type=_non_negative,
        metavar="M",
        help="Number of chunks processed concurrently",
    )
    acquisition.add_argument("--chunk-order", help="Chunk collection order (normal, reverse, random)")
    acquisition.add_argument("-d", "--dry", action="store_true", help="Dry run, collect no data")

    parser.add_argument("--remember", action="store_true", help="Remember current command for future use")
    parser.add_argument("-v", "--verbose", action="store_true", help="Extra verbosity")
    parser.add_argument(
        "--no-verbose", action="store_true", help="Run quietly without printing information to stdout"
    )

    output = parser.add_argument_group("Output Options")
    output.add_argument("-c", "--chunk-size", type=_non_negative, default=1000, help="Number of blocks per file")
    output.add_argument("--n-chunks", type=_non_negative, help="Number of files (alternative to --chunk-size)")
    output.add_argument("--partition-by", action="append", help="Dimensions to partition by")
    output.add_argument("-o", "--output-dir", default=".", help="Directory for output files")
    output.add_argument(
        "--subdirs",
        nargs="+",
        default=[],
        help="Subdirectories for output files\ncan be `datatype`, `network`, or custom string",
    )
    output.add_argument("--label", help="Label to add to each filename")
    output.add_argument("--overwrite", action="store_true", help="Overwrite existing files instead of skipping")
    output.add_argument("--csv", action="store_true", help="Save as csv instead of parquet")
    output.add_argument("--json", action="store_true", help="Save as json instead of parquet")
    output.add_argument(
        "--row-group-size",
        type=_non_negative,
        metavar="GROUP_SIZE",
        help="Number of rows per row group in parquet file",
    )
    output.add_argument("--n-row-groups", type=_non_negative, help="Number of rows groups in parquet file")
    output.add_argument("--no-stats", action="store_true", help="Do not write statistics to parquet files")
    output.add_argument(
        "--compression",
        nargs="+",
        default=["lz4"],
        metavar="NAME [#]",
        help="Compression algorithm and level",
    )
    output.add_argument(
        "--report-dir",
        type=Path,
        help="Directory to save summary report\n[default: {output_dir}/.cryo/reports]",
    )
    output.add_argument("--no-report", action="store_true", help="Avoid saving a summary report")

    dataset = parser.add_argument_group("Dataset-specific Options")
    dataset.add_argument("--address", nargs="+", help="Address(es)")
    dataset.add_argument("--to-address", nargs="+", metavar="address", help="To Address(es)")
    dataset.add_argument("--from-address", nargs="+", metavar="address", help="From Address(es)")
    dataset.add_argument("--call-data", nargs="+", help="Call data(s) to use for eth_calls")
    dataset.add_argument("--function", nargs="+", help="Function(s) to use for eth_calls")
    dataset.add_argument("--inputs", nargs="+", help="Input(s) to use for eth_calls")
    dataset.add_argument("--slot", nargs="+", help="Slot(s)")
    dataset.add_argument("--contract", nargs="+", help="Contract address(es)")
    dataset.add_argument("--topic0", "--event", dest="topic0", nargs="+", help="Topic0(s)")
    dataset.add_argument("--topic1", nargs="+", help="Topic1(s)")
    dataset.add_argument("--topic2", nargs="+", help="Topic2(s)")
    dataset.add_argument("--topic3", nargs="+", help="Topic3(s)")
    dataset.add_argument("--event-signature", metavar="SIG", help="Event signature for log decoding")
    dataset.add_argument(
        "--inner-request-size",
        type=_non_negative,
        default=1,
        metavar="BLOCKS",
        help="Blocks per request (eth_getLogs)",
    )
    dataset.add_argument("--js-tracer", metavar="tracer", help="Javascript tracer for debug traces")
    return parser


def parse_cli(argv: Optional[Sequence[str]] = None) -> Args:
    """Parse command line words (without the program name) into Args."""
    parser = build_parser()
    words = list(argv) if argv is not None else sys.argv[1:]
    namespace = parser.parse_args(words)
    if not 1 <= len(namespace.compression) <= 2:
        parser.error("--compression takes a name and at most one level")
    values = {}
    for item in fields(Args):
        value = getattr(namespace, item.name)
        values[item.name] = list(value) if isinstance(value, list) else value
    return Args(**values)


def parse_str(command: str) -> Args:
    """Parse a whole command string whose first word is the program name."""
    return parse_cli(command.split()[1:])