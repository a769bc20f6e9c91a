"""Where and how collected data is written: directories, names, format, compression."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Sequence

from cryokit.cli_args import Args
from cryokit.errors import ParseError

_NETWORK_NAMES = {
    1: "ethereum",
    5: "goerli",
    10: "optimism",
    56: "bnb",
    69: "optimism_kovan",
    100: "gnosis",
    137: "polygon",
    420: "optimism_goerli",
    1101: "polygon_zkevm",
    1442: "polygon_zkevm_testnet",
    8453: "base",
    10200: "gnosis_chidao",
    17000: "holesky",
    42161: "arbitrum",
    42170: "arbitrum_nova",
    43114: "avalanche",
    80001: "polygon_mumbai",
    84531: "base_goerli",
    7777777: "zora",
    11155111: "sepolia",
}

_PLAIN_ALGORITHMS = {
    "uncompressed": "uncompressed",
    "snappy": "snappy",
    "lzo": "lzo",
    "lz4": "lz4_raw",
}

# Accepted level text and the inclusive range of valid levels.
_LEVELLED_ALGORITHMS = {
    "gzip": (re.compile(r"\+?[0-9]+"), 0, 10, 2**8 - 1),
    "brotli": (re.compile(r"\+?[0-9]+"), 0, 11, 2**32 - 1),
    "zstd": (re.compile(r"[+-]?[0-9]+"), 1, 22, 2**31 - 1),
}


class FileFormat(Enum):
    """Output file format."""

    PARQUET = "parquet"
    CSV = "csv"
    JSON = "json"


class SubDirKind(Enum):
    """What a subdirectory level is named after."""

    DATATYPE = "datatype"
    NETWORK = "network"
    CUSTOM = "custom"


@dataclass(frozen=True)
class SubDir:
    """One level of subdirectory below the output directory."""

    kind: SubDirKind
    name: Optional[str] = None


@dataclass(frozen=True)
class Compression:
    """A parquet compression algorithm and, for some algorithms, its level."""

    algorithm: str
    level: Optional[int] = None


@dataclass
class FileOutput:
    """Settings for writing output files."""

    output_dir: Path
    prefix: str
    format: FileFormat
    compression: Compression
    subdirs: list[SubDir] = field(default_factory=list)
    suffix: Optional[str] = None
    parquet_statistics: bool = True
    overwrite: bool = False
    row_group_size: Optional[int] = None


def parse_subdirs(subdirs: Iterable[str]) -> list[SubDir]:
    """Turn subdirectory words into SubDir levels; unknown words are custom names."""
    result = []
    for word in subdirs:
        if word == "datatype":
            result.append(SubDir(SubDirKind.DATATYPE))
        elif word == "network":
            result.append(SubDir(SubDirKind.NETWORK))
        else:
            result.append(SubDir(SubDirKind.CUSTOM, word))
    return result


def parse_network_name(network_name: Optional[str], chain_id: int) -> str:
    """Return the given network name, or one derived from the chain id."""
    if network_name is not None:
        return network_name
    return _NETWORK_NAMES.get(chain_id, f"network_{chain_id}")


def parse_output_format(csv: bool, json: bool) -> FileFormat:
    """Choose the output format from the --csv and --json flags."""
    if csv and json:
        raise ParseError("choose one of parquet, csv, or json")
    if csv:
        return FileFormat.CSV
    if json:
        return FileFormat.JSON
    return FileFormat.PARQUET


def _parse_level(algorithm: str, text: str) -> int:
    pattern, low, high, limit = _LEVELLED_ALGORITHMS[algorithm]
    if pattern.fullmatch(text) is None:
        raise ParseError("Invalid compression level")
    level = int(text)
    if abs(level) > limit or not low <= level <= high:
        raise ParseError("Invalid compression level")
    return level


def parse_compression(values: Sequence[str]) -> Compression:
    """Parse ``[name]`` or ``[name, level]`` into a Compression."""
    words = list(values)
    if len(words) == 1 and words[0] in _PLAIN_ALGORITHMS:
        return Compression(_PLAIN_ALGORITHMS[words[0]])
    if len(words) == 2 and words[0] in _LEVELLED_ALGORITHMS:
        return Compression(words[0], _parse_level(words[0], words[1]))
    if len(words) == 1 and words[0] in _LEVELLED_ALGORITHMS:
        raise ParseError("Missing compression level")
    raise ParseError("Invalid compression algorithm")


def parse_row_group_size(
    row_group_size: Optional[int], n_row_groups: Optional[int], chunk_size: Optional[int]
) -> Optional[int]:
    """Return the explicit row group size, or one that splits a chunk into n groups."""
    if row_group_size is not None:
        return row_group_size
    if n_row_groups is not None and chunk_size is not None:
        if n_row_groups <= 0:
            raise ParseError("number of row groups must be positive")
        return -(-chunk_size // n_row_groups)
    return None


def parse_file_output(args: Args, chain_id: int) -> FileOutput:
    """Build output settings from arguments, creating the output directory."""
    output_dir = Path(args.output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ParseError("could not create dir") from exc
    try:
        output_dir = output_dir.resolve(strict=True)
    except OSError as exc:
        raise ParseError("Failed to canonicalize output directory") from exc

    return FileOutput(
        output_dir=output_dir,
        prefix=parse_network_name(args.network_name, chain_id),
        format=parse_output_format(args.csv, args.json),
        compression=parse_compression(args.compression),
        subdirs=parse_subdirs(args.subdirs),
        suffix=args.label,
        parquet_statistics=not args.no_stats,
        overwrite=args.overwrite,
        row_group_size=parse_row_group_size(
            args.row_group_size, args.n_row_groups, args.chunk_size
        ),
    )