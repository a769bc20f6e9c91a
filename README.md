# cryokit

cryokit turns the options of a blockchain data extraction job into structured
Python values. It covers these parts of the job:

- command-line arguments;
- block and timestamp range specifications;
- output file settings;
- call data;
- chunk ordering.

It talks to a node over JSON-RPC only when it has to. For example, it does so
to resolve `latest` or to map a timestamp to a block number.

It has no third-party runtime dependencies.

## Installation

```
pip install cryokit
```

To run the test suite:

```
pip install "cryokit[test]"
pytest
```

## Block specification syntax

`cryokit.blocks.parse_block_inputs` takes a space-separated string of tokens.

| form                          | result                                      |
|-------------------------------|---------------------------------------------|
| `5000 6000 7000`              | individual block numbers                    |
| `12M:13M`                     | range with the end excluded                 |
| `5_000`, `5K`, `15.5M`, `1B`  | separators are removed; B/M/K in either case scale the number |
| `15.5M:` or `15.5M:latest`    | up to and including the latest block        |
| `:700`                        | starts at block 0                           |
| `-1000:7000`                  | the 1000 blocks ending at 7000 (6001–7000)  |
| `15M:+1000`                   | 1000 blocks starting at 15M                 |
| `2000:5000:1000`              | every 1000th block: 2000, 3000, 4000        |
| `100:200/5`                   | 5 evenly spaced blocks: 100, 124, 149, 174, 199 |

If the input is a single range token, it stays a `BlockRange`. Every other
token becomes `BlockNumbers`.

`cryokit.timestamps.parse_timestamp_inputs` accepts the same range forms for
unix timestamps, except the three-part step form. A number may carry one of
these case-sensitive units:

| unit | meaning         |
|------|-----------------|
| `m`  | minutes         |
| `h`  | hours           |
| `d`  | days            |
| `w`  | weeks           |
| `M`  | 30-day months   |
| `y`  | 365-day years   |

Each timestamp is mapped to the last block whose timestamp is not after it.
The mapping is a binary search, done by `timestamp_to_block_number`.

## Library usage

### Arguments

Parse a command line into an `Args` dataclass:

```python
from cryokit.cli_args import parse_cli, parse_str

args = parse_str("cryo blocks --blocks 15M:+1000 --csv")   # first word is the program name
args = parse_cli(["blocks", "--blocks", "15M:+1000"])
```

`build_parser()` returns the underlying `argparse` parser.

`Args.to_dict()` and `Args.from_dict()` convert an `Args` to and from a
JSON-ready mapping.

`Args.merge_with_precedence(other)` starts from the first `Args`. It then
copies every field of `other` that is not blank. Blank means an empty list,
`False`, `0`, an empty string or `None`.

### Remembered commands

`cryokit.remember` stores a command in a directory and loads it again later:

- `save_remembered_command(cryo_dir, args, argv)` writes
  `remembered_command.json`. It leaves out the `--remember` word and resets
  the `remember` flag.
- `load_remembered_command(cryo_dir)` returns a `RememberedCommand`.

The directory must already exist.

### Block chunks

```python
from cryokit.chunks import block_range_to_block_chunk, evenly_spaced_subset

block_range_to_block_chunk(100, 199, False, None, 5)
# BlockNumbers(numbers=[100, 124, 149, 174, 199])

evenly_spaced_subset(list(range(10)), 3)   # [0, 4, 9]
```

`cryokit.blocks.apply_reorg_buffer` drops chunks whose last block is less than
the buffer's number of blocks behind the latest one.

### Connecting to a node

`cryokit.rpc.parse_source(args)` picks the url in this order:

1. `--rpc`;
2. the `ETH_RPC_URL` environment variable.

It adds `http://` when the url has no scheme. It then connects over HTTP,
WebSocket or IPC (a path ending in `.ipc`) and reads the chain id.

The returned `JsonRpcSource` has these methods:

- `get_chain_id()`
- `get_block_number()`
- `get_block_timestamp(number)`

It applies retries with exponential backoff, an optional requests-per-second
limit and a cap on concurrent requests.

Any object with `get_block_number`, plus `get_block_timestamp` for
timestamps, can be used in its place.

### Output, execution and partitions

```python
from cryokit.file_output import parse_compression, parse_network_name

parse_network_name(None, 1)          # "ethereum"
parse_compression(["zstd", "3"])     # Compression(algorithm="zstd", level=3)
```

`cryokit.file_output.parse_file_output(args, chain_id)` creates the output
directory. It returns a `FileOutput` that holds the following settings:

- format;
- compression;
- subdirectories;
- file prefix;
- row group size.

`cryokit.execution.parse_execution_env(args, n_tasks)` returns an
`ExecutionEnv` with these settings:

- dry run;
- verbosity;
- reporting;
- the arguments as JSON.

In `cryokit.partitions`:

- `parse_call_datas` builds call data from hex strings. Each function
  selector is joined with each input.
- `order_partitions` returns items in normal, reverse or random order.

Other helpers:

- `cryokit.query.apply_arg_aliases` moves values between the address,
  contract and to-address arguments.
- `cryokit.binary_inputs` decodes hex strings and splits `path:column`
  references.
- `cryokit.version.cryo_version()` returns `git describe --tags --always`, or
  the package version when git is unavailable.

### Errors

Invalid input raises `cryokit.errors.ParseError`. Some examples:

- an unknown compression algorithm, or a missing compression level;
- a range whose end comes before its start;
- choosing both csv and json output;
- passing `call_data` together with `function`;
- an unknown chunk order.

## What cryokit does not do

cryokit only parses and plans:

- It has no installed command. It does not collect, transform or write any
  blockchain data.
- It knows nothing about datasets or their column schemas.
- It does not read block numbers, timestamps or hashes from parquet files.
  Only the path and column are parsed.
- It does not look up endpoints in any external endpoint configuration.