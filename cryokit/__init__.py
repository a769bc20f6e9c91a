"""Arguments, block and timestamp ranges, output settings and JSON-RPC access for blockchain data extraction."""

__version__ = "0.1.0"