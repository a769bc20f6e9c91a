"""JSON-RPC access to a node over HTTP, WebSocket or IPC."""

from __future__ import annotations

import base64
import hashlib
import itertools
import json
import os
import socket
import ssl
import threading
import time
import urllib.error
import urllib.request
from typing import Any, Callable, Mapping, Optional, Sequence
from urllib.parse import urlsplit

from cryokit.cli_args import Args
from cryokit.errors import ParseError

_WS_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"
_RATE_LIMIT_CODES = (429, -32005)
_RETRY_HTTP_CODES = (429, 502, 503, 504)

Transport = Callable[[dict], Any]


class RpcError(Exception):
    """An error answer from the node, or an answer that cannot be used."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message if self.code is None else f"{self.message} (code {self.code})"


class _HttpTransport:
    """Sends each request over its own HTTP connection."""

    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout

    def __call__(self, payload: dict) -> Any:
        request = urllib.request.Request(
            self.url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            body = exc.read()
            try:
                answer = json.loads(body)
            except ValueError:
                raise exc from None
            if isinstance(answer, dict) and "error" in answer:
                return answer
            raise
        try:
            return json.loads(body)
        except ValueError as exc:
            raise RpcError("invalid JSON in response") from exc


class _IpcTransport:
    def __init__(self, path: str, timeout: float) -> None:
        self.path = path
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None
        self._buffer = ""
        self._lock = threading.Lock()

    def connect(self) -> None:
        if self._sock is not None:
            return
        if not hasattr(socket, "AF_UNIX"):
            raise OSError("unix sockets are not supported on this platform")
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect(self.path)
        except OSError:
            sock.close()
            raise
        self._sock = sock

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def _next_message(self) -> Any:
        decoder = json.JSONDecoder()
        while True:
            text = self._buffer.lstrip()
            if text:
                try:
                    message, end = decoder.raw_decode(text)
                except ValueError:
                    pass
                else:
                    self._buffer = text[end:]
                    return message
            chunk = self._sock.recv(65536)
            if not chunk:
                self.close()
                raise ConnectionError("ipc connection closed")
            self._buffer += chunk.decode("utf-8")

    def __call__(self, payload: dict) -> Any:
        with self._lock:
            self.connect()
            self._sock.sendall(json.dumps(payload).encode("utf-8"))
            while True:
                message = self._next_message()
                if isinstance(message, dict) and message.get("id") == payload["id"]:
                    return message


def _apply_mask(payload: bytes, mask: bytes) -> bytes:
    if not payload:
        return payload
    size = len(payload)
    key = (mask * (size // 4 + 1))[:size]
    return (int.from_bytes(payload, "big") ^ int.from_bytes(key, "big")).to_bytes(size, "big")


class _WebSocketTransport:
    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None
        self._buffer = b""
        self._lock = threading.Lock()

    def connect(self) -> None:
        if self._sock is not None:
            return
        parts = urlsplit(self.url)
        secure = parts.scheme == "wss"
        host = parts.hostname or "localhost"
        port = parts.port or (443 if secure else 80)
        path = parts.path or "/"
        if parts.query:
            path += "?" + parts.query
        sock = socket.create_connection((host, port), timeout=self.timeout)
        try:
            if secure:
                sock = ssl.create_default_context().wrap_socket(sock, server_hostname=host)
            key = base64.b64encode(os.urandom(16)).decode("ascii")
            request = (
                f"GET {path} HTTP/1.1\r\n"
                f"Host: {host}:{port}\r\n"
                "Upgrade: websocket\r\n"
                "Connection: Upgrade\r\n"
                f"Sec-WebSocket-Key: {key}\r\n"
                "Sec-WebSocket-Version: 13\r\n\r\n"
            )
            sock.sendall(request.encode("ascii"))
            response = b""
            while b"\r\n\r\n" not in response:
                chunk = sock.recv(4096)
                if not chunk:
                    raise ConnectionError("websocket handshake interrupted")
                response += chunk
            head, _, rest = response.partition(b"\r\n\r\n")
            lines = head.decode("latin-1").split("\r\n")
            status = lines[0].split()
            if len(status) < 2 or status[1] != "101":
                raise ConnectionError(f"websocket handshake rejected: {lines[0]}")
            headers = {}
            for line in lines[1:]:
                name, _, value = line.partition(":")
                headers[name.strip().lower()] = value.strip()
            digest = hashlib.sha1((key + _WS_GUID).encode("ascii")).digest()
            if headers.get("sec-websocket-accept") != base64.b64encode(digest).decode("ascii"):
                raise ConnectionError("websocket handshake returned a bad accept key")
        except BaseException:
            sock.close()
            raise
        self._sock = sock
        self._buffer = rest

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            self._buffer = b""

    def _read_exact(self, size: int) -> bytes:
        while len(self._buffer) < size:
            chunk = self._sock.recv(max(4096, size - len(self._buffer)))
            if not chunk:
                self.close()
                raise ConnectionError("websocket closed")
            self._buffer += chunk
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def _send_frame(self, opcode: int, payload: bytes) -> None:
        header = bytearray([0x80 | opcode])
        size = len(payload)
        if size < 126:
            header.append(0x80 | size)
        elif size < 1 << 16:
            header.append(0x80 | 126)
            header += size.to_bytes(2, "big")
        else:
            header.append(0x80 | 127)
            header += size.to_bytes(8, "big")
        mask = os.urandom(4)
        self._sock.sendall(bytes(header) + mask + _apply_mask(payload, mask))

    def _read_message(self) -> bytes:
        fragments = []
        while True:
            first, second = self._read_exact(2)
            opcode = first & 0x0F
            size = second & 0x7F
            if size == 126:
                size = int.from_bytes(self._read_exact(2), "big")
            elif size == 127:
                size = int.from_bytes(self._read_exact(8), "big")
            mask = self._read_exact(4) if second & 0x80 else None
            payload = self._read_exact(size)
            if mask is not None:
                payload = _apply_mask(payload, mask)
            if opcode == 0x8:
                self.close()
                raise ConnectionError("websocket closed by server")
            if opcode == 0x9:
                self._send_frame(0xA, payload)
                continue
            if opcode == 0xA:
                continue
            fragments.append(payload)
            if first & 0x80:
                return b"".join(fragments)

    def __call__(self, payload: dict) -> Any:
        with self._lock:
            self.connect()
            self._send_frame(0x1, json.dumps(payload).encode("utf-8"))
            while True:
                message = json.loads(self._read_message())
                if isinstance(message, dict) and message.get("id") == payload["id"]:
                    return message


def _transport_for(url: str, timeout: float) -> Transport:
    if url.startswith("http"):
        return _HttpTransport(url, timeout)
    if url.startswith("ws"):
        return _WebSocketTransport(url, timeout)
    if url.endswith(".ipc"):
        return _IpcTransport(url, timeout)
    raise ParseError(f"invalid rpc url: {url}")


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, urllib.error.HTTPError):
        return exc.code in _RETRY_HTTP_CODES
    if isinstance(exc, OSError):
        return True
    if isinstance(exc, RpcError):
        return exc.code in _RATE_LIMIT_CODES or "rate limit" in exc.message.lower()
    return False


class JsonRpcSource:
    """A node reached over JSON-RPC, with retries, rate limiting and a request cap."""

    def __init__(
        self,
        rpc_url: str,
        *,
        chain_id: Optional[int] = None,
        max_retries: int = 5,
        initial_backoff: int = 500,
        requests_per_second: Optional[int] = None,
        max_concurrent_requests: int = 100,
        inner_request_size: int = 1,
        max_concurrent_chunks: Optional[int] = 4,
        transport: Optional[Transport] = None,
        timeout: float = 30.0,
    ) -> None:
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.inner_request_size = inner_request_size
        self.max_concurrent_chunks = max_concurrent_chunks
        self.labels: dict[str, Optional[int]] = {}
        self._transport = transport if transport is not None else _transport_for(rpc_url, timeout)
        self._semaphore = threading.BoundedSemaphore(max_concurrent_requests)
        self._interval = 1.0 / requests_per_second if requests_per_second else None
        self._next_slot = 0.0
        self._rate_lock = threading.Lock()
        self._ids = itertools.count(1)

    def _wait_turn(self) -> None:
        if self._interval is None:
            return
        with self._rate_lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self._interval
        if slot > now:
            time.sleep(slot - now)

    def _send(self, method: str, params: Sequence[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(params)}
        with self._semaphore:
            self._wait_turn()
            response = self._transport(payload)
        if not isinstance(response, Mapping):
            raise RpcError("malformed JSON-RPC response")
        error = response.get("error")
        if error is not None:
            if isinstance(error, Mapping):
                raise RpcError(str(error.get("message", "")), error.get("code"))
            raise RpcError(str(error))
        return response.get("result")

    def _request(self, method: str, params: Sequence[Any] = ()) -> Any:
        for attempt in itertools.count():
            try:
                return self._send(method, params)
            except (OSError, RpcError) as exc:
                if attempt >= self.max_retries or not _is_retryable(exc):
                    raise
                time.sleep(self.initial_backoff / 1000 * 2**attempt)

    @staticmethod
    def _quantity(value: Any) -> int:
        if not isinstance(value, str):
            raise RpcError(f"expected a hex quantity, got {value!r}")
        try:
            return int(value, 16)
        except ValueError as exc:
            raise RpcError(f"expected a hex quantity, got {value!r}") from exc

    def get_chain_id(self) -> int:
        """Return the node's chain id."""
        return self._quantity(self._request("eth_chainId"))

    def get_block_number(self) -> int:
        """Return the number of the latest block."""
        return self._quantity(self._request("eth_blockNumber"))

    def get_block_timestamp(self, number: int) -> int:
        """Return the unix timestamp of block ``number``."""
        block = self._request("eth_getBlockByNumber", [hex(number), False])
        if not isinstance(block, Mapping):
            raise RpcError(f"block {number} not found")
        return self._quantity(block.get("timestamp"))


def parse_rpc_url(rpc: Optional[str], environ: Optional[Mapping[str, str]] = None) -> str:
    """Choose the RPC url from ``rpc`` or ETH_RPC_URL, adding http:// if needed."""
    env = os.environ if environ is None else environ
    if rpc is not None:
        url = rpc
    elif "ETH_RPC_URL" in env:
        url = env["ETH_RPC_URL"]
    else:
        raise ParseError("must provide --rpc or setup MESC or set ETH_RPC_URL")
    if not url.startswith("http") and not url.startswith("ws") and not url.endswith(".ipc"):
        return "http://" + url
    return url


def parse_source(args: Args) -> JsonRpcSource:
    """Connect to the node named by ``args`` and learn its chain id."""
    rpc_url = parse_rpc_url(args.rpc)
    is_http = rpc_url.startswith("http")
    transport = _transport_for(rpc_url, 30.0)
    if not is_http:
        try:
            transport.connect()
        except OSError as exc:
            raise ParseError("could not instantiate HTTP Provider") from exc

    max_concurrent_requests = (
        100 if args.max_concurrent_requests is None else args.max_concurrent_requests
    )
    if args.max_concurrent_chunks is None:
        max_concurrent_chunks: Optional[int] = 4
    elif args.max_concurrent_chunks == 0:
        max_concurrent_chunks = None
    else:
        max_concurrent_chunks = args.max_concurrent_chunks

    source = JsonRpcSource(
        rpc_url,
        max_retries=args.max_retries if is_http else 0,
        initial_backoff=args.initial_backoff,
        requests_per_second=args.requests_per_second,
        max_concurrent_requests=max_concurrent_requests,
        inner_request_size=args.inner_request_size,
        max_concurrent_chunks=max_concurrent_chunks,
        transport=transport,
    )
    try:
        source.chain_id = source.get_chain_id()
    except RpcError as exc:
        raise ParseError(f"provider error: {exc}") from exc
    except OSError as exc:
        raise ParseError(f"could not connect to provider: {exc}") from exc
    source.labels = {
        "max_concurrent_requests": args.requests_per_second,
        "max_requests_per_second": args.requests_per_second,
        "max_retries": args.max_retries,
        "initial_backoff": args.initial_backoff,
    }
    return source