"""
Minimal JSON-RPC transport for Ethereum-style nodes.

Only the calls the monitor needs are wrapped: header by number and
web3_clientVersion. Everything else goes through call().
"""
import itertools
import threading
from typing import Any, Dict, Optional

import requests
import structlog

from .constants import HEADER_METHOD, RPC_TIMEOUT, VERSION_METHOD
from .exceptions import TransportError

logger = structlog.get_logger()


class RPCClient:
    """JSON-RPC 2.0 client over HTTP(S)."""

    def __init__(self, url: str, timeout: float = RPC_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            url: Endpoint URL, including any API key path segment
            timeout: Transport timeout in seconds
            session: Optional requests session to reuse
        """
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def call(self, method: str, *params: Any) -> Any:
        """
        Call a JSON-RPC method and return its result.

        Raises:
            TransportError: On connection, HTTP, decoding or JSON-RPC errors
        """
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": list(params),
        }
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise TransportError(f"{method} failed: {e}", cause=e) from e
        except ValueError as e:
            raise TransportError(f"{method} returned invalid JSON: {e}", cause=e) from e

        if not isinstance(body, dict):
            raise TransportError(f"{method} returned unexpected body: {body!r}")
        if body.get("error"):
            error = body["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise TransportError(f"{method} error: {message}")
        return body.get("result")

    def header_by_number(self, number: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Fetch the header at the given height, or the chain tip when number is None.

        Returns:
            The raw header dict, or None if the node has no such block
        """
        tag = "latest" if number is None else hex(number)
        return self.call(HEADER_METHOD, tag, False)

    def client_version(self) -> str:
        return self.call(VERSION_METHOD)

    def close(self) -> None:
        self.session.close()
