"""Exceptions raised by the nodewatch core."""
from typing import Optional


class NodeWatchError(Exception):
    """Base class for all nodewatch errors."""
    pass


class ConfigurationError(NodeWatchError):
    """Raised when node or monitor configuration is invalid."""
    pass


class FetchError(NodeWatchError):
    """
    Raised when a header or other RPC value could not be fetched from a node.

    Attributes:
        node: Name of the node the fetch was issued against
        height: Requested block height, or None for the chain tip
    """

    def __init__(self, message: str, node: Optional[str] = None,
                 height: Optional[int] = None):
        super().__init__(message)
        self.node = node
        self.height = height


class TransportError(FetchError):
    """The connection or the JSON-RPC call itself failed."""

    def __init__(self, message: str, node: Optional[str] = None,
                 height: Optional[int] = None, cause: Optional[Exception] = None):
        super().__init__(message, node=node, height=height)
        self.cause = cause


class EmptyResponseError(FetchError):
    """The call succeeded but the node returned no header."""
    pass


class FetchCancelledError(FetchError):
    """The fetch was cancelled by the caller before it completed."""
    pass


class ReorgWalkAbortedError(NodeWatchError):
    """
    An ancestor re-fetch failed during a reorg walk.

    Non-fatal: the walk stops and keeps the ancestry confirmed so far.
    """

    def __init__(self, node: str, height: int, cause: Exception):
        super().__init__(f"Reorg walk aborted for {node} at height {height}: {cause}")
        self.node = node
        self.height = height
        self.cause = cause
