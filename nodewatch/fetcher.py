"""Single-header fetches through a node's rate limiter."""
import threading
from typing import Optional

import structlog

from .config.logging import log_error
from .exceptions import EmptyResponseError, FetchCancelledError, TransportError
from .models import BlockInfo
from .rate_limiter import RateLimiter
from .rpc import RPCClient

logger = structlog.get_logger()


class HeaderFetcher:
    """
    Fetches one header per call and normalises it into a BlockInfo.

    Each fetched header is also handed to the durable store, keyed by hash.
    The fetcher performs no retries and never touches the chain history.
    """

    def __init__(self, name: str, client: RPCClient, limiter: RateLimiter, store=None):
        """
        Initialize the fetcher.

        Args:
            name: Node name, used in errors and logs
            client: Transport for the node
            limiter: The node's rate limiter
            store: Optional header store with an add(hash, header, node=...) method
        """
        self.name = name
        self.client = client
        self.limiter = limiter
        self.store = store

    def fetch_header_at(self, height: Optional[int] = None,
                        cancel: Optional[threading.Event] = None) -> BlockInfo:
        """
        Fetch the header at height, or the chain tip when height is None.

        Args:
            height: Block number to fetch
            cancel: Optional event; once set, the fetch fails and its result is dropped

        Returns:
            The normalised BlockInfo

        Raises:
            TransportError: The RPC call failed
            EmptyResponseError: The node returned no header
            FetchCancelledError: cancel was set before or during the call
        """
        self._check_cancelled(cancel, height)
        self.limiter.take()
        self._check_cancelled(cancel, height)

        logger.debug("fetching_header", node=self.name, requested=height)
        try:
            header = self.client.header_by_number(height)
        except TransportError as e:
            e.node, e.height = self.name, height
            raise
        except Exception as e:
            raise TransportError(f"Header fetch failed on {self.name}: {e}",
                                 node=self.name, height=height, cause=e) from e

        if not header:
            raise EmptyResponseError(
                f"Got nil header for num {height if height is not None else 'latest'}, "
                f"node {self.name}",
                node=self.name, height=height,
            )

        self._check_cancelled(cancel, height)

        try:
            info = BlockInfo.from_header(header)
        except EmptyResponseError as e:
            e.node, e.height = self.name, height
            raise

        self._persist(info, header)
        return info

    def _check_cancelled(self, cancel: Optional[threading.Event], height: Optional[int]) -> None:
        if cancel is not None and cancel.is_set():
            raise FetchCancelledError(f"Fetch cancelled on {self.name}",
                                      node=self.name, height=height)

    def _persist(self, info: BlockInfo, header: dict) -> None:
        if self.store is None:
            return
        try:
            self.store.add(info.hash, header, node=self.name)
        except Exception as e:
            # Store failures never fail the fetch
            log_error(logger, e, {"node": self.name, "hash": info.hash},
                      event="store_write_failed")

