"""
A monitored node: one provider connection plus everything tracked about it.

Self-hosted nodes and hosted providers share this class; the differences
(URL composition, default version label) come from NodeConfig.
"""
import threading
import time
from typing import Callable, Dict, Optional

import structlog

from .chain_history import ChainHistory
from .config.base import NodeConfig
from .config.logging import log_error
from .constants import DEFAULT_VERSION, RPC_TIMEOUT, VERSION_INTERVAL, VERSION_METHOD
from .exceptions import FetchError, TransportError
from .fetcher import HeaderFetcher
from .models import BlockInfo, NodeStatus
from .rate_limiter import RateLimiter
from .reorg import ReorgAwareUpdater
from .rpc import RPCClient

logger = structlog.get_logger()


class Node:
    """
    Head tracking, chain history and throttled queries for one RPC endpoint.

    All operations on a node are serialised by a per-node lock; different
    nodes share no state and can be polled in parallel.
    """

    def __init__(self, name: str, client: RPCClient, version: str = DEFAULT_VERSION,
                 rate_limit: int = 0, store=None, metrics=None,
                 version_interval: float = VERSION_INTERVAL,
                 clock: Callable[[], float] = time.time,
                 limiter: Optional[RateLimiter] = None):
        """
        Initialize a node.

        Args:
            name: Display name, also the metrics label
            client: JSON-RPC transport for the node
            version: Version label shown until web3_clientVersion answers
            rate_limit: Calls per second, 0 for unlimited
            store: Optional durable header store
            metrics: Optional MonitorMetrics handle
            version_interval: Minimum seconds between version queries
            clock: Wall clock used for progress and throttling timestamps
            limiter: Prebuilt rate limiter, overrides rate_limit
        """
        self.name = name
        self.client = client
        self._version = version
        self.version_error: Optional[Exception] = None
        self.version_interval = version_interval
        self.status = NodeStatus.OK
        self.last_progress = 0  # Last unix time the node progressed the chain
        self.latest: Optional[BlockInfo] = None

        self.history = ChainHistory()
        self.limiter = limiter or RateLimiter(rate_limit)
        self.metrics = metrics
        self._head_gauge = metrics.head_gauge(name) if metrics is not None else None
        self._clock = clock
        self._last_check: Dict[str, float] = {}
        self._lock = threading.RLock()

        self.fetcher = HeaderFetcher(name, client, self.limiter, store=store)
        self.updater = ReorgAwareUpdater(name, self.fetcher, self.history, metrics=metrics)

    @classmethod
    def from_config(cls, config: NodeConfig, store=None, metrics=None,
                    timeout: float = RPC_TIMEOUT,
                    version_interval: float = VERSION_INTERVAL) -> "Node":
        """
        Build a node from its configuration.

        Raises:
            ConfigurationError: If a hosted provider is missing its API key
        """
        client = RPCClient(config.resolved_url(), timeout=timeout)
        logger.info("node_created", node=config.name, kind=config.kind.value,
                    rate_limit=config.rate_limit)
        return cls(
            config.name,
            client,
            version=config.default_version(),
            rate_limit=config.rate_limit,
            store=store,
            metrics=metrics,
            version_interval=version_interval,
        )

    def set_status(self, status: NodeStatus) -> None:
        self.status = NodeStatus(status)

    def head_num(self) -> int:
        latest = self.latest
        return latest.number if latest is not None else 0

    @property
    def cached_version(self) -> str:
        return self._version

    @property
    def reorg_count(self) -> int:
        return self.updater.reorg_count

    def version(self) -> str:
        """
        Return the node's client version.

        The value is refreshed through web3_clientVersion at most once per
        version_interval. A failed refresh is logged and kept in
        version_error; the last known value is returned unchanged.
        """
        try:
            self.refresh_version()
        except FetchError as e:
            log_error(logger, e, {"node": self.name}, event="version_fetch_failed",
                      level="warning")
        return self._version

    def refresh_version(self) -> str:
        """
        Query web3_clientVersion unless it was queried within version_interval.

        Raises:
            FetchError: If the query fails
        """
        with self._lock:
            now = self._clock()
            last = self._last_check.get(VERSION_METHOD)
            if last is not None and now - last < self.version_interval:
                return self._version
            # The window starts at the attempt, failed or not
            self._last_check[VERSION_METHOD] = now

            self.limiter.take()
            try:
                version = self.client.client_version()
            except TransportError as e:
                e.node = self.name
                self.version_error = e
                raise
            except Exception as e:
                error = TransportError(f"{VERSION_METHOD} failed on {self.name}: {e}",
                                       node=self.name, cause=e)
                self.version_error = error
                raise error from e

            self.version_error = None
            if version:
                self._version = str(version)
            return self._version

    def update_latest(self, cancel: Optional[threading.Event] = None) -> BlockInfo:
        """
        Fetch the chain tip and record progress if the head hash changed.

        Returns:
            The head as just reported by the node

        Raises:
            FetchError: If the tip could not be fetched
        """
        with self._lock:
            head = self.updater.fetch_with_reorg_check(None, cancel=cancel)
            if self.latest is None or self.latest.hash != head.hash:
                self.last_progress = int(self._clock())
                self.latest = head
                if self._head_gauge is not None:
                    self._head_gauge.set(head.number)
                logger.info("node_progressed", node=self.name,
                            head=head.terminal_string(), last_progress=self.last_progress)
            return head

    def block_at(self, height: int, force: bool = False,
                 cancel: Optional[threading.Event] = None) -> Optional[BlockInfo]:
        """
        Return what the node reports at height.

        Heights above the latest known head yield None without a query.
        Unless force is set, a cached entry is returned without a query.
        Fetch failures yield None when force is False and propagate when
        force is True.
        """
        with self._lock:
            if self.latest is not None and height > self.latest.number:
                return None  # future block, don't bother
            if not force:
                cached = self.history.get(height)
                if cached is not None:
                    return cached
            try:
                return self.updater.fetch_with_reorg_check(height, cancel=cancel)
            except FetchError as e:
                if force:
                    raise
                log_error(logger, e, {"node": self.name, "height": height},
                          event="block_fetch_failed", level="warning")
                return None

    def hash_at(self, height: int, force: bool = False) -> str:
        """The hash the node reports at height, or an empty string."""
        block = self.block_at(height, force)
        return block.hash if block is not None else ""

    def close(self) -> None:
        self.client.close()

    def __repr__(self) -> str:
        return f"Node(name={self.name!r}, head={self.head_num()}, status={self.status.name})"
