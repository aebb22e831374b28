"""
Reorg detection by walking parent hashes through a node's chain history.

After every fetch the updater checks that the cached header one below the
new one is its parent. When it is not, the cached ancestor is stale: it is
dropped and re-fetched, and the check repeats one level further down until
the chain links up again or the cache runs out. The number of extra fetches
is bounded by the depth of the reorg.
"""
import threading
from typing import List, Optional

import structlog

from .chain_history import ChainHistory
from .config.logging import log_error
from .constants import NOTABLE_REORG_DEPTH
from .exceptions import FetchCancelledError, FetchError, ReorgWalkAbortedError
from .fetcher import HeaderFetcher
from .models import BlockInfo

logger = structlog.get_logger()


class ReorgAwareUpdater:
    """Wraps a HeaderFetcher and keeps a ChainHistory consistent with the node's chain."""

    def __init__(self, name: str, fetcher: HeaderFetcher, history: ChainHistory,
                 metrics=None):
        """
        Initialize the updater.

        Args:
            name: Node name, used in logs and metrics
            fetcher: Header fetcher for the node
            history: The node's chain history
            metrics: Optional MonitorMetrics; detected reorgs are counted on it
        """
        self.name = name
        self.fetcher = fetcher
        self.history = history
        self.metrics = metrics
        self.reorg_count = 0
        self.last_reorg_depth = 0

    def fetch_with_reorg_check(self, height: Optional[int] = None,
                               cancel: Optional[threading.Event] = None) -> BlockInfo:
        """
        Fetch the header at height (tip when None) and reconcile cached ancestry.

        Cache changes made by the walk are applied together once it ends.
        A failed ancestor re-fetch stops the walk but not the operation;
        a cancellation fails the operation and leaves the cache untouched.

        Raises:
            FetchError: If the requested header itself cannot be fetched,
                or the operation was cancelled
        """
        requested = self.fetcher.fetch_header_at(height, cancel=cancel)

        invalidated: List[int] = []
        refetched: List[BlockInfo] = []
        depth = self._walk_ancestry(requested, invalidated, refetched, cancel)

        for number in invalidated:
            self.history.invalidate(number)
        for info in refetched:
            self.history.put(info)
        self.history.put(requested)

        self.last_reorg_depth = depth
        if depth:
            self.reorg_count += depth
            if self.metrics is not None:
                self.metrics.reorgs(self.name).inc(depth)
        if depth > NOTABLE_REORG_DEPTH:
            logger.info("node_reorged", node=self.name, size=depth,
                        head=requested.terminal_string())
        return requested

    def _walk_ancestry(self, current: BlockInfo, invalidated: List[int],
                       refetched: List[BlockInfo],
                       cancel: Optional[threading.Event]) -> int:
        """Walk down from current while cached parents disagree; return the reorg depth."""
        if current.number == 0:
            return 0
        parent_info = self.history.get(current.number - 1)
        depth = 0
        while parent_info is not None:
            if parent_info.hash == current.parent_hash:
                break  # not reorged

            depth += 1
            invalidated.append(parent_info.number)
            logger.debug("stale_ancestor", node=self.name, number=parent_info.number,
                         cached=parent_info.hash, expected=current.parent_hash)
            try:
                current = self.fetcher.fetch_header_at(parent_info.number, cancel=cancel)
            except FetchCancelledError:
                raise
            except FetchError as e:
                log_error(logger, ReorgWalkAbortedError(self.name, parent_info.number, e),
                          {"node": self.name, "depth": depth}, event="reorg_walk_aborted",
                          level="warning")
                break
            refetched.append(current)

            if current.number == 0:
                break
            parent_info = self.history.get(current.number - 1)
        return depth
