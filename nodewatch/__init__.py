"""
nodewatch: chain head and reorg tracking across Ethereum RPC providers.

Each monitored Node keeps its own chain history, detects reorgs by walking
parent hashes, and answers "which hash did you report at height N". Reports
line the nodes up against each other at a list of heights.
"""

from .chain_history import ChainHistory
from .exceptions import (
    ConfigurationError,
    EmptyResponseError,
    FetchCancelledError,
    FetchError,
    NodeWatchError,
    ReorgWalkAbortedError,
    TransportError,
)
from .fetcher import HeaderFetcher
from .models import BlockInfo, NodeStatus
from .node import Node
from .rate_limiter import RateLimiter
from .reorg import ReorgAwareUpdater
from .report import NodeColumn, Report, RowStatus, build_report, render_node

__version__ = "0.1.0"

__all__ = [
    'BlockInfo',
    'ChainHistory',
    'ConfigurationError',
    'EmptyResponseError',
    'FetchCancelledError',
    'FetchError',
    'HeaderFetcher',
    'Node',
    'NodeColumn',
    'NodeStatus',
    'NodeWatchError',
    'RateLimiter',
    'ReorgAwareUpdater',
    'ReorgWalkAbortedError',
    'Report',
    'RowStatus',
    'TransportError',
    'build_report',
    'render_node',
]
