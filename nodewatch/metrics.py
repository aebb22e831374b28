"""Prometheus metrics for monitored nodes."""

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class MonitorMetrics:
    """
    Metrics for monitored nodes, bound to an explicit registry.

    The per-node head gauge ("head/<name>") is exported as
    nodewatch_head_block{node="<name>"}.
    """

    def __init__(self, registry: CollectorRegistry = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.head_block = Gauge(
            'nodewatch_head_block',
            'Latest block number reported by the node',
            ['node'],
            registry=self.registry
        )
        self.reorg_counter = Counter(
            'nodewatch_reorgs',
            'Stale ancestors replaced by the reorg walk',
            ['node'],
            registry=self.registry
        )
        self.fetch_error_counter = Counter(
            'nodewatch_fetch_errors',
            'Failed head updates',
            ['node'],
            registry=self.registry
        )
        self.status_gauge = Gauge(
            'nodewatch_node_status',
            'Node status (0 = OK, 1 = unreachable)',
            ['node'],
            registry=self.registry
        )

    def head_gauge(self, name: str) -> Gauge:
        """Gauge child tracking the head of node name."""
        return self.head_block.labels(node=name)

    def reorgs(self, name: str) -> Counter:
        return self.reorg_counter.labels(node=name)

    def fetch_errors(self, name: str) -> Counter:
        return self.fetch_error_counter.labels(node=name)

    def node_status(self, name: str) -> Gauge:
        return self.status_gauge.labels(node=name)

    def exposition(self) -> bytes:
        """Current metrics in the Prometheus text format."""
        return generate_latest(self.registry)
