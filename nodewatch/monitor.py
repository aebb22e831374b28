"""
Polling driver: keeps every node's head current and rebuilds the report.

Each cycle updates all nodes in parallel, marks the ones that failed as
unreachable, and builds a report over the most recent heights.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

import structlog

from .config.base import MonitorConfig, MonitorSettings
from .config.logging import log_error
from .exceptions import FetchError
from .models import NodeStatus
from .node import Node
from .report import Report, build_report

logger = structlog.get_logger()


class Monitor:
    """Drives update_latest on a set of nodes and keeps the latest report."""

    def __init__(self, nodes: Sequence[Node], settings: Optional[MonitorSettings] = None,
                 metrics=None):
        """
        Initialize the monitor.

        Args:
            nodes: Nodes to poll, in report column order
            settings: Poll interval and report depth
            metrics: Optional MonitorMetrics handle
        """
        self.nodes: List[Node] = list(nodes)
        self.settings = settings or MonitorSettings()
        self.metrics = metrics
        self.latest_report: Optional[Report] = None
        self.cycles = 0
        self._report_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: MonitorConfig, store=None, metrics=None) -> "Monitor":
        settings = config.settings
        nodes = [
            Node.from_config(node_config, store=store, metrics=metrics,
                             timeout=settings.rpc_timeout,
                             version_interval=settings.version_interval)
            for node_config in config.nodes
        ]
        return cls(nodes, settings=settings, metrics=metrics)

    def poll_node(self, node: Node) -> Optional[FetchError]:
        """Update one node's head and set its status from the outcome."""
        try:
            node.update_latest()
        except FetchError as e:
            if node.status != NodeStatus.UNREACHABLE:
                log_error(logger, e, {"node": node.name}, event="node_unreachable")
            node.set_status(NodeStatus.UNREACHABLE)
            if self.metrics is not None:
                self.metrics.fetch_errors(node.name).inc()
                self.metrics.node_status(node.name).set(int(NodeStatus.UNREACHABLE))
            return e

        if node.status != NodeStatus.OK:
            logger.info("node_recovered", node=node.name, head=node.head_num())
        node.set_status(NodeStatus.OK)
        if self.metrics is not None:
            self.metrics.node_status(node.name).set(int(NodeStatus.OK))
        return None

    def poll_once(self) -> Dict[str, Optional[FetchError]]:
        """Update every node in parallel; returns each node's error or None."""
        if not self.nodes:
            return {}
        with ThreadPoolExecutor(max_workers=len(self.nodes), thread_name_prefix="poll") as pool:
            results = list(pool.map(self.poll_node, self.nodes))
        return {node.name: error for node, error in zip(self.nodes, results)}

    def report_heights(self) -> List[int]:
        """The highest known head and the heights just below it, descending."""
        top = max((node.head_num() for node in self.nodes), default=0)
        bottom = max(top - self.settings.report_depth + 1, 0)
        return list(range(top, bottom - 1, -1))

    def build_report(self, heights: Optional[Sequence[int]] = None) -> Report:
        report = build_report(self.nodes, heights if heights is not None else self.report_heights())
        with self._report_lock:
            self.latest_report = report
        return report

    def cycle(self) -> Report:
        """Poll all nodes once, then rebuild the report."""
        errors = self.poll_once()
        report = self.build_report()
        self.cycles += 1
        logger.info("monitor_cycle",
                    cycle=self.cycles,
                    unreachable=[name for name, error in errors.items() if error is not None],
                    top=report.numbers[0] if report.numbers else None,
                    divergent=report.divergent_heights())
        return report

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Run cycles every poll_interval seconds until stop_event is set."""
        stop_event = stop_event or threading.Event()
        logger.info("monitor_started", nodes=[node.name for node in self.nodes],
                    interval=self.settings.poll_interval)
        while not stop_event.is_set():
            started = time.monotonic()
            try:
                self.cycle()
            except Exception as e:
                log_error(logger, e, event="monitor_cycle_failed")
            elapsed = time.monotonic() - started
            stop_event.wait(max(self.settings.poll_interval - elapsed, 0))
        logger.info("monitor_stopped", cycles=self.cycles)

    def close(self) -> None:
        for node in self.nodes:
            node.close()
