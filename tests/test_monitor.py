"""Tests for the polling monitor."""
import threading
import unittest

from prometheus_client import CollectorRegistry

from nodewatch.config.base import MonitorSettings, parse_config
from nodewatch.exceptions import TransportError
from nodewatch.metrics import MonitorMetrics
from nodewatch.models import NodeStatus
from nodewatch.monitor import Monitor
from nodewatch.node import Node
from nodewatch.report import RowStatus
from tests.mock_rpc import FakeClock, MockRPCClient, build_chain


class TestMonitor(unittest.TestCase):
    """Test cases for Monitor."""

    def setUp(self):
        self.clock = FakeClock()
        self.metrics = MonitorMetrics(CollectorRegistry())
        self.clients = {
            "geth": MockRPCClient(build_chain("a", 0, 30)),
            "besu": MockRPCClient(build_chain("a", 0, 28)),
            "down": MockRPCClient(build_chain("a", 0, 30)),
        }
        self.clients["down"].fail_all = True
        self.nodes = [
            Node(name, client, metrics=self.metrics, clock=self.clock)
            for name, client in self.clients.items()
        ]
        self.monitor = Monitor(self.nodes, MonitorSettings(report_depth=4, poll_interval=0.01),
                               metrics=self.metrics)

    def sample(self, metric, node):
        return self.metrics.registry.get_sample_value(metric, {"node": node})

    def test_poll_once_sets_status(self):
        errors = self.monitor.poll_once()

        self.assertIsNone(errors["geth"])
        self.assertIsNone(errors["besu"])
        self.assertIsInstance(errors["down"], TransportError)
        self.assertEqual(self.nodes[0].status, NodeStatus.OK)
        self.assertEqual(self.nodes[2].status, NodeStatus.UNREACHABLE)
        self.assertEqual(self.sample("nodewatch_node_status", "down"), 1)
        self.assertEqual(self.sample("nodewatch_fetch_errors_total", "down"), 1)
        self.assertEqual(self.sample("nodewatch_head_block", "besu"), 28)

    def test_node_recovers(self):
        self.monitor.poll_once()
        self.clients["down"].fail_all = False
        self.monitor.poll_once()
        self.assertEqual(self.nodes[2].status, NodeStatus.OK)
        self.assertEqual(self.sample("nodewatch_node_status", "down"), 0)

    def test_report_heights(self):
        self.monitor.poll_once()
        self.assertEqual(self.monitor.report_heights(), [30, 29, 28, 27])

    def test_report_heights_never_negative(self):
        monitor = Monitor([Node("g", MockRPCClient(build_chain("a", 0, 1)))],
                          MonitorSettings(report_depth=5))
        monitor.poll_once()
        self.assertEqual(monitor.report_heights(), [1, 0])

    def test_report_heights_without_nodes(self):
        self.assertEqual(Monitor([], MonitorSettings(report_depth=3)).report_heights(), [0])

    def test_cycle_builds_report(self):
        report = self.monitor.cycle()

        self.assertIs(self.monitor.latest_report, report)
        self.assertEqual(report.numbers, [30, 29, 28, 27])
        # besu has not reached 29/30 yet, down has no data at all
        self.assertEqual(report.rows[30][1:], ["", ""])
        self.assertEqual(report.row_status(30), RowStatus.SINGLE)
        self.assertEqual(report.row_status(28), RowStatus.CONSENSUS)
        self.assertEqual(self.monitor.cycles, 1)

    def test_run_stops_on_event(self):
        stop = threading.Event()
        original = self.monitor.cycle

        def cycle_then_stop():
            report = original()
            if self.monitor.cycles >= 2:
                stop.set()
            return report

        self.monitor.cycle = cycle_then_stop
        self.monitor.run(stop)
        self.assertEqual(self.monitor.cycles, 2)

    def test_from_config(self):
        config = parse_config({
            "nodes": [
                {"name": "local", "url": "http://localhost:8545", "rate_limit": 4},
                {"name": "infura", "kind": "infura", "api_key": "abc"},
            ],
            "settings": {"version_interval": 10},
        })
        monitor = Monitor.from_config(config)
        self.assertEqual([node.name for node in monitor.nodes], ["local", "infura"])
        self.assertEqual(monitor.nodes[0].limiter.rate, 4)
        self.assertEqual(monitor.nodes[1].version_interval, 10)
        monitor.close()


if __name__ == "__main__":
    unittest.main()
