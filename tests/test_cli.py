"""Tests for the command line interface."""
import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from nodewatch.cli import cli, parse_heights
from nodewatch.node import Node
from tests.mock_rpc import MockRPCClient, build_chain, make_hash


def test_parse_heights():
    assert parse_heights(None) is None
    assert parse_heights("") is None
    assert parse_heights("5") == [5]
    assert parse_heights("3,1,2") == [3, 1, 2]
    assert parse_heights("10-12") == [10, 11, 12]
    assert parse_heights("12-10, 4") == [12, 11, 10, 4]


def test_parse_heights_rejects_garbage():
    with pytest.raises(ValueError):
        parse_heights("ten")


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "nodes.json"
    path.write_text(json.dumps({
        "nodes": [
            {"name": "geth", "url": "http://geth:8545"},
            {"name": "besu", "url": "http://besu:8545"},
        ],
        "settings": {"report_depth": 2},
    }))
    return str(path)


@pytest.fixture
def mock_clients():
    """Serve every configured node from an in-memory chain."""
    chain = build_chain("a", 0, 40)

    def fake_from_config(config, store=None, metrics=None, timeout=None, version_interval=30):
        return Node(config.name, MockRPCClient(chain), store=store, metrics=metrics)

    with patch("nodewatch.monitor.Node.from_config", side_effect=fake_from_config):
        yield


def test_report_table(config_file, mock_clients):
    result = CliRunner().invoke(cli, ["report", "--config", config_file])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "| number | geth | besu |"
    assert lines[2].startswith("| 40 | " + make_hash("a", 40))


def test_report_json(config_file, mock_clients):
    result = CliRunner().invoke(cli, ["report", "--config", config_file, "--json",
                                      "--heights", "7-8"])

    assert result.exit_code == 0, result.output
    doc = json.loads(result.output)
    assert doc["Numbers"] == [7, 8]
    assert doc["Rows"]["7"] == [make_hash("a", 7)] * 2


def test_report_bad_heights(config_file, mock_clients):
    result = CliRunner().invoke(cli, ["report", "--config", config_file, "--heights", "x"])
    assert result.exit_code != 0


def test_node_listing(config_file, mock_clients):
    result = CliRunner().invoke(cli, ["node", "--config", config_file, "besu",
                                      "--heights", "40,41"])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith("## Geth/")
    assert lines[1].startswith("40: 40 [")
    assert lines[2] == "41: n/a"


def test_unknown_node(config_file, mock_clients):
    result = CliRunner().invoke(cli, ["node", "--config", config_file, "erigon"])
    assert result.exit_code == 1
    assert "Unknown node" in result.output


def test_invalid_config(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"nodes": [{"name": "geth"}]}))
    result = CliRunner().invoke(cli, ["report", "--config", str(path)])
    assert result.exit_code == 1
