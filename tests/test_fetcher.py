"""Tests for single-header fetches."""
import threading
from unittest.mock import MagicMock

import pytest

from nodewatch.exceptions import EmptyResponseError, FetchCancelledError, FetchError, TransportError
from nodewatch.fetcher import HeaderFetcher
from nodewatch.models import BlockInfo
from nodewatch.rate_limiter import RateLimiter
from tests.mock_rpc import MockRPCClient, build_chain, make_hash


@pytest.fixture
def client():
    return MockRPCClient(build_chain("a", 0, 20))


@pytest.fixture
def store():
    return MagicMock()


@pytest.fixture
def fetcher(client, store):
    return HeaderFetcher("geth", client, RateLimiter(0), store=store)


def test_fetch_by_height(fetcher, client):
    info = fetcher.fetch_header_at(7)
    assert info == BlockInfo(number=7, hash=make_hash("a", 7), parent_hash=make_hash("a", 6))
    assert client.header_calls == [7]


def test_fetch_latest(fetcher):
    info = fetcher.fetch_header_at()
    assert info.number == 20


def test_fetch_persists_raw_header(fetcher, client, store):
    info = fetcher.fetch_header_at(3)
    store.add.assert_called_once_with(info.hash, client.headers[3], node="geth")


def test_store_failure_does_not_fail_fetch(fetcher, store):
    store.add.side_effect = RuntimeError("database is locked")
    info = fetcher.fetch_header_at(3)
    assert info.number == 3


def test_transport_error_carries_node_and_height(fetcher, client):
    client.fail_heights.add(5)
    with pytest.raises(TransportError) as excinfo:
        fetcher.fetch_header_at(5)
    assert excinfo.value.node == "geth"
    assert excinfo.value.height == 5


def test_unexpected_client_error_is_wrapped(fetcher, client):
    client.header_by_number = MagicMock(side_effect=OSError("broken pipe"))
    with pytest.raises(TransportError):
        fetcher.fetch_header_at(5)


def test_empty_response_is_an_error(fetcher, client, store):
    client.empty_heights.add(9)
    with pytest.raises(EmptyResponseError):
        fetcher.fetch_header_at(9)
    store.add.assert_not_called()


def test_unknown_height_is_empty_response(fetcher):
    with pytest.raises(EmptyResponseError):
        fetcher.fetch_header_at(500)


def test_malformed_header_is_empty_response(fetcher, client):
    client.headers[4] = {"number": "0x4"}
    with pytest.raises(EmptyResponseError):
        fetcher.fetch_header_at(4)


def test_cancelled_before_call(fetcher, client):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(FetchCancelledError):
        fetcher.fetch_header_at(1, cancel=cancel)
    assert client.header_calls == []


def test_cancelled_during_call_drops_result(client, store):
    cancel = threading.Event()
    original = client.header_by_number

    def slow_header(number=None):
        header = original(number)
        cancel.set()
        return header

    client.header_by_number = slow_header
    fetcher = HeaderFetcher("geth", client, RateLimiter(0), store=store)
    with pytest.raises(FetchError):
        fetcher.fetch_header_at(2, cancel=cancel)
    store.add.assert_not_called()


def test_rate_limiter_taken_per_fetch(client):
    limiter = MagicMock()
    fetcher = HeaderFetcher("geth", client, limiter)
    fetcher.fetch_header_at(1)
    fetcher.fetch_header_at(2)
    assert limiter.take.call_count == 2
