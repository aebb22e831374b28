"""Tests for the durable header store."""
import threading

import pytest

from nodewatch.fetcher import HeaderFetcher
from nodewatch.rate_limiter import RateLimiter
from nodewatch.store import HeaderStore, StoredHeader
from tests.mock_rpc import MockRPCClient, build_chain, make_hash


@pytest.fixture
def store(tmp_path):
    store = HeaderStore(f"sqlite:///{tmp_path / 'headers.db'}")
    yield store
    store.close()


def test_add_and_get(store):
    header = build_chain("a", 10, 10)[10]
    store.add(header["hash"], header, node="geth")

    assert store.get(header["hash"]) == header
    assert store.get(header["hash"].upper().replace("0X", "0x")) == header
    assert store.count() == 1


def test_unknown_hash(store):
    assert store.get(make_hash("a", 1)) is None


def test_same_hash_is_overwritten(store):
    header = build_chain("a", 3, 3)[3]
    store.add(header["hash"], header, node="geth")
    store.add(header["hash"], header, node="infura")
    assert store.count() == 1



def test_hashes_are_stored_normalized(store):
    header = dict(build_chain("a", 4, 4)[4])
    header["parentHash"] = header["parentHash"].upper().replace("0X", "0x")
    store.add(header["hash"].upper(), header)

    with store.Session() as session:
        row = session.get(StoredHeader, header["hash"].lower())
        assert row.hash == header["hash"].lower()
        assert row.parent_hash == header["parentHash"].lower()

def test_concurrent_writers(store):
    chain = build_chain("a", 0, 19)

    def writer(name):
        for header in chain.values():
            store.add(header["hash"], header, node=name)

    threads = [threading.Thread(target=writer, args=(f"node{i}",)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.count() == 20


def test_fetcher_writes_to_store(store):
    client = MockRPCClient(build_chain("a", 0, 5))
    fetcher = HeaderFetcher("geth", client, RateLimiter(0), store=store)
    info = fetcher.fetch_header_at(4)
    assert store.get(info.hash)["parentHash"] == make_hash("a", 3)
