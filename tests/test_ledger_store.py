from __future__ import annotations

import random

from hypothesis import given, settings, strategies as st

from cryptowallet.storage.ledger import SERVER_TIMESTAMP, InMemoryLedgerStore, join_path, split_path
from cryptowallet.storage.push_ids import PUSH_CHARS, PushIdGenerator

from conftest import FixedClock


def test_split_and_join_paths():
    assert split_path("/users//abc/balance/") == ["users", "abc", "balance"]
    assert join_path("portfolio", "u1", "") == "portfolio/u1"


def test_set_get_and_nested_reads(store):
    store.set("users/u1", {"name": "Ann", "balance": 10.5})
    assert store.get("users/u1/name") == "Ann"
    assert store.get("users") == {"u1": {"name": "Ann", "balance": 10.5}}
    assert store.get("users/u2") is None


def test_update_merges_children(store):
    store.set("users/u1", {"name": "Ann", "balance": 10})
    store.update("users/u1", {"name": "Bea", "email": "bea@example.com"})
    assert store.get("users/u1") == {"name": "Bea", "email": "bea@example.com", "balance": 10}


def test_update_with_nested_paths(store):
    store.update("", {"users/u1/balance": 5, "wishlist/u1": ["bitcoin"]})
    assert store.get("users/u1/balance") == 5
    assert store.get("wishlist/u1") == ["bitcoin"]


def test_delete_prunes_empty_parents(store):
    store.set("portfolio/u1/bitcoin", {"quantity": 1})
    store.delete("portfolio/u1/bitcoin")
    assert store.get("portfolio/u1") is None
    assert store.snapshot() == {}


def test_setting_none_or_empty_removes_value(store):
    store.set("wishlist/u1", ["bitcoin"])
    store.set("wishlist/u1", [])
    assert store.get("wishlist/u1") is None
    store.set("users/u1/name", "Ann")
    store.set("users/u1/name", None)
    assert store.get("users/u1") is None


def test_get_returns_copies(store):
    store.set("users/u1", {"name": "Ann"})
    data = store.get("users/u1")
    data["name"] = "changed"
    assert store.get("users/u1/name") == "Ann"


def test_push_resolves_server_timestamp():
    clock = FixedClock(start=1_700_000_000.0)
    store = InMemoryLedgerStore(clock=clock)
    key = store.push("transactions/u1", {"amount": 5, "timestamp": SERVER_TIMESTAMP})
    record = store.get(f"transactions/u1/{key}")
    assert isinstance(record["timestamp"], int)
    assert abs(record["timestamp"] - 1_700_000_000_000) < 10


def test_pushed_keys_sort_in_insertion_order(store):
    keys = [store.push("log", {"n": i}) for i in range(50)]
    assert sorted(keys) == keys
    assert len(set(keys)) == 50


def test_subscribe_fires_initially_and_on_change(store):
    seen = []
    unsubscribe = store.subscribe("users/u1/balance", seen.append)
    store.set("users/u1/balance", 10)
    store.update("users/u1", {"balance": 20})
    store.set("users/u2/balance", 99)
    unsubscribe()
    store.set("users/u1/balance", 30)
    assert seen == [None, 10, 20]


def test_listener_errors_do_not_break_writes(store):
    def boom(value):
        if value is not None:
            raise RuntimeError("listener failed")

    store.subscribe("a", boom)
    store.set("a/b", 1)
    assert store.get("a/b") == 1


def test_push_id_shape():
    gen = PushIdGenerator(clock=lambda: 1.0, rng=random.Random(7))
    push_id = gen.generate()
    assert len(push_id) == 20
    assert all(c in PUSH_CHARS for c in push_id)


@given(st.lists(st.floats(min_value=0, max_value=4_000_000_000), min_size=2, max_size=30))
@settings(max_examples=50)
def test_push_ids_are_monotonic_for_non_decreasing_clock(times):
    times = sorted(times)
    it = iter(times)
    gen = PushIdGenerator(clock=lambda: next(it), rng=random.Random(0))
    ids = [gen.generate() for _ in times]
    assert ids == sorted(ids)
