"""
Tests for the Balance Store
===========================
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from services.balance_proof.store import BalanceStore
from shared.zk.exceptions import BalanceNotFoundError


class TestBalanceStore:
    """Tests for BalanceStore."""

    def test_put_then_get(self):
        store = BalanceStore()
        store.put("alice", 200)
        assert store.get("alice") == 200

    def test_last_write_wins(self):
        store = BalanceStore()
        store.put("alice", 200)
        store.put("alice", 50)
        assert store.get("alice") == 50
        assert len(store) == 1

    def test_unknown_identity(self):
        with pytest.raises(BalanceNotFoundError) as exc_info:
            BalanceStore().get("nobody")
        assert exc_info.value.identity == "nobody"
        assert exc_info.value.error_code == "not_found"

    def test_empty_identity_is_a_key(self):
        store = BalanceStore()
        store.put("", 7)
        assert "" in store
        assert store.get("") == 7

    def test_delete_and_clear(self):
        store = BalanceStore()
        store.put("alice", 1)
        store.put("bob", 2)

        assert store.delete("alice") is True
        assert store.delete("alice") is False
        assert "alice" not in store

        store.clear()
        assert len(store) == 0

    def test_concurrent_writers(self):
        store = BalanceStore()

        def write(i: int) -> None:
            store.put(f"user-{i % 10}", i)
            store.get(f"user-{i % 10}")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(write, range(500)))

        assert len(store) == 10
        for n in range(10):
            assert store.get(f"user-{n}") % 10 == n
