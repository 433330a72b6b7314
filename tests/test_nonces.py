"""
tests/test_nonces.py – Nonce registry and deadline guard tests.

All tests run offline.  They verify that:
  1. Unknown signers start at nonce 0.
  2. Nonces are consumed strictly in order; stale and future ones fail.
  3. consuming() commits only when its block exits cleanly.
  4. Re-entrant and concurrent consumption of one nonce succeeds once.
  5. A custom NonceStore backend is honoured.
  6. Per-identity locks are released once no consume is in flight.
  7. The deadline guard is inclusive of the deadline second.
"""

from __future__ import annotations

import threading

import pytest

from gasless_sdk.deadline import DeadlineStatus, check_deadline, ensure_not_expired
from gasless_sdk.errors import Expired, NonceMismatch
from gasless_sdk.nonces import InMemoryNonceStore, NonceRegistry

ALICE = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
BOB   = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"


class TestNonceRegistry:
    def test_default_zero(self) -> None:
        assert NonceRegistry().expected_nonce(ALICE) == 0

    def test_sequential_consume(self) -> None:
        registry = NonceRegistry()
        assert registry.consume(ALICE, 0) == 1
        assert registry.consume(ALICE, 1) == 2
        assert registry.expected_nonce(ALICE) == 2

    def test_per_signer(self) -> None:
        registry = NonceRegistry()
        registry.consume(ALICE, 0)
        assert registry.expected_nonce(BOB) == 0

    def test_address_case_insensitive(self) -> None:
        registry = NonceRegistry()
        registry.consume(ALICE.lower(), 0)
        assert registry.expected_nonce(ALICE) == 1

    def test_stale_nonce_rejected(self) -> None:
        registry = NonceRegistry()
        registry.consume(ALICE, 0)
        with pytest.raises(NonceMismatch) as exc_info:
            registry.consume(ALICE, 0)
        assert exc_info.value.expected == 1
        assert exc_info.value.supplied == 0
        assert registry.expected_nonce(ALICE) == 1

    def test_future_nonce_rejected(self) -> None:
        registry = NonceRegistry()
        with pytest.raises(NonceMismatch, match="expected nonce 0, got 1"):
            registry.consume(ALICE, 1)
        assert registry.expected_nonce(ALICE) == 0

    def test_consuming_rolls_back_on_error(self) -> None:
        registry = NonceRegistry()
        with pytest.raises(RuntimeError):
            with registry.consuming(ALICE, 0):
                raise RuntimeError("payload failed")
        assert registry.expected_nonce(ALICE) == 0
        assert registry.consume(ALICE, 0) == 1

    def test_reentrant_consume_rejected(self) -> None:
        registry = NonceRegistry()
        with registry.consuming(ALICE, 0):
            with pytest.raises(NonceMismatch):
                registry.consume(ALICE, 0)
        assert registry.expected_nonce(ALICE) == 1

    def test_custom_store(self) -> None:
        store = InMemoryNonceStore()
        registry = NonceRegistry(store=store)
        registry.consume(ALICE, 0)
        assert store.snapshot() == {ALICE: 1}

    def test_concurrent_same_nonce_succeeds_once(self) -> None:
        registry = NonceRegistry()
        results: list[bool] = []
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            try:
                registry.consume(ALICE, 0)
                results.append(True)
            except NonceMismatch:
                results.append(False)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert registry.expected_nonce(ALICE) == 1
        assert registry._locks == {}

    def test_lock_table_released_after_use(self) -> None:
        registry = NonceRegistry()
        for i in range(200):
            registry.consume("0x" + f"{i + 1:040x}", 0)
        with pytest.raises(NonceMismatch):
            registry.consume(BOB, 5)
        assert registry._locks == {}
        assert registry._lock_refs == {}
        assert registry.expected_nonce("0x" + f"{200:040x}") == 1

    def test_lock_held_during_consuming(self) -> None:
        registry = NonceRegistry()
        with registry.consuming(ALICE, 0):
            assert list(registry._locks) == [ALICE]
        assert registry._locks == {}


class TestDeadlineGuard:
    def test_before_deadline(self) -> None:
        assert check_deadline(100, 99) is DeadlineStatus.VALID

    def test_equal_is_valid(self) -> None:
        assert check_deadline(100, 100) is DeadlineStatus.VALID
        ensure_not_expired(100, 100)

    def test_after_deadline(self) -> None:
        assert check_deadline(100, 101) is DeadlineStatus.EXPIRED

    def test_ensure_raises(self) -> None:
        with pytest.raises(Expired, match="EIP712: Expired") as exc_info:
            ensure_not_expired(100, 101)
        assert exc_info.value.deadline == 100
        assert exc_info.value.now == 101
