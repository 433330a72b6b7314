"""
nonces.py – Per-signer nonce registry (replay protection ledger).

Every signer starts at nonce 0 and must use nonces strictly in order:
a message signed for a future nonce is rejected exactly like a stale one.
The stored value only ever moves by +1, and only when an authorization
is dispatched.

Storage
-------
The registry owns the *policy* (compare-and-increment, locking); the
storage backend is injected.  ``InMemoryNonceStore`` is the default; a
persistent backend only has to provide ``get`` and ``set``::

    class RedisNonceStore:
        def get(self, identity: str) -> int: ...
        def set(self, identity: str, value: int) -> None: ...

    registry = NonceRegistry(store=RedisNonceStore())

Thread safety
-------------
Check-and-increment is serialised per identity by a ``threading.RLock``,
so two concurrent submissions of the same (signer, nonce) can never both
pass.  ``consuming()`` keeps the lock held while the caller runs its side
effect and commits the increment only if that block exits cleanly.  A
re-entrant consume for a signer whose nonce is still held (the side
effect calling back into the registry) is rejected with NonceMismatch.
Lock entries exist only while some thread is using them, so the lock
table stays bounded by the number of in-flight consumes.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol

from eth_utils import to_checksum_address

from .errors import NonceMismatch

logger = logging.getLogger(__name__)


class NonceStore(Protocol):
    """Backend holding identity → next expected nonce (missing means 0)."""

    def get(self, identity: str) -> int: ...

    def set(self, identity: str, value: int) -> None: ...


@dataclass
class InMemoryNonceStore:
    """Dict-backed store; state lives as long as the process."""

    _values: dict[str, int] = field(default_factory=dict)

    def get(self, identity: str) -> int:
        return self._values.get(identity, 0)

    def set(self, identity: str, value: int) -> None:
        self._values[identity] = value

    def snapshot(self) -> dict[str, int]:
        return dict(self._values)


class NonceRegistry:
    """
    Replay-protection ledger mapping each signer to its next expected nonce.

    Parameters
    ----------
    store : NonceStore backend (defaults to a fresh InMemoryNonceStore)
    """

    def __init__(self, store: Optional[NonceStore] = None) -> None:
        self._store      = store if store is not None else InMemoryNonceStore()
        self._locks:     dict[str, threading.RLock] = {}
        self._lock_refs: dict[str, int] = {}
        self._pending:   dict[str, int] = {}
        self._locks_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def expected_nonce(self, identity: str) -> int:
        """Next nonce ``identity`` must sign with (0 for unknown signers)."""
        return self._store.get(to_checksum_address(identity))

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def consume(self, identity: str, supplied_nonce: int) -> int:
        """
        Consume ``supplied_nonce`` for ``identity``.

        Returns the new expected nonce.  Raises NonceMismatch unless
        ``supplied_nonce`` equals the current expected value.
        """
        with self.consuming(identity, supplied_nonce):
            pass
        return supplied_nonce + 1

    @contextmanager
    def consuming(self, identity: str, supplied_nonce: int) -> Iterator[int]:
        """
        Check ``supplied_nonce`` and hold it while the caller acts.

        The increment is committed when the ``with`` block exits normally;
        if the block raises, the nonce stays unconsumed.
        """
        identity = to_checksum_address(identity)
        with self._locked(identity):
            if identity in self._pending:
                held = self._pending[identity]
                logger.warning("Re-entrant consume for %s while nonce %d is held", identity, held)
                raise NonceMismatch(identity, held + 1, supplied_nonce)

            expected = self._store.get(identity)
            if supplied_nonce != expected:
                logger.warning(
                    "Nonce mismatch for %s: expected %d, supplied %d",
                    identity, expected, supplied_nonce,
                )
                raise NonceMismatch(identity, expected, supplied_nonce)

            self._pending[identity] = expected
            try:
                yield supplied_nonce
            finally:
                del self._pending[identity]

            self._store.set(identity, expected + 1)
            logger.info("Nonce for %s advanced to %d", identity, expected + 1)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self, identity: str) -> Iterator[None]:
        """Hold the per-identity lock; the entry is dropped once no thread uses it."""
        with self._locks_lock:
            lock = self._locks.get(identity)
            if lock is None:
                lock = self._locks[identity] = threading.RLock()
            self._lock_refs[identity] = self._lock_refs.get(identity, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._locks_lock:
                self._lock_refs[identity] -= 1
                if not self._lock_refs[identity]:
                    del self._lock_refs[identity]
                    del self._locks[identity]
