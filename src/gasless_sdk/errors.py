"""
errors.py – Rejection taxonomy for gasless authorizations.

Every rejection is a pure abort: no nonce is consumed, no event is emitted
and the payload action never runs.  Retrying (fresh nonce, new deadline,
re-signing) is the caller's job.

    AuthorizationError
     ├── MalformedSignature   (r, s, v) cannot be parsed / recovered
     ├── InvalidSignature     recovered signer != claimed sender
     ├── Expired              block/wall clock is past the deadline
     └── NonceMismatch        supplied nonce != registry's expected nonce

The ``reason`` strings for InvalidSignature and Expired are the revert
messages relayers already match on ("EIP712: Invalid signature",
"EIP712: Expired").
"""

from __future__ import annotations

from typing import Optional


class AuthorizationError(Exception):
    """Base class for every rejected authorization."""

    reason: str = "EIP712: Rejected"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.reason
        super().__init__(self.message)


class MalformedSignature(AuthorizationError):
    """Signature components are structurally invalid (bad v, r/s out of range, point off curve)."""

    reason = "ECDSA: malformed signature"


class InvalidSignature(AuthorizationError):
    """
    Recovery succeeded but the recovered identity is not the claimed sender.

    Covers a wrong signer, a wrong domain, a wrong schema and replays:
    the digest is rebuilt with the registry's *current* nonce, so a
    signature over a consumed nonce recovers to some unrelated address.
    """

    reason = "EIP712: Invalid signature"


class Expired(AuthorizationError):
    """The authorization's deadline is earlier than the evaluation time."""

    reason = "EIP712: Expired"

    def __init__(self, deadline: int, now: int) -> None:
        self.deadline = deadline
        self.now      = now
        super().__init__(self.reason)


class NonceMismatch(AuthorizationError):
    """Nonce consumed out of order (stale, future, or raced by another call)."""

    reason = "EIP712: Nonce mismatch"

    def __init__(self, identity: str, expected: int, supplied: int) -> None:
        self.identity = identity
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"{self.reason}: {identity} expected nonce {expected}, got {supplied}"
        )
