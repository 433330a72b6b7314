"""
dispatcher.py – Authorization dispatcher for direct and gasless calls.

Two entry points converge on one dispatch path:

- ``direct_call``    : the immediate caller *is* the sender; the host's
                       own caller authentication stands in for a signature.
- ``delegated_call`` : a relayer submits a sender's EIP-712 signature.

Delegated pipeline (each gate aborts with no state change)
----------------------------------------------------------
1. Assemble the SomeFunc message with the registry's *current* nonce for
   the claimed sender (never a relayer-chosen one) and build the digest.
2. Recover the signer                        → MalformedSignature
3. Recovered signer must equal the sender    → InvalidSignature
4. Deadline must not have passed             → Expired
5. Consume the nonce                         → NonceMismatch
6. Run the payload action, emit AuthorizedCall.

Because step 1 bakes the current nonce into the digest, a replayed
signature surfaces as InvalidSignature rather than NonceMismatch: the
registry has moved on, so the digest no longer matches what was signed.

Usage
-----
    dispatcher = AuthorizationDispatcher(domain, action=handle_call)

    sig = sign_authorization(message, private_key, domain)
    event = dispatcher.delegated_call(
        message.sender, message.receivers, message.amount,
        message.deadline, sig.v, sig.r, sig.s,
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from .deadline import Clock, ensure_not_expired, system_clock
from .eip712 import signing_digest
from .errors import AuthorizationError, InvalidSignature
from .events import EventLog
from .nonces import NonceRegistry
from .signing import recover_signer
from .types import AuthorizationMessage, AuthorizedCall, Domain, Signature

logger = logging.getLogger(__name__)

# The authorized side effect; receives the event about to be emitted.
PayloadAction = Callable[[AuthorizedCall], None]


# ---------------------------------------------------------------------------
# Authentication sources
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CallerIdentity:
    """Sender authenticated by the execution environment (direct call)."""
    identity: str


@dataclass(frozen=True)
class RecoveredIdentity:
    """Sender authenticated by signature recovery (delegated call)."""
    identity:  str
    message:   AuthorizationMessage
    signature: Signature
    digest:    bytes


AuthSource = Union[CallerIdentity, RecoveredIdentity]


def _noop_action(_: AuthorizedCall) -> None:
    return None


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class AuthorizationDispatcher:
    """
    Verifies authorizations and triggers the payload action exactly once.

    Parameters
    ----------
    domain   : EIP-712 domain of this deployment (fixed for its lifetime)
    registry : NonceRegistry (defaults to an in-memory one)
    action   : payload side effect, called with the AuthorizedCall before
               it is emitted; if it raises, nothing is committed
    clock    : returns "now" in unix seconds (block timestamp on-chain)
    events   : EventLog receiving AuthorizedCall records
    """

    def __init__(
        self,
        domain: Domain,
        registry: Optional[NonceRegistry] = None,
        *,
        action: Optional[PayloadAction] = None,
        clock: Clock = system_clock,
        events: Optional[EventLog] = None,
    ) -> None:
        self.domain     = domain
        self.registry   = registry if registry is not None else NonceRegistry()
        self.events     = events if events is not None else EventLog()
        self._action    = action or _noop_action
        self._clock     = clock
        self._separator = domain.separator

    @property
    def domain_separator(self) -> bytes:
        return self._separator

    # ------------------------------------------------------------------
    # Read-only
    # ------------------------------------------------------------------

    def current_nonce(self, identity: str) -> int:
        return self.registry.expected_nonce(identity)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def direct_call(self, caller: str, receivers: Sequence[str], amount: int) -> AuthorizedCall:
        """Dispatch on behalf of an already-authenticated caller; no nonce is used."""
        return self._dispatch(CallerIdentity(caller), receivers, amount)

    def delegated_call(
        self,
        sender: str,
        receivers: Sequence[str],
        amount: int,
        deadline: int,
        v: int,
        r: Union[int, str, bytes],
        s: Union[int, str, bytes],
    ) -> AuthorizedCall:
        """Verify ``sender``'s signature and dispatch on their behalf."""
        source = self.authenticate(sender, receivers, amount, deadline, Signature.from_vrs(v, r, s))
        return self._dispatch(source, receivers, amount)

    def authenticate(
        self,
        sender: str,
        receivers: Sequence[str],
        amount: int,
        deadline: int,
        signature: Signature,
    ) -> RecoveredIdentity:
        """
        Run gates 1-4 without consuming anything.

        Relayers can call this as a pre-flight check before paying to
        submit; ``delegated_call`` runs the same gates, then consumes the nonce.
        """
        message = AuthorizationMessage(
            sender=sender,
            receivers=list(receivers),
            amount=amount,
            deadline=deadline,
            nonce=self.registry.expected_nonce(sender),
        )
        digest = signing_digest(self.domain, message)

        try:
            recovered = recover_signer(digest, signature)
            if recovered != message.sender:
                raise InvalidSignature()
            ensure_not_expired(message.deadline, self._clock())
        except AuthorizationError as exc:
            logger.warning(
                "Rejected delegated call for %s (nonce=%d): %s",
                message.sender, message.nonce, exc,
            )
            raise

        return RecoveredIdentity(
            identity=recovered,
            message=message,
            signature=signature,
            digest=digest,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dispatch(self, source: AuthSource, receivers: Sequence[str], amount: int) -> AuthorizedCall:
        if isinstance(source, RecoveredIdentity):
            event = AuthorizedCall(
                sender=source.identity,
                receivers=source.message.receivers,
                amount=source.message.amount,
                nonce=source.message.nonce,
            )
            with self.registry.consuming(source.identity, source.message.nonce):
                self._action(event)
        else:
            event = AuthorizedCall(sender=source.identity, receivers=list(receivers), amount=amount)
            self._action(event)

        self.events.emit(event)
        logger.info(
            "Dispatched %s call from %s",
            "delegated" if isinstance(source, RecoveredIdentity) else "direct",
            event.sender,
        )
        return event
