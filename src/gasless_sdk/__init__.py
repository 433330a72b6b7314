"""
Gasless SDK – EIP-712 delegated authorization for Python.

Provides:
  - Typed Pydantic v2 models           (types.py      → Domain, AuthorizationMessage, Signature)
  - EIP-712 struct hashing             (eip712.py     → domain_separator, signing_digest)
  - Signature recovery + signing       (signing.py    → recover_signer, sign_authorization)
  - Replay-protection nonce registry   (nonces.py     → NonceRegistry)
  - Deadline guard                     (deadline.py   → check_deadline)
  - Audit event log                    (events.py     → EventLog)
  - Authorization dispatcher           (dispatcher.py → AuthorizationDispatcher)

Quickstart
----------
    from gasless_sdk import (
        AuthorizationDispatcher, AuthorizationMessage, Domain, Network, sign_authorization,
    )

    domain = Domain(name="Gasless", version="1",
                    chain_id=Network.HARDHAT.chain_id, verifying_authority=contract)
    dispatcher = AuthorizationDispatcher(domain)

    msg = AuthorizationMessage(sender=addr, receivers=[addr], amount=42,
                               deadline=deadline, nonce=dispatcher.current_nonce(addr))
    sig = sign_authorization(msg, private_key, domain)
    dispatcher.delegated_call(addr, [addr], 42, deadline, sig.v, sig.r, sig.s)
"""

from .types import (
    # Networks
    Network,
    # Core objects
    Domain,
    AuthorizationMessage,
    Signature,
    AuthorizedCall,
)
from .errors import (
    AuthorizationError,
    MalformedSignature,
    InvalidSignature,
    Expired,
    NonceMismatch,
)
from .eip712 import (
    AUTHORIZATION_TYPES,
    PRIMARY_TYPE,
    TypedDataError,
    build_typed_data,
    domain_separator,
    encode_authorization,
    hash_authorization,
    hash_struct,
    signing_digest,
    typed_data_digest,
)
from .signing import recover_signer, recover_authorization_signer, sign_authorization
from .nonces import NonceRegistry, NonceStore, InMemoryNonceStore
from .deadline import DeadlineStatus, check_deadline, ensure_not_expired, system_clock
from .events import EventLog
from .dispatcher import (
    AuthorizationDispatcher,
    AuthSource,
    CallerIdentity,
    RecoveredIdentity,
)

__all__ = [
    # Networks
    "Network",
    # Core objects
    "Domain",
    "AuthorizationMessage",
    "Signature",
    "AuthorizedCall",
    # Errors
    "AuthorizationError",
    "MalformedSignature",
    "InvalidSignature",
    "Expired",
    "NonceMismatch",
    # EIP-712
    "AUTHORIZATION_TYPES",
    "PRIMARY_TYPE",
    "TypedDataError",
    "build_typed_data",
    "domain_separator",
    "encode_authorization",
    "hash_authorization",
    "hash_struct",
    "signing_digest",
    "typed_data_digest",
    # Signing
    "recover_signer",
    "recover_authorization_signer",
    "sign_authorization",
    # Nonces
    "NonceRegistry",
    "NonceStore",
    "InMemoryNonceStore",
    # Deadline
    "DeadlineStatus",
    "check_deadline",
    "ensure_not_expired",
    "system_clock",
    # Events
    "EventLog",
    # Dispatcher
    "AuthorizationDispatcher",
    "AuthSource",
    "CallerIdentity",
    "RecoveredIdentity",
]

__version__ = "0.1.0"
