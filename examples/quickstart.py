"""
examples/quickstart.py – End-to-end demo of the Gasless SDK.

Walks through the full delegated-call pipeline:
  1. Configure the EIP-712 domain of the verifying deployment
  2. Build an authorization with the sender's current nonce
  3. EIP-712 sign it with the sender's private key (the "wallet" side)
  4. Relay it through the dispatcher on the sender's behalf
  5. Show that replaying the same signature is rejected

HOW TO RUN
----------
    export GASLESS_VERIFYING_CONTRACT="0x5FbDB2315678afecb367f032d93F642f64180aa3"
    export GASLESS_PRIVATE_KEY="0x..."      # sender wallet
    python examples/quickstart.py

    Defaults target a local Hardhat chain (chain id 31337).
"""

from __future__ import annotations

import logging
import os
import time

from eth_account import Account

from gasless_sdk import (
    AuthorizationDispatcher,
    AuthorizationMessage,
    AuthorizedCall,
    Domain,
    InvalidSignature,
    sign_authorization,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s – %(message)s",
)
logger = logging.getLogger("quickstart")

# ---------------------------------------------------------------------------
# Config – read from environment variables
# ---------------------------------------------------------------------------

os.environ.setdefault("GASLESS_VERIFYING_CONTRACT", "0x5FbDB2315678afecb367f032d93F642f64180aa3")

# Hardhat account #1 (DO NOT use with real funds)
PRIVATE_KEY = os.environ.get(
    "GASLESS_PRIVATE_KEY",
    "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
)
AMOUNT = int(os.environ.get("GASLESS_AMOUNT", "42"))


def on_call(event: AuthorizedCall) -> None:
    """The payload action: here it only logs what was authorized."""
    logger.info("Payload executed for %s → %s (amount=%d)", event.sender, event.receivers, event.amount)


def main() -> None:
    domain = Domain.from_env()
    logger.info("Domain %s v%s chain=%d contract=%s", domain.name, domain.version, domain.chain_id, domain.verifying_authority)
    logger.info("Domain separator 0x%s", domain.separator.hex())

    dispatcher = AuthorizationDispatcher(domain, action=on_call)
    sender = Account.from_key(PRIVATE_KEY).address

    # 1. Direct call – the caller is authenticated by the environment
    dispatcher.direct_call(sender, [sender], AMOUNT)

    # 2. Sender signs off-band with the registry's current nonce
    message = AuthorizationMessage(
        sender=sender,
        receivers=[sender],
        amount=AMOUNT,
        deadline=int(time.time()) + 60 * 60 * 24,
        nonce=dispatcher.current_nonce(sender),
    )
    sig = sign_authorization(message, PRIVATE_KEY, domain)
    logger.info("Signed authorization: %s", sig.to_hex())

    # 3. Relayer submits it
    dispatcher.delegated_call(
        message.sender, message.receivers, message.amount, message.deadline,
        sig.v, sig.r, sig.s,
    )
    logger.info("Nonce for %s is now %d", sender, dispatcher.current_nonce(sender))

    # 4. Replay is rejected
    try:
        dispatcher.delegated_call(
            message.sender, message.receivers, message.amount, message.deadline,
            sig.v, sig.r, sig.s,
        )
    except InvalidSignature as exc:
        logger.info("Replay rejected: %s", exc)

    logger.info("%d AuthorizedCall events emitted", len(dispatcher.events))


if __name__ == "__main__":
    main()
