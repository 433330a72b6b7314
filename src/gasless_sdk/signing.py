"""
signing.py – Signature codec, signer recovery and client-side signing.

Recovery is *total*: any structurally valid (r, s, v) recovers to some
address.  Whether that address is the one that should have signed is the
dispatcher's decision, not this module's.  Only structurally broken
signatures raise ``MalformedSignature``:

  - v not in {0, 1, 27, 28}
  - r or s equal to 0 or not below the secp256k1 group order
  - r not the x-coordinate of a curve point (recovery fails)

Signing
-------
``sign_authorization`` is the sender side: it EIP-712 signs an
AuthorizationMessage with eth_account, exactly what a wallet does for
``eth_signTypedData_v4``::

    msg = AuthorizationMessage(sender=addr, receivers=[addr], amount=42,
                               deadline=int(time.time()) + 86_400,
                               nonce=dispatcher.current_nonce(addr))
    sig = sign_authorization(msg, private_key, domain)
    dispatcher.delegated_call(addr, [addr], 42, msg.deadline, sig.v, sig.r, sig.s)
"""

from __future__ import annotations

import logging
from typing import Union

from eth_account import Account
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError as KeysValidationError

from .eip712 import encode_authorization, signing_digest
from .errors import MalformedSignature
from .types import AuthorizationMessage, Domain, Signature

logger = logging.getLogger(__name__)

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def normalize_v(v: int) -> int:
    """Map a wallet-style recovery id (27/28) or raw (0/1) to 0/1."""
    if v in (27, 28):
        return v - 27
    if v in (0, 1):
        return v
    raise MalformedSignature(f"{MalformedSignature.reason}: invalid recovery id v={v}")


def _check_components(signature: Signature) -> int:
    for label, value in (("r", signature.r), ("s", signature.s)):
        if not (0 < value < SECP256K1_N):
            raise MalformedSignature(f"{MalformedSignature.reason}: {label} out of range")
    return normalize_v(signature.v)


def recover_signer(digest: bytes, signature: Signature) -> str:
    """
    Recover the checksummed address that signed ``digest``.

    Parameters
    ----------
    digest    : 32-byte EIP-712 signing digest
    signature : (v, r, s) components

    Raises
    ------
    MalformedSignature if the components cannot be recovered at all.
    """
    if len(digest) != 32:
        raise ValueError(f"digest must be 32 bytes, got {len(digest)}")

    v = _check_components(signature)
    try:
        public_key = keys.Signature(vrs=(v, signature.r, signature.s)).recover_public_key_from_msg_hash(digest)
    except (BadSignature, KeysValidationError) as exc:
        raise MalformedSignature(f"{MalformedSignature.reason}: {exc}") from exc

    address: str = public_key.to_checksum_address()
    logger.debug("Recovered %s from digest 0x%s", address, digest.hex())
    return address


def recover_authorization_signer(
    domain: Domain,
    message: AuthorizationMessage,
    signature: Signature,
) -> str:
    """Recover the signer of ``message`` under ``domain``."""
    return recover_signer(signing_digest(domain, message), signature)


def sign_authorization(
    message: AuthorizationMessage,
    private_key: Union[str, bytes],
    domain: Domain,
) -> Signature:
    """
    EIP-712 sign ``message`` and return its (v, r, s) components.

    Parameters
    ----------
    message     : the authorization to sign; ``message.nonce`` must be the
                  sender's current registry nonce or the relay will fail
    private_key : hex private key (with or without ``0x``) or raw bytes
    domain      : the verifying deployment's domain

    Returns
    -------
    Signature with wallet-style v (27/28).
    """
    signed = Account.sign_message(encode_authorization(domain, message), private_key=private_key)
    return Signature(v=signed.v, r=signed.r, s=signed.s)
