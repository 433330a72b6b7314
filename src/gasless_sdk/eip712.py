"""
eip712.py – EIP-712 domain separators, struct hashes and signing digests.

How it works
------------
All hashing goes through ``eth_account.messages.encode_typed_data``, the
same encoder wallets use for ``eth_signTypedData_v4``.  It returns a
``SignableMessage`` whose parts map directly onto EIP-712:

  - ``header``  : the domain separator, keccak256(encodeData(EIP712Domain))
  - ``body``    : the struct hash, keccak256(typeHash ++ encodeData(message))
  - ``version`` : ``0x01``

and the signing digest is keccak256(0x19 ++ version ++ header ++ body).

``encode_authorization`` is the single builder for the ``SomeFunc``
struct.  The signer (``signing.sign_authorization``) and the verifier
(``signing_digest``, used by the dispatcher) both call it, so the two
sides can never encode the message differently.

References
----------
- EIP-712 spec : https://eips.ethereum.org/EIPS/eip-712
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from eth_abi.exceptions import EncodingError
from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import ValidationError, keccak

from .types import AuthorizationMessage, Domain

logger = logging.getLogger(__name__)

# Field list: [{"name": ..., "type": ...}, ...]
TypeSchema = dict[str, list[dict[str, str]]]

# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

EIP712_DOMAIN_FIELDS: list[dict[str, str]] = [
    {"name": "name",              "type": "string"},
    {"name": "version",           "type": "string"},
    {"name": "chainId",           "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

PRIMARY_TYPE = "SomeFunc"

AUTHORIZATION_TYPES: TypeSchema = {
    "SomeFunc": [
        {"name": "sender",    "type": "address"},
        {"name": "receivers", "type": "address[]"},
        {"name": "amount",    "type": "uint256"},
        {"name": "deadline",  "type": "uint256"},
        {"name": "nonce",     "type": "uint256"},
    ],
}

_DOMAIN_TYPES: TypeSchema = {"EIP712Domain": EIP712_DOMAIN_FIELDS}

# The header of a SignableMessage depends only on the domain, so any
# well-formed SomeFunc value yields the separator.
_ZERO_AUTHORIZATION: dict[str, Any] = {
    "sender":    "0x" + "00" * 20,
    "receivers": [],
    "amount":    0,
    "deadline":  0,
    "nonce":     0,
}

EIP191_PREFIX = b"\x19\x01"


class TypedDataError(ValueError):
    """Malformed EIP-712 schema or data that does not match it."""


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def _encode(domain_data: dict[str, Any], types: TypeSchema, data: dict[str, Any]) -> SignableMessage:
    try:
        return encode_typed_data(
            domain_data=domain_data,
            message_types=types,
            message_data=data,
        )
    except (EncodingError, ValidationError, ValueError, TypeError, KeyError) as exc:
        raise TypedDataError(f"cannot encode typed data: {exc}") from exc


def encode_authorization(domain: Domain, message: AuthorizationMessage) -> SignableMessage:
    """EIP-712 encode ``message`` under ``domain``; shared by signer and verifier."""
    return _encode(domain.to_eip712(), AUTHORIZATION_TYPES, message.to_eip712())


def hash_struct(types: TypeSchema, data: dict[str, Any]) -> bytes:
    """
    Struct hash of ``data`` for the primary type of ``types``.

    The primary type is the one struct no other struct references, as
    eth_account derives it.  Raises TypedDataError for a schema or value
    the encoder rejects.
    """
    return bytes(_encode({}, types, data).body)


def hash_authorization(message: AuthorizationMessage) -> bytes:
    return hash_struct(AUTHORIZATION_TYPES, message.to_eip712())


# ---------------------------------------------------------------------------
# Domain separator + digest
# ---------------------------------------------------------------------------

@lru_cache(maxsize=64)
def _cached_separator(name: str, version: str, chain_id: int, verifying: str) -> bytes:
    domain_data = {"name": name, "version": version, "chainId": chain_id, "verifyingContract": verifying}
    return bytes(_encode(domain_data, AUTHORIZATION_TYPES, _ZERO_AUTHORIZATION).header)


def domain_separator(domain: Domain) -> bytes:
    """keccak256 of the encoded EIP712Domain struct; cached per domain."""
    return _cached_separator(domain.name, domain.version, domain.chain_id, domain.verifying_authority)


def typed_data_digest(separator: bytes, struct_hash: bytes) -> bytes:
    """keccak256(0x1901 ++ domainSeparator ++ structHash)."""
    if len(separator) != 32 or len(struct_hash) != 32:
        raise TypedDataError("domain separator and struct hash must be 32 bytes")
    return keccak(EIP191_PREFIX + separator + struct_hash)


def signing_digest(domain: Domain, message: AuthorizationMessage) -> bytes:
    """The exact 32-byte hash a sender signs for ``message`` under ``domain``."""
    signable = encode_authorization(domain, message)
    digest = keccak(b"\x19" + bytes(signable.version) + bytes(signable.header) + bytes(signable.body))
    logger.debug("EIP-712 digest for %s nonce=%d: 0x%s", message.sender, message.nonce, digest.hex())
    return digest


def build_typed_data(
    domain: Domain,
    message: AuthorizationMessage,
    include_domain_type: bool = True,
) -> dict[str, Any]:
    """
    Full typed-data document for ``eth_signTypedData_v4``.

    With ``include_domain_type=False`` the ``EIP712Domain`` entry is left
    out, matching ethers' ``_signTypedData(domain, types, message)``; both
    forms hash to the same digest.
    """
    types: dict[str, Any] = dict(_DOMAIN_TYPES) if include_domain_type else {}
    types.update(AUTHORIZATION_TYPES)
    return {
        "types":       types,
        "domain":      domain.to_eip712(),
        "primaryType": PRIMARY_TYPE,
        "message":     message.to_eip712(),
    }
