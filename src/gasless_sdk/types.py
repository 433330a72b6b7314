"""
types.py – Pydantic v2 models for the gasless authorization protocol.

Validation
----------
All models are validated on construction.  Addresses are normalised to
their EIP-55 checksum form and every uint256 field is range-checked, so
bad values never reach EIP-712 hashing.  Invalid data raises
pydantic.ValidationError with field-level detail.

Wire names
----------
Python attributes are snake_case; ``to_eip712()`` renders the camelCase
dicts that wallets sign (``chainId``, ``verifyingContract``).
"""

from __future__ import annotations

import os
from enum import IntEnum, unique
from typing import Any, Optional, Union

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from .errors import MalformedSignature

UINT256_MAX = 2 ** 256 - 1


# ---------------------------------------------------------------------------
# Networks  (plain IntEnum – not a Pydantic model)
# ---------------------------------------------------------------------------

@unique
class Network(IntEnum):
    """Well-known EVM chain ids."""
    MAINNET = 1
    SEPOLIA = 11155111
    HARDHAT = 31337

    @property
    def chain_id(self) -> int:
        return int(self)

    @property
    def label(self) -> str:
        return self.name.lower()


# ---------------------------------------------------------------------------
# Shared validator helpers
# ---------------------------------------------------------------------------

def _validate_address(v: Any, field: str = "address") -> str:
    """Accept any valid 20-byte address and return it checksummed."""
    if isinstance(v, (bytes, bytearray)):
        v = "0x" + bytes(v).hex()
    if not isinstance(v, str) or not is_address(v):
        raise ValueError(f"{field} {v!r} is not a valid address")
    return to_checksum_address(v)


def _reject_bool(v: Any, info: ValidationInfo) -> Any:
    # bool is an int subclass; pydantic would otherwise coerce True to 1
    if isinstance(v, bool):
        raise ValueError(f"{info.field_name} must be an integer, not bool")
    return v


def _validate_uint256(v: int, field: str = "value") -> int:
    if not (0 <= v <= UINT256_MAX):
        raise ValueError(f"{field} must fit uint256, got {v}")
    return v


def _coerce_word(v: Any, field: str) -> int:
    """bytes32 / 0x-hex / int → int."""
    if isinstance(v, bool):
        raise ValueError(f"{field} must be bytes32, not bool")
    if isinstance(v, (bytes, bytearray)):
        if len(v) > 32:
            raise ValueError(f"{field} is longer than 32 bytes")
        return int.from_bytes(v, "big")
    if isinstance(v, str):
        stripped = v.removeprefix("0x").removeprefix("0X")
        if not stripped or len(stripped) > 64:
            raise ValueError(f"{field} '{v}' is not a bytes32 hex string")
        try:
            return int(stripped, 16)
        except ValueError:
            raise ValueError(f"{field} '{v}' is not valid hex")
    return v


# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------

class Domain(BaseModel):
    """
    EIP-712 domain binding signatures to one deployment.

    name                : human-readable protocol name (e.g. "Gasless")
    version             : signing-domain version
    chain_id            : EVM chain id (tip: ``Network.HARDHAT.chain_id``)
    verifying_authority : address of the contract/service that verifies
                          signatures; serialised as ``verifyingContract``

    Changing any field changes the separator and invalidates every
    signature issued under the old domain.
    """
    name:                str
    version:             str
    chain_id:            int
    verifying_authority: str

    model_config = {"frozen": True}

    @field_validator("chain_id", mode="before")
    @classmethod
    def reject_bool_chain_id(cls, v: Any, info: ValidationInfo) -> Any:
        return _reject_bool(v, info)

    @field_validator("chain_id")
    @classmethod
    def validate_chain_id(cls, v: int) -> int:
        return _validate_uint256(v, "chain_id")

    @field_validator("verifying_authority", mode="before")
    @classmethod
    def validate_verifying_authority(cls, v: Any) -> str:
        return _validate_address(v, "verifying_authority")

    @property
    def separator(self) -> bytes:
        """The 32-byte domain separator (computed once per distinct domain)."""
        from .eip712 import domain_separator  # circular: eip712 imports types

        return domain_separator(self)

    def to_eip712(self) -> dict[str, Any]:
        return {
            "name":              self.name,
            "version":           self.version,
            "chainId":           self.chain_id,
            "verifyingContract": self.verifying_authority,
        }

    @classmethod
    def from_env(cls, prefix: str = "GASLESS_") -> "Domain":
        """
        Build a Domain from environment variables.

            GASLESS_DOMAIN_NAME         default "Gasless"
            GASLESS_DOMAIN_VERSION      default "1"
            GASLESS_CHAIN_ID            default 31337 (Hardhat)
            GASLESS_VERIFYING_CONTRACT  required
        """
        verifying = os.environ.get(f"{prefix}VERIFYING_CONTRACT")
        if not verifying:
            raise ValueError(f"{prefix}VERIFYING_CONTRACT is not set")
        return cls(
            name=os.environ.get(f"{prefix}DOMAIN_NAME", "Gasless"),
            version=os.environ.get(f"{prefix}DOMAIN_VERSION", "1"),
            chain_id=int(os.environ.get(f"{prefix}CHAIN_ID", str(Network.HARDHAT.chain_id))),
            verifying_authority=verifying,
        )


# ---------------------------------------------------------------------------
# Authorization message
# ---------------------------------------------------------------------------

class AuthorizationMessage(BaseModel):
    """
    The ``SomeFunc`` struct a sender signs off-band.

    sender    : address that authorizes the call
    receivers : opaque ordered list of addresses
    amount    : opaque uint256
    deadline  : unix seconds; valid while ``now <= deadline``
    nonce     : sender's registry nonce at signing time
    """
    sender:    str
    receivers: list[str]
    amount:    int
    deadline:  int
    nonce:     int = 0

    model_config = {"frozen": True}

    @field_validator("sender", mode="before")
    @classmethod
    def validate_sender(cls, v: Any) -> str:
        return _validate_address(v, "sender")

    @field_validator("receivers", mode="before")
    @classmethod
    def validate_receivers(cls, v: Any) -> list[str]:
        if not isinstance(v, (list, tuple)):
            raise ValueError("receivers must be a list of addresses")
        return [_validate_address(item, "receiver") for item in v]

    @field_validator("amount", "deadline", "nonce", mode="before")
    @classmethod
    def reject_bool(cls, v: Any, info: ValidationInfo) -> Any:
        return _reject_bool(v, info)

    @field_validator("amount", "deadline", "nonce")
    @classmethod
    def validate_uint(cls, v: int) -> int:
        return _validate_uint256(v)

    def to_eip712(self) -> dict[str, Any]:
        return {
            "sender":    self.sender,
            "receivers": list(self.receivers),
            "amount":    self.amount,
            "deadline":  self.deadline,
            "nonce":     self.nonce,
        }


# ---------------------------------------------------------------------------
# Signature
# ---------------------------------------------------------------------------

class Signature(BaseModel):
    """
    ECDSA secp256k1 signature components.

    v : recovery id, 27/28 (wallet style) or 0/1
    r : first 32-byte word
    s : second 32-byte word

    Only the *shape* is checked here; whether (r, s, v) actually recovers
    to a public key is decided by ``signing.recover_signer``.
    """
    v: int
    r: int
    s: int

    model_config = {"frozen": True}

    @field_validator("v", mode="before")
    @classmethod
    def reject_bool_v(cls, v: Any, info: ValidationInfo) -> Any:
        return _reject_bool(v, info)

    @field_validator("v")
    @classmethod
    def validate_v(cls, v: int) -> int:
        if not (0 <= v <= 0xFF):
            raise ValueError(f"v must be a uint8, got {v}")
        return v

    @field_validator("r", "s", mode="before")
    @classmethod
    def validate_word(cls, v: Any, info: ValidationInfo) -> int:
        return _validate_uint256(_coerce_word(v, info.field_name), info.field_name)

    @classmethod
    def from_vrs(
        cls,
        v: int,
        r: Union[int, str, bytes],
        s: Union[int, str, bytes],
    ) -> "Signature":
        """Build from separate components, raising MalformedSignature on bad shape."""
        try:
            return cls(v=v, r=r, s=s)
        except ValidationError as exc:
            raise MalformedSignature(f"{MalformedSignature.reason}: {exc.errors()[0]['msg']}") from exc

    @classmethod
    def from_hex(cls, signature: Union[str, bytes]) -> "Signature":
        """
        Split a 65-byte ``r ++ s ++ v`` signature, as returned by
        ``eth_signTypedData_v4`` / ``eth_account``.
        """
        if isinstance(signature, str):
            body = signature.removeprefix("0x")
            try:
                raw = bytes.fromhex(body)
            except ValueError as exc:
                raise MalformedSignature(f"{MalformedSignature.reason}: not hex") from exc
        else:
            raw = bytes(signature)
        if len(raw) != 65:
            raise MalformedSignature(
                f"{MalformedSignature.reason}: expected 65 bytes, got {len(raw)}"
            )
        return cls.from_vrs(v=raw[64], r=raw[:32], s=raw[32:64])

    @property
    def r_bytes(self) -> bytes:
        return self.r.to_bytes(32, "big")

    @property
    def s_bytes(self) -> bytes:
        return self.s.to_bytes(32, "big")

    def to_bytes(self) -> bytes:
        return self.r_bytes + self.s_bytes + bytes([self.v])

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


# ---------------------------------------------------------------------------
# Audit event
# ---------------------------------------------------------------------------

class AuthorizedCall(BaseModel):
    """Audit record emitted once per dispatched call (direct or delegated)."""
    sender:    str
    receivers: list[str]
    amount:    int
    nonce:     Optional[int] = None   # consumed nonce; None for direct calls

    model_config = {"frozen": True}

    @field_validator("sender", mode="before")
    @classmethod
    def validate_sender(cls, v: Any) -> str:
        return _validate_address(v, "sender")

    @field_validator("receivers", mode="before")
    @classmethod
    def validate_receivers(cls, v: Any) -> list[str]:
        if not isinstance(v, (list, tuple)):
            raise ValueError("receivers must be a list of addresses")
        return [_validate_address(item, "receiver") for item in v]

    @field_validator("amount", mode="before")
    @classmethod
    def reject_bool_amount(cls, v: Any, info: ValidationInfo) -> Any:
        return _reject_bool(v, info)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        return _validate_uint256(v, "amount")

    @property
    def args(self) -> tuple[str, list[str], int]:
        """Event arguments as emitted: (sender, receivers, amount)."""
        return (self.sender, list(self.receivers), self.amount)
