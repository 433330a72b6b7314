"""
tests/test_signing.py – Unit tests for signing and signer recovery.

These tests run entirely offline (no network calls).
They verify that:
  1. sign_authorization() produces wallet-style (v, r, s) components.
  2. recover_signer() returns the address matching the private key used.
  3. Recovery is total: a different digest recovers *some* other address.
  4. Structurally broken signatures raise MalformedSignature.
  5. 65-byte hex signatures split and join losslessly.
"""

from __future__ import annotations

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from gasless_sdk.eip712 import build_typed_data, signing_digest
from gasless_sdk.errors import MalformedSignature
from gasless_sdk.signing import (
    SECP256K1_N,
    normalize_v,
    recover_authorization_signer,
    recover_signer,
    sign_authorization,
)
from gasless_sdk.types import AuthorizationMessage, Domain, Network, Signature


# ---------------------------------------------------------------------------
# Test fixtures
# ---------------------------------------------------------------------------

# Hardhat development keys (DO NOT use with real funds)
SENDER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
OTHER_KEY  = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"

SENDER = Account.from_key(SENDER_KEY).address
OTHER  = Account.from_key(OTHER_KEY).address

DOMAIN = Domain(
    name="Gasless",
    version="1",
    chain_id=Network.HARDHAT.chain_id,
    verifying_authority="0x5FbDB2315678afecb367f032d93F642f64180aa3",
)


def _message(**kwargs) -> AuthorizationMessage:
    defaults = dict(sender=SENDER, receivers=[SENDER], amount=42, deadline=2_000_000_000, nonce=0)
    return AuthorizationMessage(**{**defaults, **kwargs})


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestSignAuthorization:
    def test_wallet_style_v(self) -> None:
        sig = sign_authorization(_message(), SENDER_KEY, DOMAIN)
        assert sig.v in (27, 28)
        assert 0 < sig.r < SECP256K1_N
        assert 0 < sig.s < SECP256K1_N

    def test_deterministic(self) -> None:
        assert sign_authorization(_message(), SENDER_KEY, DOMAIN) == sign_authorization(_message(), SENDER_KEY, DOMAIN)

    def test_different_nonces_produce_different_sigs(self) -> None:
        sig1 = sign_authorization(_message(nonce=0), SENDER_KEY, DOMAIN)
        sig2 = sign_authorization(_message(nonce=1), SENDER_KEY, DOMAIN)
        assert sig1 != sig2

    def test_matches_eth_sign_typed_data_v4(self) -> None:
        """Signing the full v4 document yields the same signature."""
        message  = _message()
        signable = encode_typed_data(full_message=build_typed_data(DOMAIN, message))
        wallet   = Account.sign_message(signable, private_key=SENDER_KEY)
        assert Signature.from_hex(wallet.signature.hex()) == sign_authorization(message, SENDER_KEY, DOMAIN)


class TestRecoverSigner:
    def test_recovers_correct_address(self) -> None:
        message = _message()
        sig = sign_authorization(message, SENDER_KEY, DOMAIN)
        assert recover_signer(signing_digest(DOMAIN, message), sig) == SENDER

    def test_recover_authorization_signer(self) -> None:
        message = _message(receivers=[SENDER, OTHER], amount=7)
        sig = sign_authorization(message, OTHER_KEY, DOMAIN)
        assert recover_authorization_signer(DOMAIN, message, sig) == OTHER

    def test_raw_recovery_id_accepted(self) -> None:
        message = _message()
        sig = sign_authorization(message, SENDER_KEY, DOMAIN)
        raw = Signature(v=sig.v - 27, r=sig.r, s=sig.s)
        assert recover_signer(signing_digest(DOMAIN, message), raw) == SENDER

    def test_wrong_digest_recovers_other_address(self) -> None:
        sig = sign_authorization(_message(nonce=0), SENDER_KEY, DOMAIN)
        recovered = recover_signer(signing_digest(DOMAIN, _message(nonce=1)), sig)
        assert recovered != SENDER

    def test_digest_length_checked(self) -> None:
        sig = sign_authorization(_message(), SENDER_KEY, DOMAIN)
        with pytest.raises(ValueError, match="32 bytes"):
            recover_signer(b"\x00" * 31, sig)


class TestMalformedSignature:
    @pytest.mark.parametrize("v", [2, 26, 29, 255])
    def test_invalid_recovery_id(self, v: int) -> None:
        sig = Signature(v=v, r=1, s=1)
        with pytest.raises(MalformedSignature, match="recovery id"):
            recover_signer(b"\x11" * 32, sig)

    @pytest.mark.parametrize(
        "r, s",
        [(0, 1), (1, 0), (SECP256K1_N, 1), (1, SECP256K1_N)],
    )
    def test_component_out_of_range(self, r: int, s: int) -> None:
        with pytest.raises(MalformedSignature, match="out of range"):
            recover_signer(b"\x11" * 32, Signature(v=27, r=r, s=s))

    def test_normalize_v(self) -> None:
        assert normalize_v(27) == 0
        assert normalize_v(28) == 1
        assert normalize_v(0) == 0
        assert normalize_v(1) == 1

    def test_malformed_is_not_invalid(self) -> None:
        from gasless_sdk.errors import InvalidSignature

        assert not issubclass(MalformedSignature, InvalidSignature)


class TestSignatureCodec:
    def test_split_join(self) -> None:
        sig = sign_authorization(_message(), SENDER_KEY, DOMAIN)
        encoded = sig.to_hex()
        assert len(encoded.removeprefix("0x")) == 130
        assert Signature.from_hex(encoded) == sig

    def test_split_like_ethers(self) -> None:
        """r = sig[0:66], s = "0x" + sig[66:130], v = int(sig[130:132], 16)."""
        sig = sign_authorization(_message(), SENDER_KEY, DOMAIN)
        encoded = sig.to_hex()
        parsed = Signature.from_vrs(
            v=int(encoded[130:132], 16),
            r=encoded[:66],
            s="0x" + encoded[66:130],
        )
        assert parsed == sig

    def test_bytes_components(self) -> None:
        sig = sign_authorization(_message(), SENDER_KEY, DOMAIN)
        assert Signature.from_vrs(sig.v, sig.r_bytes, sig.s_bytes) == sig

    def test_wrong_length(self) -> None:
        with pytest.raises(MalformedSignature, match="65 bytes"):
            Signature.from_hex("0x" + "ab" * 64)

    def test_not_hex(self) -> None:
        with pytest.raises(MalformedSignature, match="not hex"):
            Signature.from_hex("0x" + "zz" * 65)

    def test_component_too_long(self) -> None:
        with pytest.raises(MalformedSignature):
            Signature.from_vrs(27, "0x" + "11" * 33, "0x01")

    def test_v_not_uint8(self) -> None:
        with pytest.raises(MalformedSignature):
            Signature.from_vrs(256, 1, 1)
