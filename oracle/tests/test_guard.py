"""
Boost Guard: GuardSigner Unit Tests
pytest test suite

Coverage:
  - Zero amount: no signature, explicit not-eligible coupon
  - Nonzero amount: 65-byte signature, recoverable to the guard address
  - Determinism: same claim, same signature
  - Binding: boostId / recipient / amount / chainId each change the signature
  - Domain: chainId follows the claim, verifyingContract fixed per deployment
  - Missing key: SigningError with a generic message
"""

import sys
import os

import pytest

# ── Path setup ────────────────────────────────────────────────────────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from web3 import Web3

from boost.errors import ConfigurationError, InvalidRequest, SigningError
from boost.guard import CLAIM_TYPES, GuardSigner
from boost.models import Coupon

GUARD_PK           = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
GUARD_ADDRESS      = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
VERIFYING_CONTRACT = "0xe370e89f87fa67e3c18d8f34c40ea962b8fedb5d"
RECIPIENT          = "0xef8305e140ac520225daf050e2f71d5fbcc543e7"
OTHER_RECIPIENT    = "0x" + "12" * 20


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(scope="module")
def signer():
    return GuardSigner(GUARD_PK, VERIFYING_CONTRACT)


# ── Zero amount ───────────────────────────────────────────────────────────────

class TestNotEligible:

    def test_zero_amount_has_no_signature(self, signer):
        coupon = signer.coupon(1, RECIPIENT, "0", 5)
        assert coupon.signature is None
        assert coupon.typed_data is None
        assert coupon.eligible is False
        assert coupon.amount == "0"

    def test_zero_int_amount_has_no_signature(self, signer):
        assert signer.coupon(1, RECIPIENT, 0, 5).signature is None

    def test_zero_coupon_still_names_guard(self, signer):
        coupon = signer.coupon(1, RECIPIENT, "0", 5)
        assert coupon.guard == GUARD_ADDRESS
        assert coupon.recipient == Web3.to_checksum_address(RECIPIENT)

    def test_zero_amount_without_key_does_not_fail(self):
        keyless = GuardSigner(None, VERIFYING_CONTRACT)
        assert keyless.coupon(1, RECIPIENT, "0", 5).signature is None


# ── Signing ───────────────────────────────────────────────────────────────────

class TestSigning:

    def test_signer_address_from_key(self, signer):
        assert signer.address == GUARD_ADDRESS

    def test_nonzero_amount_is_signed(self, signer):
        coupon = signer.coupon(2, RECIPIENT, "1000", 5)
        assert coupon.eligible is True
        assert coupon.signature.startswith("0x")
        assert len(coupon.signature) == 2 + 65 * 2

    def test_signature_recovers_to_guard(self, signer):
        coupon = signer.coupon(2, RECIPIENT, "1000", 5)
        assert signer.recover(coupon) == GUARD_ADDRESS

    def test_signature_is_deterministic(self, signer):
        first  = signer.coupon(2, RECIPIENT, "1000", 5)
        second = signer.coupon(2, RECIPIENT, "1000", 5)
        assert first.signature == second.signature

    @pytest.mark.parametrize(
        "changed",
        [
            dict(boost_id=3),
            dict(recipient=OTHER_RECIPIENT),
            dict(amount="1001"),
            dict(chain_id=1),
        ],
    )
    def test_every_field_is_bound(self, signer, changed):
        base = dict(boost_id=2, recipient=RECIPIENT, amount="1000", chain_id=5)
        original = signer.coupon(**base)
        altered  = signer.coupon(**{**base, **changed})
        assert original.signature != altered.signature

    def test_coupon_for_other_chain_does_not_recover(self, signer):
        coupon   = signer.coupon(2, RECIPIENT, "1000", 5)
        replayed = Coupon(
            boost_id  = coupon.boost_id,
            recipient = coupon.recipient,
            guard     = coupon.guard,
            chain_id  = 1,
            amount    = coupon.amount,
            signature = coupon.signature,
        )
        assert signer.recover(replayed) != GUARD_ADDRESS

    def test_amount_beyond_64_bits(self, signer):
        amount = str(10 ** 40)
        coupon = signer.coupon(2, RECIPIENT, amount, 5)
        assert coupon.amount == amount
        assert coupon.typed_data["message"]["amount"] == amount
        assert signer.recover(coupon) == GUARD_ADDRESS

    def test_recover_requires_signature(self, signer):
        with pytest.raises(InvalidRequest):
            signer.recover(signer.coupon(1, RECIPIENT, "0", 5))


# ── Typed data ────────────────────────────────────────────────────────────────

class TestTypedData:

    def test_domain_follows_claim_chain(self, signer):
        coupon = signer.coupon(2, RECIPIENT, "1000", 137)
        domain = coupon.typed_data["domain"]
        assert domain["chainId"] == 137
        assert domain["verifyingContract"] == Web3.to_checksum_address(VERIFYING_CONTRACT)
        assert domain["name"] == "boost"
        assert domain["version"] == "1"

    def test_claim_type_fields(self, signer):
        coupon = signer.coupon(2, RECIPIENT, "1000", 5)
        assert coupon.typed_data["primaryType"] == "Claim"
        assert coupon.typed_data["types"] == CLAIM_TYPES
        assert coupon.typed_data["message"] == {
            "boostId":   "2",
            "recipient": Web3.to_checksum_address(RECIPIENT),
            "amount":    "1000",
        }

    def test_custom_domain_changes_signature(self, signer):
        other = GuardSigner(GUARD_PK, VERIFYING_CONTRACT, domain_name="boost", domain_version="2")
        assert other.coupon(2, RECIPIENT, "1000", 5).signature != signer.coupon(2, RECIPIENT, "1000", 5).signature


# ── Failures ──────────────────────────────────────────────────────────────────

class TestFailures:

    def test_missing_key_raises_signing_error(self):
        keyless = GuardSigner(None, VERIFYING_CONTRACT)
        with pytest.raises(SigningError) as exc:
            keyless.coupon(2, RECIPIENT, "1000", 5)
        assert exc.value.message == "signing failed"
        assert exc.value.kind == "signing_error"

    def test_invalid_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            GuardSigner("0xnot-a-key", VERIFYING_CONTRACT)

    def test_invalid_recipient(self, signer):
        with pytest.raises(InvalidRequest):
            signer.coupon(2, "alice.eth", "1000", 5)

    def test_negative_amount_rejected(self, signer):
        with pytest.raises(InvalidRequest):
            signer.coupon(2, RECIPIENT, "-5", 5)
