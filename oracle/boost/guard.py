"""
Boost Guard: Coupon Signer
==========================
Turns an evaluated claim into an EIP-712 signature the boost contract
accepts as proof of eligibility.

Signing pipeline (must match the verifying contract exactly):
    1. Domain        : { name, version, chainId = claim chain, verifyingContract }
    2. Typed message : Claim(uint256 boostId, address recipient, uint256 amount)
    3. Digest        : keccak256("\\x19\\x01" || domainSeparator || hashStruct(claim))
    4. Sign          : ECDSA secp256k1, RFC 6979 deterministic nonce

A zero amount is never signed.
"""

from __future__ import annotations

import logging
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from boost.config import GuardSettings
from boost.errors import ConfigurationError, InvalidRequest, SigningError
from boost.models import Claim, Coupon, to_uint

logger = logging.getLogger("guard.signer")

CLAIM_TYPES = {
    "EIP712Domain": [
        {"name": "name",              "type": "string"},
        {"name": "version",           "type": "string"},
        {"name": "chainId",           "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "Claim": [
        {"name": "boostId",   "type": "uint256"},
        {"name": "recipient", "type": "address"},
        {"name": "amount",    "type": "uint256"},
    ],
}


class GuardSigner:

    def __init__(
        self,
        private_key:        Optional[str],
        verifying_contract: str,
        domain_name:        str = "boost",
        domain_version:     str = "1",
    ):
        self.verifying_contract = Web3.to_checksum_address(verifying_contract)
        self.domain_name        = domain_name
        self.domain_version     = domain_version

        self._account = None
        if private_key:
            try:
                self._account = Account.from_key(private_key.strip())
            except Exception as e:
                raise ConfigurationError(f"GUARD_PK is not a valid private key ({type(e).__name__})") from None
            logger.info(f"Guard address: {self._account.address}")
        else:
            logger.warning("No guard key configured; eligible claims cannot be signed")

    @classmethod
    def from_settings(cls, settings: GuardSettings) -> "GuardSigner":
        return cls(
            private_key        = settings.private_key,
            verifying_contract = settings.verifying_contract,
            domain_name        = settings.domain_name,
            domain_version     = settings.domain_version,
        )

    @property
    def address(self) -> str:
        return self._account.address if self._account else ""

    @property
    def available(self) -> bool:
        return self._account is not None

    # ------------------------------------------------------------------
    def domain(self, chain_id: int) -> dict:
        return {
            "name":              self.domain_name,
            "version":           self.domain_version,
            "chainId":           chain_id,
            "verifyingContract": self.verifying_contract,
        }

    def typed_data(self, claim: Claim) -> dict:
        return {
            "types":       CLAIM_TYPES,
            "primaryType": "Claim",
            "domain":      self.domain(claim.chain_id),
            "message": {
                "boostId":   claim.boost_id,
                "recipient": claim.recipient,
                "amount":    claim.amount,
            },
        }

    def coupon(self, boost_id: int, recipient: str, amount, chain_id: int) -> Coupon:
        try:
            value = to_uint(amount)
        except ValueError as e:
            raise InvalidRequest(str(e)) from e
        if not Web3.is_address(recipient):
            raise InvalidRequest(f"Invalid recipient address: {recipient!r}")

        claim = Claim(
            boost_id  = int(boost_id),
            recipient = Web3.to_checksum_address(recipient),
            amount    = value,
            chain_id  = int(chain_id),
        )

        if claim.amount == 0:
            return Coupon(
                boost_id  = claim.boost_id,
                recipient = claim.recipient,
                guard     = self.address,
                chain_id  = claim.chain_id,
                amount    = "0",
            )

        document  = self.typed_data(claim)
        signature = self._sign(document)
        return Coupon(
            boost_id   = claim.boost_id,
            recipient  = claim.recipient,
            guard      = self.address,
            chain_id   = claim.chain_id,
            amount     = str(claim.amount),
            signature  = signature,
            typed_data = _jsonable(document),
        )

    def recover(self, coupon: Coupon) -> str:
        """Address that produced ``coupon.signature``."""
        if not coupon.signature:
            raise InvalidRequest("Coupon carries no signature")
        claim = Claim(
            boost_id  = coupon.boost_id,
            recipient = coupon.recipient,
            amount    = to_uint(coupon.amount),
            chain_id  = coupon.chain_id,
        )
        message = encode_typed_data(full_message=self.typed_data(claim))
        return Account.recover_message(message, signature=coupon.signature)

    # ------------------------------------------------------------------
    def _sign(self, document: dict) -> str:
        if self._account is None:
            raise SigningError("guard key unavailable")
        try:
            signed = self._account.sign_message(encode_typed_data(full_message=document))
        except Exception as e:
            logger.error(f"[SIGNER] Signing failed: {type(e).__name__}")
            raise SigningError(f"{type(e).__name__}") from None
        return "0x" + bytes(signed.signature).hex()


def _jsonable(document: dict) -> dict:
    """uint256 values as decimal strings so large amounts survive JSON clients."""
    message = dict(document["message"])
    message["boostId"] = str(message["boostId"])
    message["amount"]  = str(message["amount"])
    return {**document, "message": message}
