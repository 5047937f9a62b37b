"""
End-to-end claim flow: boost lookup -> strategy evaluation -> guard signature.
"""

from __future__ import annotations

import logging

from web3 import Web3

from boost.boost_store import BoostStore
from boost.errors import InvalidRequest
from boost.guard import GuardSigner
from boost.models import Boost, Coupon
from boost.strategy_evaluator import StrategyEvaluator

logger = logging.getLogger("guard.claims")


class ClaimService:

    def __init__(self, store: BoostStore, evaluator: StrategyEvaluator, signer: GuardSigner):
        self.store     = store
        self.evaluator = evaluator
        self.signer    = signer

    def get_boost(self, chain_id: int, boost_id: int) -> Boost:
        return self.store.get(int(chain_id), int(boost_id))

    def list_boosts(self, chain_id: int) -> list[Boost]:
        return self.store.list_chain(int(chain_id))

    async def evaluate_and_sign(self, chain_id: int, boost_id: int, recipient: str) -> Coupon:
        if not isinstance(recipient, str) or not Web3.is_address(recipient):
            raise InvalidRequest(f"Invalid recipient address: {recipient!r}")
        recipient = Web3.to_checksum_address(recipient)

        boost  = self.get_boost(chain_id, boost_id)
        amount = await self.evaluator.evaluate(boost, recipient)
        coupon = self.signer.coupon(boost.id, recipient, amount, boost.chain_id)

        if coupon.eligible:
            logger.info(f"[CLAIM] Signed boost {boost.id}@{boost.chain_id} for {recipient}: {amount}")
        else:
            logger.info(f"[CLAIM] Boost {boost.id}@{boost.chain_id}: {recipient} not eligible")
        return coupon
