"""
Runs a boost's strategy for one recipient and clamps the result into the
boost's configured bounds. Strategy failures always propagate.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

from boost.errors import StrategyEvaluationError, StrategyNotReady
from boost.models import UINT256_MAX, Boost, to_uint
from boost.strategy_registry import StrategyRegistry

logger = logging.getLogger("guard.strategy")


def clamp_amount(amount: int, params: Mapping[str, Any]) -> int:
    """
    Clamp into [min, max] when both bounds are configured. A zero amount
    means "not eligible" and is never raised to ``min``.
    """
    if amount == 0 or params.get("min") is None or params.get("max") is None:
        return amount
    lower = to_uint(params["min"], "min")
    upper = to_uint(params["max"], "max")
    if lower > upper:
        raise ValueError(f"min ({lower}) is greater than max ({upper})")
    return max(lower, min(amount, upper))


class StrategyEvaluator:

    def __init__(self, registry: StrategyRegistry, timeout: Optional[float] = None):
        self.registry = registry
        self.timeout  = timeout

    async def evaluate(self, boost: Boost, recipient: str) -> str:
        descriptor = boost.strategy
        if not descriptor.is_resolved:
            raise StrategyNotReady(
                f"Boost {boost.id} on chain {boost.chain_id} has no resolved strategy yet"
            )
        strategy = self.registry.resolve(descriptor.name)

        try:
            raw    = await asyncio.wait_for(strategy(recipient, descriptor.params), self.timeout)
            amount = clamp_amount(to_uint(raw), descriptor.params)
        except StrategyEvaluationError:
            logger.error(f"[STRATEGY] '{descriptor.name}' failed for boost {boost.id}", exc_info=True)
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"[STRATEGY] '{descriptor.name}' timed out for boost {boost.id}")
            raise StrategyEvaluationError(f"strategy '{descriptor.name}' timed out") from e
        except Exception as e:
            logger.error(f"[STRATEGY] '{descriptor.name}' failed for boost {boost.id}: {e}")
            raise StrategyEvaluationError(f"strategy '{descriptor.name}' failed: {e}") from e

        if amount > UINT256_MAX:
            raise StrategyEvaluationError(f"amount {amount} does not fit in uint256")

        logger.info(
            f"[STRATEGY] boost {boost.id}@{boost.chain_id} recipient {recipient} -> {amount}"
        )
        return str(amount)
