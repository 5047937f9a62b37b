"""
Closed registry of eligibility strategies.

A strategy is an async callable ``(recipient, params) -> amount`` returning
the claimable amount as a decimal string. The registry is built once at
startup and cannot be modified afterwards.
"""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterator, Mapping

from boost.errors import UnknownStrategy
from boost.models import to_uint
from boost.snapshot_hub import SnapshotVoteRegistry

logger = logging.getLogger("guard.strategy")

StrategyFn = Callable[[str, Mapping[str, Any]], Awaitable[str]]


class SnapshotStrategy:
    """
    Rewards recipients that voted on ``params.proposal``.

        type == "ratio"  ->  amount * votingPower
        type == "fixed"  ->  amount
        anything else    ->  0

    No vote, or a vote with zero voting power, is always "0".
    """

    name = "snapshot"

    def __init__(self, vote_registry: SnapshotVoteRegistry):
        self.vote_registry = vote_registry

    async def __call__(self, recipient: str, params: Mapping[str, Any]) -> str:
        proposal = params.get("proposal")
        if not proposal:
            raise ValueError("snapshot strategy requires params.proposal")

        vote = await self.vote_registry.query_latest_vote(recipient, proposal, params.get("env"))
        if vote is None or vote.voting_power == 0:
            return "0"

        kind = params.get("type")
        if kind == "ratio":
            amount = to_uint(params.get("amount"))
            # Fraction keeps fractional voting power exact; floor to whole units.
            return str(math.floor(amount * Fraction(vote.voting_power)))
        if kind == "fixed":
            to_uint(params.get("amount"))
            return str(params.get("amount"))
        return "0"


class StrategyRegistry(Mapping):

    def __init__(self, strategies: Mapping[str, StrategyFn]):
        self._strategies = MappingProxyType(dict(strategies))

    def __getitem__(self, name: str) -> StrategyFn:
        return self._strategies[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._strategies)

    def __len__(self) -> int:
        return len(self._strategies)

    def resolve(self, name: str) -> StrategyFn:
        try:
            return self._strategies[name]
        except KeyError:
            raise UnknownStrategy(f"Unknown strategy '{name}'") from None


def build_registry(vote_registry: SnapshotVoteRegistry) -> StrategyRegistry:
    registry = StrategyRegistry({SnapshotStrategy.name: SnapshotStrategy(vote_registry)})
    logger.info(f"[STRATEGY] Registered strategies: {sorted(registry)}")
    return registry
