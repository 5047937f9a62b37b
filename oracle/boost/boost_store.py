"""
In-memory boost index keyed by (chain_id, boost_id).

Each chain's indexer is the only writer for that chain's keys. Readers get
immutable ``Boost`` snapshots; an update swaps in a new snapshot, and the
only updates allowed are enrichment upgrades (partial -> populated).
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Optional

from boost.errors import BoostNotFound
from boost.models import Boost, StrategyDescriptor, TokenInfo

logger = logging.getLogger("guard.store")


class BoostStore:

    def __init__(self):
        self._boosts: dict[tuple[int, int], Boost] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._boosts)

    def __contains__(self, key: tuple[int, int]) -> bool:
        return key in self._boosts

    # ------------------------------------------------------------------
    def add(self, boost: Boost) -> Boost:
        """
        Insert a boost the first time its key is seen. Re-adding a known key
        keeps the stored core fields and only takes enrichment the stored
        copy is still missing. Returns the stored snapshot.
        """
        with self._lock:
            current = self._boosts.get(boost.key)
            if current is None:
                self._boosts[boost.key] = boost
                return boost
            merged = self._merge(current, token=boost.token, strategy=boost.strategy)
            self._boosts[boost.key] = merged
            return merged

    def upgrade_token(self, chain_id: int, boost_id: int, token: TokenInfo) -> bool:
        with self._lock:
            current = self._require(chain_id, boost_id)
            merged  = self._merge(current, token=token)
            self._boosts[current.key] = merged
            return merged is not current

    def upgrade_strategy(self, chain_id: int, boost_id: int, strategy: StrategyDescriptor) -> bool:
        with self._lock:
            current = self._require(chain_id, boost_id)
            merged  = self._merge(current, strategy=strategy)
            self._boosts[current.key] = merged
            return merged is not current

    # ------------------------------------------------------------------
    def find(self, chain_id: int, boost_id: int) -> Optional[Boost]:
        return self._boosts.get((chain_id, boost_id))

    def get(self, chain_id: int, boost_id: int) -> Boost:
        boost = self.find(chain_id, boost_id)
        if boost is None:
            raise BoostNotFound(chain_id, boost_id)
        return boost

    def list_chain(self, chain_id: int) -> list[Boost]:
        boosts = [b for (c, _), b in list(self._boosts.items()) if c == chain_id]
        return sorted(boosts, key=lambda b: b.id)

    # ------------------------------------------------------------------
    def _require(self, chain_id: int, boost_id: int) -> Boost:
        current = self._boosts.get((chain_id, boost_id))
        if current is None:
            raise BoostNotFound(chain_id, boost_id)
        return current

    @staticmethod
    def _merge(
        current:  Boost,
        token:    Optional[TokenInfo]          = None,
        strategy: Optional[StrategyDescriptor] = None,
    ) -> Boost:
        changes = {}
        if (
            token is not None
            and token.is_enriched
            and not current.token.is_enriched
            and token.address.lower() == current.token.address.lower()
        ):
            changes["token"] = token
        if strategy is not None and strategy.is_resolved and not current.strategy.is_resolved:
            changes["strategy"] = strategy
        if not changes:
            return current
        logger.debug(f"[STORE] Boost {current.id}@{current.chain_id} enriched: {sorted(changes)}")
        return dataclasses.replace(current, **changes)
