"""
Boost Indexer
=============
One long-running task per chain. Each pass reads the contract's
``nextBoostId`` counter, appends every unseen boost to the store in id
order, then enriches it:

    token    : ERC-20 name/symbol/decimals   (best-effort, stub on failure)
    strategy : strategyURI -> descriptor     (best-effort, {} on failure)

A failed counter or record read ends the pass; the cursor stays on the
failed id and the next pass retries it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from boost.boost_store import BoostStore
from boost.chain_reader import BoostChainReader, TokenMetadataReader
from boost.errors import EnrichmentFailure, IndexerReadFailure
from boost.metadata import StrategyMetadataSource, is_well_formed_uri
from boost.models import Boost

logger = logging.getLogger("guard.indexer")

INDEXER_INTERVAL_SEC = 3.0


class BoostIndexer:

    def __init__(
        self,
        chain_id:        int,
        reader:          BoostChainReader,
        token_source:    TokenMetadataReader,
        strategy_source: StrategyMetadataSource,
        store:           BoostStore,
        interval_sec:    float = INDEXER_INTERVAL_SEC,
        start_id:        int   = 1,
    ):
        self.chain_id        = chain_id
        self.reader          = reader
        self.token_source    = token_source
        self.strategy_source = strategy_source
        self.store           = store
        self.interval_sec    = interval_sec
        self.cursor          = start_id
        self.running         = False
        self.passes          = 0

    # ------------------------------------------------------------------
    async def run(self):
        """Index forever, pausing ``interval_sec`` between passes."""
        self.running = True
        logger.info(f"[INDEXER] chain {self.chain_id} started at boost {self.cursor}")
        try:
            while self.running:
                try:
                    await self.run_pass()
                except IndexerReadFailure as e:
                    logger.error(f"[INDEXER] chain {self.chain_id} read failed at boost {self.cursor}: {e}")
                except Exception as e:
                    logger.error(f"[INDEXER] chain {self.chain_id} pass error: {e}", exc_info=True)
                if not self.running:
                    break
                await asyncio.sleep(self.interval_sec)
        except asyncio.CancelledError:
            logger.info(f"[INDEXER] chain {self.chain_id} cancelled at boost {self.cursor}")
            raise
        finally:
            self.running = False

    def stop(self):
        self.running = False

    async def run_pass(self) -> int:
        """Drain every id below the on-chain counter. Returns the number appended."""
        next_boost_id = await self.reader.get_next_boost_id()
        appended = 0
        while self.cursor < next_boost_id:
            await self.index_boost(self.cursor)
            self.cursor += 1
            appended += 1
        self.passes += 1
        return appended

    async def index_boost(self, boost_id: int) -> Boost:
        existing = self.store.find(self.chain_id, boost_id)
        if existing is None:
            raw   = await self.reader.get_boost(boost_id)
            boost = self.store.add(Boost.from_chain(boost_id, self.chain_id, raw))
        else:
            boost = existing

        if not boost.token.is_enriched:
            await self._enrich_token(boost)
        if not boost.strategy.is_resolved:
            await self._enrich_strategy(boost)

        boost = self.store.get(self.chain_id, boost_id)
        logger.info(
            f"[INDEXER] Boost {boost_id}@{self.chain_id} token={boost.token.symbol or boost.token.address} "
            f"strategy={boost.strategy.name or '-'}"
        )
        return boost

    # ------------------------------------------------------------------
    async def _enrich_token(self, boost: Boost):
        if not boost.token.address:
            return
        try:
            token = await self.token_source.get_token_metadata(boost.token.address)
        except EnrichmentFailure as e:
            logger.warning(f"[INDEXER] Boost {boost.id}@{self.chain_id} token enrichment failed: {e}")
            return
        self.store.upgrade_token(self.chain_id, boost.id, token)

    async def _enrich_strategy(self, boost: Boost):
        if not is_well_formed_uri(boost.strategy_uri):
            logger.debug(f"[INDEXER] Boost {boost.id}@{self.chain_id} strategyURI not a URI: {boost.strategy_uri!r}")
            return
        try:
            strategy = await self.strategy_source.fetch_strategy(boost.strategy_uri)
        except EnrichmentFailure as e:
            logger.warning(f"[INDEXER] Boost {boost.id}@{self.chain_id} strategy enrichment failed: {e}")
            return
        self.store.upgrade_strategy(self.chain_id, boost.id, strategy)


def start_indexers(indexers: Iterable[BoostIndexer]) -> list[asyncio.Task]:
    """Spawn one task per chain on the running loop."""
    return [
        asyncio.create_task(indexer.run(), name=f"boost-indexer-{indexer.chain_id}")
        for indexer in indexers
    ]


async def stop_indexers(tasks: Iterable[asyncio.Task], indexers: Optional[Iterable[BoostIndexer]] = None):
    for indexer in indexers or ():
        indexer.stop()
    tasks = list(tasks)
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
