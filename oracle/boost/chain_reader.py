"""
Read-only chain access: the boost contract counter and records, plus
ERC-20 token metadata for enrichment.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3

from boost.errors import EnrichmentFailure, IndexerReadFailure
from boost.models import TokenInfo

logger = logging.getLogger("guard.chain")

BOOST_FIELDS = ("strategyURI", "token", "balance", "guard", "start", "end", "owner")

BOOST_ABI = [
    {
        "inputs": [],
        "name": "nextBoostId",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "boostId", "type": "uint256"}],
        "name": "getBoost",
        "outputs": [
            {
                "components": [
                    {"internalType": "string",  "name": "strategyURI", "type": "string"},
                    {"internalType": "address", "name": "token",       "type": "address"},
                    {"internalType": "uint256", "name": "balance",     "type": "uint256"},
                    {"internalType": "address", "name": "guard",       "type": "address"},
                    {"internalType": "uint48",  "name": "start",       "type": "uint48"},
                    {"internalType": "uint48",  "name": "end",         "type": "uint48"},
                    {"internalType": "address", "name": "owner",       "type": "address"},
                ],
                "internalType": "struct IBoost.Boost",
                "name": "",
                "type": "tuple",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

ERC20_METADATA_ABI = [
    {
        "inputs": [],
        "name": name,
        "outputs": [{"internalType": out, "name": "", "type": out}],
        "stateMutability": "view",
        "type": "function",
    }
    for name, out in (("name", "string"), ("symbol", "string"), ("decimals", "uint8"))
]


def make_web3(rpc_url: str) -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider(rpc_url))


class BoostChainReader:
    """Counter and record reads against the boost contract of one chain."""

    def __init__(
        self,
        web3:          AsyncWeb3,
        chain_id:      int,
        boost_address: str,
        timeout:       Optional[float] = None,
    ):
        self.chain_id  = chain_id
        self.timeout   = timeout
        self._contract = web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(boost_address), abi=BOOST_ABI
        )

    async def get_next_boost_id(self) -> int:
        try:
            next_id = await asyncio.wait_for(
                self._contract.functions.nextBoostId().call(), self.timeout
            )
        except asyncio.TimeoutError as e:
            raise IndexerReadFailure(f"nextBoostId timed out on chain {self.chain_id}") from e
        except Exception as e:
            raise IndexerReadFailure(f"nextBoostId failed on chain {self.chain_id}: {e}") from e
        return int(next_id)

    async def get_boost(self, boost_id: int) -> dict[str, Any]:
        try:
            record = await asyncio.wait_for(
                self._contract.functions.getBoost(boost_id).call(), self.timeout
            )
        except asyncio.TimeoutError as e:
            raise IndexerReadFailure(f"getBoost({boost_id}) timed out on chain {self.chain_id}") from e
        except Exception as e:
            raise IndexerReadFailure(f"getBoost({boost_id}) failed on chain {self.chain_id}: {e}") from e
        return dict(zip(BOOST_FIELDS, tuple(record)))


class TokenMetadataReader:
    """ERC-20 name/symbol/decimals, read concurrently."""

    def __init__(self, web3: AsyncWeb3, chain_id: int, timeout: Optional[float] = None):
        self.web3     = web3
        self.chain_id = chain_id
        self.timeout  = timeout

    async def get_token_metadata(self, token_address: str) -> TokenInfo:
        try:
            contract = self.web3.eth.contract(
                address=AsyncWeb3.to_checksum_address(token_address), abi=ERC20_METADATA_ABI
            )
            name, symbol, decimals = await asyncio.wait_for(
                asyncio.gather(
                    contract.functions.name().call(),
                    contract.functions.symbol().call(),
                    contract.functions.decimals().call(),
                ),
                self.timeout,
            )
        except Exception as e:
            raise EnrichmentFailure(
                f"token metadata for {token_address} on chain {self.chain_id}: {e!r}"
            ) from e
        return TokenInfo(address=token_address, name=name, symbol=symbol, decimals=int(decimals))
