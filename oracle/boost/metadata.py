"""
Off-chain strategy metadata: URI checks, IPFS gateway rewriting and the
JSON fetch that resolves a boost's ``strategyURI`` into a descriptor.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from boost.errors import EnrichmentFailure
from boost.models import StrategyDescriptor

logger = logging.getLogger("guard.metadata")


def is_well_formed_uri(uri: Optional[str]) -> bool:
    """True when ``uri`` has a scheme and a location (``ipfs://cid``, ``https://host/x``)."""
    if not uri or not isinstance(uri, str) or any(c.isspace() for c in uri):
        return False
    try:
        parsed = urlparse(uri)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def resolve_url(uri: str, ipfs_gateway: str) -> str:
    """Bare CIDs are IPFS; ``ipfs://`` goes through the HTTP gateway."""
    if "://" not in uri:
        uri = f"ipfs://{uri}"
    if uri.startswith("ipfs://"):
        return ipfs_gateway.rstrip("/") + "/" + uri[len("ipfs://"):]
    return uri


class StrategyMetadataSource:

    def __init__(
        self,
        client:       httpx.AsyncClient,
        ipfs_gateway: str,
        timeout:      Optional[float] = None,
    ):
        self.client       = client
        self.ipfs_gateway = ipfs_gateway
        self.timeout      = timeout

    async def fetch_json(self, uri: str):
        url = resolve_url(uri, self.ipfs_gateway)
        response = await self.client.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    async def fetch_strategy(self, uri: str) -> StrategyDescriptor:
        try:
            payload = await self.fetch_json(uri)
            return StrategyDescriptor.from_json(payload)
        except (httpx.HTTPError, ValueError) as e:
            raise EnrichmentFailure(f"strategy metadata at {uri}: {e}") from e
