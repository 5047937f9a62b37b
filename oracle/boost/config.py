"""
Boost Guard: environment configuration.

Values are read from the process environment; the API bootstrap calls
``load_dotenv()`` first so a local ``oracle/.env`` is honoured.
A missing or malformed VERIFYING_CONTRACT is fatal at startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from web3 import Web3

from boost.errors import ConfigurationError

# ── Defaults ──────────────────────────────────────────────────────────────────
DEFAULT_DOMAIN_NAME        = "boost"
DEFAULT_DOMAIN_VERSION     = "1"
DEFAULT_CHAIN_IDS          = "5"
DEFAULT_RPC_URL_TEMPLATE   = "https://rpc.snapshot.org/{chain_id}"
DEFAULT_HUB_URL            = "https://hub.snapshot.org/graphql"
DEFAULT_TESTNET_HUB_URL    = "https://testnet.hub.snapshot.org/graphql"
DEFAULT_IPFS_GATEWAY       = "https://cloudflare-ipfs.com/ipfs/"
DEFAULT_INDEXER_INTERVAL   = "3"
DEFAULT_EXTERNAL_TIMEOUT   = "10"
DEFAULT_RATE_LIMIT_STATUS  = "30/minute"


def _checksum(value: str, env_name: str) -> str:
    if not value or not Web3.is_address(value.lower()):
        raise ConfigurationError(
            f"{env_name} must be set to a 20-byte hex address "
            "(add it to your environment or oracle/.env)"
        )
    return Web3.to_checksum_address(value.lower())


def _parse_chain_ids(raw: str) -> tuple[int, ...]:
    try:
        chain_ids = tuple(int(c.strip()) for c in raw.split(",") if c.strip())
    except ValueError as e:
        raise ConfigurationError(f"CHAIN_IDS must be a comma-separated list of integers: {raw!r}") from e
    if not chain_ids:
        raise ConfigurationError("CHAIN_IDS must name at least one chain")
    return chain_ids


def _parse_seconds(raw: str, env_name: str) -> float:
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{env_name} must be a number of seconds: {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{env_name} must be positive: {raw!r}")
    return value


@dataclass(frozen=True)
class GuardSettings:
    verifying_contract:   str
    private_key:          Optional[str]    = None
    domain_name:          str              = DEFAULT_DOMAIN_NAME
    domain_version:       str              = DEFAULT_DOMAIN_VERSION
    boost_address:        str              = ""
    chain_ids:            tuple[int, ...]  = (5,)
    rpc_url_template:     str              = DEFAULT_RPC_URL_TEMPLATE
    hub_url:              str              = DEFAULT_HUB_URL
    testnet_hub_url:      str              = DEFAULT_TESTNET_HUB_URL
    ipfs_gateway:         str              = DEFAULT_IPFS_GATEWAY
    indexer_interval_sec: float            = 3.0
    external_timeout_sec: float            = 10.0
    rate_limit_status:    str              = DEFAULT_RATE_LIMIT_STATUS
    allowed_origins:      list[str]        = field(default_factory=lambda: ["*"])

    def __post_init__(self):
        object.__setattr__(
            self, "verifying_contract", _checksum(self.verifying_contract, "VERIFYING_CONTRACT")
        )
        if self.boost_address:
            object.__setattr__(self, "boost_address", _checksum(self.boost_address, "BOOST_ADDRESS"))
        else:
            object.__setattr__(self, "boost_address", self.verifying_contract)

    @classmethod
    def from_env(cls) -> "GuardSettings":
        raw_origins = os.getenv("ALLOWED_ORIGINS", "*")
        return cls(
            verifying_contract   = os.getenv("VERIFYING_CONTRACT", ""),
            private_key          = os.getenv("GUARD_PK") or None,
            domain_name          = os.getenv("BOOST_NAME", DEFAULT_DOMAIN_NAME),
            domain_version       = os.getenv("BOOST_VERSION", DEFAULT_DOMAIN_VERSION),
            boost_address        = os.getenv("BOOST_ADDRESS", ""),
            chain_ids            = _parse_chain_ids(os.getenv("CHAIN_IDS", DEFAULT_CHAIN_IDS)),
            rpc_url_template     = os.getenv("RPC_URL_TEMPLATE", DEFAULT_RPC_URL_TEMPLATE),
            hub_url              = os.getenv("HUB_URL", DEFAULT_HUB_URL),
            testnet_hub_url      = os.getenv("TESTNET_HUB_URL", DEFAULT_TESTNET_HUB_URL),
            ipfs_gateway         = os.getenv("IPFS_GATEWAY", DEFAULT_IPFS_GATEWAY),
            indexer_interval_sec = _parse_seconds(
                os.getenv("INDEXER_INTERVAL_SEC", DEFAULT_INDEXER_INTERVAL), "INDEXER_INTERVAL_SEC"
            ),
            external_timeout_sec = _parse_seconds(
                os.getenv("EXTERNAL_TIMEOUT_SEC", DEFAULT_EXTERNAL_TIMEOUT), "EXTERNAL_TIMEOUT_SEC"
            ),
            rate_limit_status    = os.getenv("RATE_LIMIT_STATUS", DEFAULT_RATE_LIMIT_STATUS),
            allowed_origins      = [o.strip() for o in raw_origins.split(",") if o.strip()],
        )

    def rpc_url(self, chain_id: int) -> str:
        return self.rpc_url_template.format(chain_id=chain_id)

    def hub_url_for(self, env: Optional[str]) -> str:
        return self.testnet_hub_url if env == "testnet" else self.hub_url
