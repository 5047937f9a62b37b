"""
Boost Guard: shared data structures.

Amounts are arbitrary-precision unsigned integers. They travel as decimal
strings across the API boundary and as Python ``int`` everywhere else.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

UINT256_MAX = 2 ** 256 - 1


def to_uint(value: Any, field_name: str = "amount") -> int:
    """Parse a non-negative integer from an int or a decimal string."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an unsigned integer, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"{field_name} must be non-negative, got {value}")
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(f"{field_name} must be an unsigned integer, got {value!r}")


# ---------------------------------------------------------------------------
# Boost
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class TokenInfo:
    address:  str
    name:     Optional[str] = None
    symbol:   Optional[str] = None
    decimals: Optional[int] = None

    @property
    def is_enriched(self) -> bool:
        return None not in (self.name, self.symbol, self.decimals)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class StrategyDescriptor:
    name:   str                = ""
    params: Mapping[str, Any]  = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def is_resolved(self) -> bool:
        return bool(self.name)

    @classmethod
    def from_json(cls, payload: Any) -> "StrategyDescriptor":
        """
        Build a descriptor from fetched strategy metadata.
        The strategy may be named under ``name`` or the legacy ``strategy`` key.
        """
        if not isinstance(payload, Mapping):
            raise ValueError("strategy metadata must be a JSON object")
        name = payload.get("name") or payload.get("strategy")
        if not isinstance(name, str) or not name:
            raise ValueError("strategy metadata has no strategy name")
        params = payload.get("params") or {}
        if not isinstance(params, Mapping):
            raise ValueError("strategy params must be a JSON object")
        return cls(name=name, params=params)

    def to_dict(self) -> dict:
        if not self.is_resolved:
            return {}
        return {"name": self.name, "params": dict(self.params)}


@dataclass(frozen=True)
class Boost:
    """
    A campaign record. ``(chain_id, id)`` is its identity; ``token`` and
    ``strategy`` are the only fields that change after the first read, and
    only from partial to populated.
    """
    id:           int
    chain_id:     int
    token:        TokenInfo
    strategy_uri: str                 = ""
    strategy:     StrategyDescriptor  = field(default_factory=StrategyDescriptor)
    balance:      int                 = 0
    guard:        str                 = ""
    start:        int                 = 0
    end:          int                 = 0
    owner:        str                 = ""

    @property
    def key(self) -> tuple[int, int]:
        return (self.chain_id, self.id)

    @classmethod
    def from_chain(cls, boost_id: int, chain_id: int, raw: Mapping[str, Any]) -> "Boost":
        return cls(
            id           = boost_id,
            chain_id     = chain_id,
            token        = TokenInfo(address=str(raw.get("token", ""))),
            strategy_uri = str(raw.get("strategyURI") or ""),
            balance      = int(raw.get("balance", 0)),
            guard        = str(raw.get("guard", "")),
            start        = int(raw.get("start", 0)),
            end          = int(raw.get("end", 0)),
            owner        = str(raw.get("owner", "")),
        )

    def to_dict(self) -> dict:
        return {
            "id":          self.id,
            "chainId":     self.chain_id,
            "token":       self.token.to_dict(),
            "strategyURI": self.strategy_uri,
            "strategy":    self.strategy.to_dict(),
            "balance":     str(self.balance),
            "guard":       self.guard,
            "start":       self.start,
            "end":         self.end,
            "owner":       self.owner,
        }


# ---------------------------------------------------------------------------
# Claim / Coupon
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Claim:
    boost_id:  int
    recipient: str
    amount:    int
    chain_id:  int


@dataclass(frozen=True)
class Coupon:
    boost_id:   int
    recipient:  str
    guard:      str
    chain_id:   int
    amount:     str
    signature:  Optional[str]  = None
    typed_data: Optional[dict] = None

    @property
    def eligible(self) -> bool:
        return self.signature is not None

    def to_dict(self) -> dict:
        return {
            "boostId":   self.boost_id,
            "recipient": self.recipient,
            "guard":     self.guard,
            "chainId":   self.chain_id,
            "amount":    self.amount,
            "sig":       self.signature,
            "typedData": self.typed_data,
        }
