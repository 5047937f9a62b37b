"""
Snapshot hub client: latest vote of a voter on a proposal.
Used by the ``snapshot`` strategy only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from boost.errors import StrategyEvaluationError

logger = logging.getLogger("guard.snapshot")

SNAPSHOT_HUB_URL         = "https://hub.snapshot.org/graphql"
SNAPSHOT_TESTNET_HUB_URL = "https://testnet.hub.snapshot.org/graphql"

VOTE_QUERY = """
query Vote($voter: String!, $proposal: String!) {
  votes(
    first: 1
    orderBy: "created"
    orderDirection: desc
    where: { voter: $voter, proposal: $proposal }
  ) {
    vp
    vp_state
  }
}
"""


@dataclass(frozen=True)
class Vote:
    voting_power: Decimal
    vp_state:     str = ""


class SnapshotVoteRegistry:

    def __init__(
        self,
        client:          httpx.AsyncClient,
        hub_url:         str             = SNAPSHOT_HUB_URL,
        testnet_hub_url: str             = SNAPSHOT_TESTNET_HUB_URL,
        timeout:         Optional[float] = None,
    ):
        self.client          = client
        self.hub_url         = hub_url
        self.testnet_hub_url = testnet_hub_url
        self.timeout         = timeout

    def url_for(self, env: Optional[str]) -> str:
        return self.testnet_hub_url if env == "testnet" else self.hub_url

    async def query_latest_vote(
        self, voter: str, proposal: str, env: Optional[str] = None
    ) -> Optional[Vote]:
        body = {"query": VOTE_QUERY, "variables": {"voter": voter, "proposal": proposal}}
        try:
            response = await self.client.post(self.url_for(env), json=body, timeout=self.timeout)
            response.raise_for_status()
            # vp may be fractional; keep it exact
            payload = response.json(parse_float=Decimal)
        except (httpx.HTTPError, ValueError) as e:
            raise StrategyEvaluationError(f"vote registry unreachable: {e}") from e

        if not isinstance(payload, dict):
            raise StrategyEvaluationError("malformed vote registry response")
        if payload.get("errors"):
            raise StrategyEvaluationError(f"vote registry error: {payload['errors']}")
        try:
            votes = payload["data"]["votes"]
        except (KeyError, TypeError) as e:
            raise StrategyEvaluationError("malformed vote registry response") from e

        if not votes:
            return None
        vote = votes[0]
        try:
            voting_power = Decimal(vote.get("vp") or 0)
        except (InvalidOperation, TypeError) as e:
            raise StrategyEvaluationError(f"malformed voting power: {vote.get('vp')!r}") from e
        if voting_power < 0:
            raise StrategyEvaluationError(f"negative voting power: {voting_power}")
        logger.debug(f"[SNAPSHOT] {voter} on {proposal}: vp={voting_power} ({vote.get('vp_state')})")
        return Vote(voting_power=voting_power, vp_state=vote.get("vp_state") or "")
