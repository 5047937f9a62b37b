"""
Boost Guard: error taxonomy.

Every failure the core can raise derives from ``GuardError`` and carries a
stable ``kind`` plus the HTTP status the transport layer answers with.
Enrichment and indexer read failures are recovered inside the indexer and
never reach a caller.
"""

from __future__ import annotations


class GuardError(RuntimeError):
    kind:        str = "guard_error"
    status_code: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class ConfigurationError(GuardError):
    kind = "configuration_error"


class EnrichmentFailure(GuardError):
    """Token or strategy metadata could not be fetched or parsed."""
    kind = "enrichment_failure"


class IndexerReadFailure(GuardError):
    """The boost counter or a raw boost record could not be read."""
    kind = "indexer_read_failure"


class BoostNotFound(GuardError):
    kind        = "not_found"
    status_code = 404

    def __init__(self, chain_id: int, boost_id: int):
        super().__init__(f"Boost {boost_id} not found on chain {chain_id}")
        self.chain_id = chain_id
        self.boost_id = boost_id


class InvalidRequest(GuardError):
    kind        = "invalid_request"
    status_code = 400


class RateLimited(GuardError):
    kind        = "rate_limited"
    status_code = 429


class UnknownStrategy(GuardError):
    kind        = "unknown_strategy"
    status_code = 422


class StrategyNotReady(UnknownStrategy):
    """The boost's strategy descriptor has not been resolved yet."""
    kind        = "not_ready"
    status_code = 409


class StrategyEvaluationError(GuardError):
    kind        = "strategy_evaluation_error"
    status_code = 502


class SigningError(GuardError):
    kind = "signing_error"

    def __init__(self, message: str = "signing failed"):
        # Never carry signer diagnostics to the caller.
        super().__init__("signing failed")
        self.detail = message
