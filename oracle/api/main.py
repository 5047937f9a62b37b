"""
Boost Guard: Oracle API Gateway
FastAPI server exposing the boost index and the coupon signer.

Routes:
  GET  /health                          guard address, chains, indexer cursors
  GET  /api/v1/boosts/{chain_id}        indexed boosts of a chain
  GET  /api/v1/boosts/{chain_id}/{id}   one boost
  GET  /api/v1/status                   evaluate + sign a claim (rate limited)
  POST /rpc                             JSON-RPC 2.0 (methods: status, boost)

Run with:  uvicorn api.main:create_app --factory   (from the oracle/ directory)
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from boost.boost_indexer import BoostIndexer, start_indexers, stop_indexers
from boost.boost_store import BoostStore
from boost.chain_reader import BoostChainReader, TokenMetadataReader, make_web3
from boost.claim_service import ClaimService
from boost.config import GuardSettings
from boost.errors import GuardError, InvalidRequest, RateLimited
from boost.guard import GuardSigner
from boost.metadata import StrategyMetadataSource
from boost.snapshot_hub import SnapshotVoteRegistry
from boost.strategy_evaluator import StrategyEvaluator
from boost.strategy_registry import build_registry

load_dotenv()

# ─── Setup ────────────────────────────────────────────────────────────────────
logging.basicConfig(level=logging.INFO)
log = logging.getLogger("guard.api")

VERSION = "1.0.0"

REQUEST_ID_HEADER = "X-Request-ID"

# JSON-RPC 2.0 error codes
RPC_METHOD_NOT_FOUND = -32601
RPC_INVALID_PARAMS   = -32602
RPC_SERVER_ERROR     = -32000


# ─── Request / Response Models ────────────────────────────────────────────────
class RpcRequest(BaseModel):
    jsonrpc: str                       = "2.0"
    id:      Optional[Any]             = None
    method:  str                       = "status"
    params:  Dict[str, Any]            = Field(default_factory=dict)


def _error_body(err: GuardError, request_id: str) -> Dict[str, Any]:
    return {"error": {"kind": err.kind, "message": err.message, "request_id": request_id}}


def _int_param(params: Dict[str, Any], *names: str) -> int:
    for name in names:
        if name in params:
            try:
                return int(params[name])
            except (TypeError, ValueError):
                raise InvalidRequest(f"{name} must be an integer") from None
    raise InvalidRequest(f"missing param: {names[0]}")


# ─── App Factory ──────────────────────────────────────────────────────────────
def create_app(
    settings:              Optional[GuardSettings]                         = None,
    *,
    store:                 Optional[BoostStore]                            = None,
    reader_factory:        Optional[Callable[[int], BoostChainReader]]     = None,
    token_source_factory:  Optional[Callable[[int], TokenMetadataReader]]  = None,
    vote_registry:         Optional[SnapshotVoteRegistry]                  = None,
    http_client:           Optional[httpx.AsyncClient]                     = None,
    run_indexers:          bool                                            = True,
) -> FastAPI:
    # Missing VERIFYING_CONTRACT raises ConfigurationError here, before serving.
    settings    = settings if settings is not None else GuardSettings.from_env()
    store       = store if store is not None else BoostStore()
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.external_timeout_sec)
    timeout     = settings.external_timeout_sec

    signer = GuardSigner.from_settings(settings)
    if vote_registry is None:
        vote_registry = SnapshotVoteRegistry(
            http_client,
            hub_url         = settings.hub_url,
            testnet_hub_url = settings.testnet_hub_url,
            timeout         = timeout,
        )
    evaluator = StrategyEvaluator(build_registry(vote_registry), timeout=timeout)
    service   = ClaimService(store, evaluator, signer)

    web3s: Dict[int, Any] = {}

    def _web3(chain_id: int):
        if chain_id not in web3s:
            web3s[chain_id] = make_web3(settings.rpc_url(chain_id))
        return web3s[chain_id]

    def _chain_reader(chain_id: int) -> BoostChainReader:
        return BoostChainReader(_web3(chain_id), chain_id, settings.boost_address, timeout)

    def _token_reader(chain_id: int) -> TokenMetadataReader:
        return TokenMetadataReader(_web3(chain_id), chain_id, timeout)

    if reader_factory is None:
        reader_factory = _chain_reader
    if token_source_factory is None:
        token_source_factory = _token_reader
    strategy_source = StrategyMetadataSource(http_client, settings.ipfs_gateway, timeout)

    indexers: List[BoostIndexer] = [
        BoostIndexer(
            chain_id        = chain_id,
            reader          = reader_factory(chain_id),
            token_source    = token_source_factory(chain_id),
            strategy_source = strategy_source,
            store           = store,
            interval_sec    = settings.indexer_interval_sec,
        )
        for chain_id in settings.chain_ids
    ]
    tasks: List[Any] = []

    limiter = Limiter(key_func=get_remote_address)

    app = FastAPI(
        title="Boost Guard: Oracle API",
        description="Boost indexer and EIP-712 claim signer",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.store    = store
    app.state.service  = service
    app.state.indexers = indexers
    app.state.limiter  = limiter

    # ─── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=86400,
    )

    # ─── Request correlation ──────────────────────────────────────────────────
    @app.middleware("http")
    async def _request_id(request: Request, call_next):
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response

    # ─── Error mapping ────────────────────────────────────────────────────────
    @app.exception_handler(GuardError)
    async def _guard_error(request: Request, err: GuardError):
        request_id = getattr(request.state, "request_id", "")
        log.warning(f"[{request_id}] {err.kind}: {err.message}")
        return JSONResponse(status_code=err.status_code, content=_error_body(err, request_id))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', 'invalid')}"
            for e in exc.errors()
        )
        return await _guard_error(request, InvalidRequest(problems or "malformed request"))

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded):
        return await _guard_error(request, RateLimited(f"Rate limit exceeded: {exc.detail}"))

    # ─── Lifecycle ────────────────────────────────────────────────────────────
    @app.on_event("startup")
    async def _startup():
        if not signer.available:
            log.critical(
                f"\n{'='*70}\nSECURITY WARNING: NO GUARD_PK SET. "
                "Every eligible claim will fail with signing_error until a key "
                "is configured in oracle/.env.\n"
                f"{'='*70}"
            )
        else:
            log.info(f"Guard {signer.address} signing for {settings.verifying_contract}")
        if run_indexers:
            tasks.extend(start_indexers(indexers))
            log.info(f"Indexers started for chains {list(settings.chain_ids)}")

    @app.on_event("shutdown")
    async def _shutdown():
        await stop_indexers(tasks, indexers)
        tasks.clear()
        for chain_id, w3 in web3s.items():
            try:
                await w3.provider.disconnect()
            except Exception as e:
                log.warning(f"RPC provider for chain {chain_id} did not close cleanly: {e}")
        web3s.clear()
        await http_client.aclose()

    # ─── Routes ───────────────────────────────────────────────────────────────
    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status":             "operational",
            "guard_address":      signer.address,
            "verifying_contract": settings.verifying_contract,
            "chains":             list(settings.chain_ids),
            "indexers": {
                str(i.chain_id): {"cursor": i.cursor, "running": i.running, "passes": i.passes}
                for i in indexers
            },
            "boosts":             len(store),
            "version":            VERSION,
            "timestamp":          int(time.time()),
        }

    @app.get("/api/v1/boosts/{chain_id}")
    async def list_boosts(chain_id: int) -> List[Dict[str, Any]]:
        return [b.to_dict() for b in service.list_boosts(chain_id)]

    @app.get("/api/v1/boosts/{chain_id}/{boost_id}")
    async def get_boost(chain_id: int, boost_id: int) -> Dict[str, Any]:
        return service.get_boost(chain_id, boost_id).to_dict()

    @app.get("/api/v1/status")
    @limiter.limit(settings.rate_limit_status)
    async def claim_status(
        request:   Request,                     # required by slowapi
        chain_id:  int = Query(..., alias="chainId"),
        boost_id:  int = Query(..., alias="boostId"),
        recipient: str = Query(...),
    ) -> Dict[str, Any]:
        log.info(f"[{request.state.request_id}] [STATUS] boost {boost_id}@{chain_id} for {recipient}")
        coupon = await service.evaluate_and_sign(chain_id, boost_id, recipient)
        return coupon.to_dict()

    @app.post("/rpc")
    async def rpc(request: Request, body: RpcRequest):
        request_id = request.state.request_id
        try:
            if body.method == "status":
                coupon = await service.evaluate_and_sign(
                    _int_param(body.params, "chainId", "chain_id"),
                    _int_param(body.params, "boostId", "boost_id"),
                    body.params.get("recipient"),
                )
                result = coupon.to_dict()
            elif body.method == "boost":
                result = service.get_boost(
                    _int_param(body.params, "chainId", "chain_id"),
                    _int_param(body.params, "id", "boostId", "boost_id"),
                ).to_dict()
            else:
                return JSONResponse(
                    status_code=404,
                    content={
                        "jsonrpc": "2.0",
                        "id":      body.id,
                        "error": {"code": RPC_METHOD_NOT_FOUND, "message": f"Unknown method '{body.method}'"},
                    },
                )
        except GuardError as err:
            log.warning(f"[{request_id}] [RPC] {body.method} failed: {err.kind}")
            code = RPC_INVALID_PARAMS if isinstance(err, InvalidRequest) else RPC_SERVER_ERROR
            return JSONResponse(
                status_code=err.status_code,
                content={
                    "jsonrpc": "2.0",
                    "id":      body.id,
                    "error": {
                        "code":    code,
                        "message": err.message,
                        "data":    {"kind": err.kind, "request_id": request_id},
                    },
                },
            )
        return {"jsonrpc": "2.0", "id": body.id, "result": result}

    return app
