from __future__ import annotations
import datetime
import json
import threading
from typing import Optional, Type

from fastapi import FastAPI, Request, HTTPException
from pydantic import BaseModel, ValidationError

from .crypto import normalize_address
from .errors import (
    AlreadyClaimed,
    DistributionEnded,
    DistributorError,
    DropNotEnded,
    InvalidProof,
    InvalidSignature,
    TransferFailed,
)
from .logutil import setup_logging
from .middleware.size_limit import SizeLimitMiddleware
from .models import ClaimRequest, DelegateClaimRequest, DistributorView
from .runtime import Runtime, build_runtime
from .settings import settings

setup_logging(settings.log_level)

app = FastAPI(title="Merkle Distributor")
app.add_middleware(SizeLimitMiddleware)

_runtime: Optional[Runtime] = None
_runtime_lock = threading.Lock()

_STATUS = (
    (InvalidProof, 400),
    (InvalidSignature, 400),
    (AlreadyClaimed, 409),
    (DistributionEnded, 403),
    (DropNotEnded, 403),
    (TransferFailed, 422),
)


def get_runtime() -> Runtime:
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            try:
                _runtime = build_runtime()
            except FileNotFoundError as e:
                raise HTTPException(status_code=503, detail=str(e))
        return _runtime


def reset_runtime() -> None:
    """Drop the cached runtime so the next request rebuilds it from settings."""
    global _runtime
    with _runtime_lock:
        _runtime = None


def _http_error(e: DistributorError) -> HTTPException:
    for kind, code in _STATUS:
        if isinstance(e, kind):
            return HTTPException(status_code=code, detail={"error": e.code, "message": e.message})
    return HTTPException(status_code=400, detail={"error": e.code, "message": e.message})


async def _read_payload(request: Request, model: Type[BaseModel]):
    ct = request.headers.get("content-type", "")
    if not ct.lower().startswith("application/json"):
        raise HTTPException(status_code=415, detail="unsupported content type")
    body = request.scope.get("_cached_body")
    if body is None:
        body = await request.body()
    try:
        raw = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid JSON body")
    if not isinstance(raw, dict):
        raise HTTPException(status_code=400, detail="payload schema invalid")
    try:
        return model(**raw)
    except ValidationError:
        raise HTTPException(status_code=400, detail="payload schema invalid")


@app.get("/healthz")
async def healthz():
    return {"ok": True, "ts": datetime.datetime.now(datetime.timezone.utc).isoformat()}


@app.get("/distributor")
def distributor_state():
    rt = get_runtime()
    return DistributorView(**rt.distributor.describe()).model_dump(by_alias=True)


@app.get("/claims/{index}")
def claim_status(index: int):
    if index < 0:
        raise HTTPException(status_code=400, detail="index must be non-negative")
    rt = get_runtime()
    return {"index": index, "claimed": rt.distributor.is_claimed(index)}


@app.get("/proofs/{account}")
def proof_for_account(account: str):
    try:
        account = normalize_address(account)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid address")
    rt = get_runtime()
    info = rt.info.claims.get(account)
    if info is None:
        raise HTTPException(status_code=404, detail="address not in distribution")
    return {"account": account, **info.model_dump(exclude_none=True)}


@app.post("/claim")
async def claim(request: Request):
    req = await _read_payload(request, ClaimRequest)
    rt = get_runtime()
    try:
        event = rt.distributor.claim(req.index, req.account, req.amount, req.proof_bytes())
    except DistributorError as e:
        raise _http_error(e)
    return event.model_dump()


@app.post("/delegate-claim")
async def delegate_claim(request: Request):
    req = await _read_payload(request, DelegateClaimRequest)
    rt = get_runtime()
    try:
        event = rt.distributor.delegate_and_claim(
            req.delegatee,
            req.nonce,
            req.expiry,
            req.v,
            req.r,
            req.s,
            req.index,
            req.account,
            req.amount,
            req.proof_bytes(),
        )
    except DistributorError as e:
        raise _http_error(e)
    return event.model_dump()


@app.post("/sweep")
def sweep():
    rt = get_runtime()
    try:
        amount = rt.distributor.sweep()
    except DistributorError as e:
        raise _http_error(e)
    return {"owner": rt.distributor.owner, "amount": amount}


@app.post("/dev/mine")
def dev_mine(blocks: int = 1):
    rt = get_runtime()
    if not rt.settings.allow_dev_mining:
        raise HTTPException(status_code=403, detail="dev mining disabled")
    if blocks < 0:
        raise HTTPException(status_code=400, detail="blocks must be non-negative")
    return {"blockNumber": rt.chain.mine(blocks)}
