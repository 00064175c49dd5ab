"""
Almanac API Server

FastAPI surface over the period registry:
- Ed25519 challenge-response auth (auth.py) issuing bearer JWTs
- Administrator read / transfer
- Period commit (administrator) and read (public)
- Notification log with polling cursor and chain verification

Run: uvicorn almanac.api_server:app --reload
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from almanac.auth import ChallengeAuth
from almanac.config import ALMANAC_VERSION, get_challenge_ttl_seconds, get_cors_origins, get_db_path
from almanac.errors import (
    InvalidTarget,
    InvalidTimePeriod,
    NoData,
    RegistryError,
    RegistryNotDeployed,
    Unauthorized,
)
from almanac.models import EventName
from almanac.observability import configure_logging, configure_observability, instrument_app
from almanac.registry import PeriodRegistry
from almanac.store import RegistryStore

logger = logging.getLogger(__name__)

# =============================================================================
# SETUP
# =============================================================================

configure_logging()

DB_PATH = get_db_path()
_store = RegistryStore(DB_PATH)
_registry = PeriodRegistry(_store)
_auth = ChallengeAuth(db_path=DB_PATH)

ERROR_STATUS = {
    Unauthorized: 403,
    InvalidTarget: 400,
    InvalidTimePeriod: 400,
    NoData: 404,
    RegistryNotDeployed: 503,
}

# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class ChallengeRequest(BaseModel):
    public_key: str = Field(..., pattern=r"^[0-9a-fA-F]{64}$")


class ChallengeResponse(BaseModel):
    address: str
    challenge: str
    expires_in: int


class VerifyRequest(BaseModel):
    address: str
    signature: str


class VerifyResponse(BaseModel):
    token: str
    address: str
    expires_at: str


class AdministratorResponse(BaseModel):
    administrator: str


class TransferRequest(BaseModel):
    new_holder: Optional[str] = None


class CommitRequest(BaseModel):
    content_hash: str = Field(..., pattern=r"^(0x)?[0-9a-fA-F]{64}$")
    document_location: str = ""
    indicator_value: int = Field(..., ge=0, le=2 ** 256 - 1)


class SuccessResponse(BaseModel):
    success: bool


class RecordResponse(BaseModel):
    period_key: str
    content_hash: str
    document_location: str
    indicator_value: int
    indicator_decimal: str


class EventResponse(BaseModel):
    id: int
    name: str
    period_key: Optional[str]
    args: dict
    timestamp: str
    prev_hash: Optional[str]
    hash: str

# =============================================================================
# AUTHENTICATION DEPENDENCY
# =============================================================================

async def get_caller(authorization: Optional[str] = Header(None)) -> str:
    """Address of the authenticated caller from ``Authorization: Bearer``."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    payload = _auth.verify_jwt(parts[1])
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return payload["sub"]

# =============================================================================
# APP
# =============================================================================

configure_observability()

app = FastAPI(
    title="Almanac -- Quarterly Statistics Registry",
    description="Administrator-published quarterly records with verifiable content hashes",
    version=ALMANAC_VERSION,
    docs_url="/docs",
)

_cors_origins = get_cors_origins()
if _cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Authorization", "Content-Type"],
    )

instrument_app(app)


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content=exc.to_dict())

# =============================================================================
# AUTH
# =============================================================================

@app.post("/auth/challenge", response_model=ChallengeResponse)
async def create_challenge(req: ChallengeRequest):
    try:
        address, challenge = _auth.create_challenge(req.public_key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ChallengeResponse(address=address, challenge=challenge.hex(),
                             expires_in=get_challenge_ttl_seconds())


@app.post("/auth/verify", response_model=VerifyResponse)
async def verify_challenge(req: VerifyRequest):
    result = _auth.verify_challenge(req.address, req.signature)
    if not result.success:
        raise HTTPException(status_code=401, detail=result.error)
    return VerifyResponse(token=result.token, address=result.address, expires_at=result.expires_at)

# =============================================================================
# ADMINISTRATOR
# =============================================================================

@app.get("/administrator", response_model=AdministratorResponse)
async def get_administrator():
    return AdministratorResponse(administrator=_registry.administrator)


@app.post("/administrator/transfer", response_model=SuccessResponse)
async def transfer_control(req: TransferRequest, caller: str = Depends(get_caller)):
    try:
        ok = _registry.transfer_control(caller, req.new_holder)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SuccessResponse(success=ok)

# =============================================================================
# PERIODS
# =============================================================================

@app.put("/periods/{period_key}", response_model=SuccessResponse)
async def commit_period(period_key: str, req: CommitRequest, caller: str = Depends(get_caller)):
    ok = _registry.commit(
        caller,
        period_key,
        req.content_hash,
        req.document_location,
        req.indicator_value,
    )
    return SuccessResponse(success=ok)


@app.get("/periods/{period_key}", response_model=RecordResponse)
async def read_period(period_key: str):
    record = _registry.read(period_key)
    return RecordResponse(period_key=period_key, **record.to_dict())

# =============================================================================
# EVENTS
# =============================================================================

@app.get("/events", response_model=List[EventResponse])
async def list_events(
    name: Optional[EventName] = None,
    period_key: Optional[str] = None,
    after_id: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    events = _registry.events.list_events(name=name, period_key=period_key,
                                          after_id=after_id, limit=limit)
    return [EventResponse(**e.to_dict()) for e in events]


@app.get("/events/verify")
async def verify_events():
    return {"valid": _registry.events.verify_chain(), "count": _registry.events.count()}

# =============================================================================
# HEALTH
# =============================================================================

@app.get("/health")
async def health():
    return {"status": "healthy", "version": ALMANAC_VERSION,
            "deployed": _store.is_deployed(),
            "timestamp": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
