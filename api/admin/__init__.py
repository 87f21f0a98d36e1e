"""Administrative endpoints: version, stats, reset and receipts."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from contract import EscrowContract
from runtime import ContractError
from ..auth import get_caller, get_contract, http_error

router = APIRouter(
    prefix="/admin",
    tags=["Admin"]
)

class VersionResponse(BaseModel):
    """Response model for the contract version."""
    version: List[int]

class StatsResponse(BaseModel):
    """Response model for contract statistics."""
    version: List[int]
    account_count: int
    asset_count: int
    pending_promises: int

class ReceiptResponse(BaseModel):
    """Response model for a settled promise."""
    promise_id: int
    description: str
    ok: bool
    error: Optional[str] = None
    callback_result: Optional[bool] = None

@router.get("/version", response_model=VersionResponse)
async def get_version(contract: EscrowContract = Depends(get_contract)):
    """Get the current schema version triple."""
    return VersionResponse(version=list(await contract.get_current_ver()))

@router.get("/stats", response_model=StatsResponse)
async def get_stats(contract: EscrowContract = Depends(get_contract)):
    """Get account and asset counters."""
    return StatsResponse(**await contract.stats())

@router.get("/receipts", response_model=List[ReceiptResponse])
async def get_receipts(
    limit: int = Query(50, ge=1, le=1000),
    contract: EscrowContract = Depends(get_contract)
):
    """Get the most recent settled promises, newest first."""
    receipts = list(contract.runtime.receipts)[-limit:]
    return [
        ReceiptResponse(
            promise_id=r.promise_id,
            description=r.description,
            ok=r.ok,
            error=r.error,
            callback_result=r.callback_result
        )
        for r in reversed(receipts)
    ]

@router.post("/reset", response_model=VersionResponse)
async def reset_state(
    caller: str = Depends(get_caller),
    contract: EscrowContract = Depends(get_contract)
):
    """Discard all accounts and assets and bump the patch version."""
    try:
        version = await contract.reset_state(caller)
    except ContractError as e:
        raise http_error(e) from e
    return VersionResponse(version=list(version))

__all__ = ['router']
