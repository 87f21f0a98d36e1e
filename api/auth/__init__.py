"""Caller identity dependencies.

Callers are authenticated by the host in front of this API; the contract
only sees the opaque account id and the payment attached to the request.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request, status

from contract import EscrowContract
from runtime import ContractError, MAX_AMOUNT

def get_contract(request: Request) -> EscrowContract:
    """Return the contract served by this app."""
    contract = getattr(request.app.state, 'contract', None)
    if contract is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Contract not initialized"
        )
    return contract

def http_error(e: ContractError) -> HTTPException:
    """Map a contract error onto the HTTP status it carries."""
    return HTTPException(status_code=e.status_code, detail=str(e))

async def get_caller(
    account_id: Optional[str] = Header(None, alias='X-Account-Id')
) -> str:
    """Return the authenticated caller's account id."""
    if not account_id or not account_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Account-Id header"
        )
    return account_id.strip()

async def get_attached_payment(
    attached_payment: int = Header(0, alias='X-Attached-Payment', ge=0, le=MAX_AMOUNT)
) -> int:
    """Return the native currency attached to the request."""
    return attached_payment

__all__ = ['get_contract', 'get_caller', 'get_attached_payment', 'http_error']
