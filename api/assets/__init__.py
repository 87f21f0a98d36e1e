"""Asset API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from assets import Asset
from contract import EscrowContract
from runtime import ContractError, U128
from ..auth import get_attached_payment, get_caller, get_contract, http_error

router = APIRouter(
    prefix="/assets",
    tags=["Assets"]
)

class ListAssetRequest(BaseModel):
    """Request model for listing an asset."""
    token_id: str = Field(..., min_length=1, description="Token id in the external registry")
    price: U128 = Field(..., description="Asking price, as an integer or decimal string")
    approval_id: Optional[int] = Field(None, ge=0, description="Approval the registry should check")
    memo: Optional[str] = Field(None, description="Memo forwarded to the registry")

class AssetResponse(BaseModel):
    """Response model for an asset."""
    token_id: str
    price: str
    init_time: int
    last_time: int
    last_owner: str
    last_user: str
    active: bool
    transfer_phase: Optional[str] = None

    @classmethod
    def from_asset(cls, asset: Asset) -> 'AssetResponse':
        return cls(
            token_id=asset.token_id,
            price=str(asset.price),
            init_time=asset.init_time,
            last_time=asset.last_time,
            last_owner=asset.last_owner,
            last_user=asset.last_user,
            active=asset.active,
            transfer_phase=asset.transfer_phase.value if asset.transfer_phase else None
        )

@router.get("", response_model=List[AssetResponse])
async def list_assets(contract: EscrowContract = Depends(get_contract)):
    """List all assets, listed and sold."""
    return [AssetResponse.from_asset(asset) for _, asset in await contract.view_assets()]

@router.get("/{token_id}", response_model=AssetResponse)
async def get_asset(token_id: str, contract: EscrowContract = Depends(get_contract)):
    """Get one asset by token id."""
    try:
        asset = await contract.view_asset(token_id)
    except ContractError as e:
        raise http_error(e) from e
    return AssetResponse.from_asset(asset)

@router.post("", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def place_asset(
    listing: ListAssetRequest,
    caller: str = Depends(get_caller),
    attached_payment: int = Depends(get_attached_payment),
    contract: EscrowContract = Depends(get_contract)
):
    """List an asset; its custody moves from the caller to the contract.

    The attached payment is forwarded with the custody transfer.
    """
    try:
        asset = await contract.place_new_asset(
            caller,
            listing.token_id,
            listing.price,
            approval_id=listing.approval_id,
            memo=listing.memo,
            attached_payment=attached_payment
        )
    except ContractError as e:
        raise http_error(e) from e
    return AssetResponse.from_asset(asset)

@router.post("/{token_id}/buy", response_model=AssetResponse)
async def buy_asset(
    token_id: str,
    caller: str = Depends(get_caller),
    attached_payment: int = Depends(get_attached_payment),
    contract: EscrowContract = Depends(get_contract)
):
    """Buy a listed asset with the attached payment."""
    try:
        asset = await contract.buy_asset(caller, token_id, attached_payment)
    except ContractError as e:
        raise http_error(e) from e
    return AssetResponse.from_asset(asset)

__all__ = ['router']
