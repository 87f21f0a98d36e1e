"""Account API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from contract import EscrowContract
from ledger import Account
from runtime import ContractError
from ..auth import get_attached_payment, get_caller, get_contract, http_error

router = APIRouter(
    prefix="/accounts",
    tags=["Accounts"]
)

class AccountResponse(BaseModel):
    """Response model for an account."""
    account_id: str
    balance: str
    asset_ids: List[str] = []

    @classmethod
    def from_account(cls, account: Account) -> 'AccountResponse':
        return cls(
            account_id=account.account_id,
            balance=str(account.balance),
            asset_ids=list(account.asset_ids)
        )

class BalanceResponse(BaseModel):
    """Response model for a balance."""
    account_id: str
    balance: str

class WithdrawResponse(BaseModel):
    """Response model for a withdrawal."""
    account_id: str
    amount: str

@router.get("", response_model=List[BalanceResponse])
async def list_accounts(contract: EscrowContract = Depends(get_contract)):
    """List all registered accounts with their balances."""
    accounts = await contract.view_accounts()
    return [
        BalanceResponse(account_id=account_id, balance=str(balance))
        for account_id, balance in accounts
    ]

@router.get("/ids", response_model=List[str])
async def list_account_ids(contract: EscrowContract = Depends(get_contract)):
    """List registered account ids in registration order."""
    return await contract.view_users()

@router.get("/me", response_model=AccountResponse)
async def get_own_account(
    caller: str = Depends(get_caller),
    contract: EscrowContract = Depends(get_contract)
):
    """Get the caller's own account."""
    try:
        account_id, asset_ids, balance = await contract.view_user(caller)
    except ContractError as e:
        raise http_error(e) from e
    return AccountResponse(account_id=account_id, balance=str(balance), asset_ids=asset_ids)

@router.get("/{account_id}/balance", response_model=BalanceResponse)
async def get_balance(account_id: str, contract: EscrowContract = Depends(get_contract)):
    """Get the balance of a registered account."""
    try:
        balance = await contract.get_balance(account_id)
    except ContractError as e:
        raise http_error(e) from e
    return BalanceResponse(account_id=account_id, balance=str(balance))

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def register_account(
    caller: str = Depends(get_caller),
    attached_payment: int = Depends(get_attached_payment),
    contract: EscrowContract = Depends(get_contract)
):
    """Register the caller; the attached payment becomes the opening balance."""
    try:
        account = await contract.new_user(caller, attached_payment)
    except ContractError as e:
        raise http_error(e) from e
    return AccountResponse.from_account(account)

@router.post("/deposit", response_model=AccountResponse)
async def deposit(
    caller: str = Depends(get_caller),
    attached_payment: int = Depends(get_attached_payment),
    contract: EscrowContract = Depends(get_contract)
):
    """Add the attached payment to the caller's balance."""
    try:
        account = await contract.deposit(caller, attached_payment)
    except ContractError as e:
        raise http_error(e) from e
    return AccountResponse.from_account(account)

@router.post("/withdraw", response_model=WithdrawResponse)
async def withdraw_all(
    caller: str = Depends(get_caller),
    contract: EscrowContract = Depends(get_contract)
):
    """Withdraw the caller's whole balance."""
    try:
        amount = await contract.withdraw_all(caller)
    except ContractError as e:
        raise http_error(e) from e
    return WithdrawResponse(account_id=caller, amount=str(amount))

__all__ = ['router']
