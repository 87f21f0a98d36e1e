"""Ledger module for managing custodial account balances.

This module provides functionality for:
- Registering accounts with an initial balance
- Depositing into and fully withdrawing from an account
- Querying balances and registered accounts
"""

import logging
from typing import List, Tuple

from database.versioning import ACCOUNTS, VersionedStorage
from rpc import HostRPC
from runtime import ContractError, CallContext, InvalidAccount, MAX_AMOUNT
from transfers import send_payment
from .models import Account, AccountV1, AccountV2, load_account, dump_account

logger = logging.getLogger(__name__)

class LedgerError(ContractError):
    """Base exception for ledger operations."""
    pass

class AccountExistsError(LedgerError):
    """Raised when registering an account that already exists."""
    status_code = 409

class AccountNotRegisteredError(LedgerError):
    """Raised when an account has not been registered."""
    status_code = 404

class InvalidAmountError(LedgerError):
    """Raised when an attached payment is zero or would overflow a balance."""
    status_code = 400

class InsufficientFundsError(LedgerError):
    """Raised when withdrawing from an empty balance."""
    status_code = 402

class AccountLedger:
    """Manager class for handling account operations."""

    def __init__(self, storage: VersionedStorage, host: HostRPC):
        """Initialize the ledger.

        Args:
            storage: Versioned storage holding the accounts collection
            host: RPC client of the wallet paying out withdrawals
        """
        self.storage = storage
        self.host = host
        storage.register_codec(ACCOUNTS, load_account, dump_account)

    async def _get_registered(self, ctx: CallContext, account_id: str):
        view = await self.storage.open(ctx.session)
        account = await view.accounts.get(account_id)
        if account is None:
            raise AccountNotRegisteredError(
                f"Account {account_id} is not registered. "
                "Call new_user to register it"
            )
        return view, account

    async def register(self, ctx: CallContext) -> Account:
        """Register the caller with the attached payment as opening balance.

        Raises:
            AccountExistsError: If the caller is already registered
        """
        view = await self.storage.open(ctx.session)
        if await view.accounts.contains(ctx.caller):
            raise AccountExistsError(f"Account {ctx.caller} already exists")

        account = Account(account_id=ctx.caller, balance=ctx.attached_payment)
        await view.accounts.insert(ctx.caller, account)
        view.state.account_count += 1
        await view.save_state()

        logger.info(f"Registered account {ctx.caller} with balance {account.balance}")
        return account

    async def deposit(self, ctx: CallContext) -> Account:
        """Add the attached payment to the caller's balance.

        Raises:
            InvalidAmountError: If nothing is attached
            AccountNotRegisteredError: If the caller is not registered
        """
        if ctx.attached_payment == 0:
            raise InvalidAmountError("Deposit requires a positive attached payment")

        view, account = await self._get_registered(ctx, ctx.caller)
        if account.balance + ctx.attached_payment > MAX_AMOUNT:
            raise InvalidAmountError(f"Deposit would overflow the balance of {ctx.caller}")

        account.balance += ctx.attached_payment
        await view.accounts.insert(ctx.caller, account)

        logger.info(f"Deposited {ctx.attached_payment} to {ctx.caller}, balance {account.balance}")
        return account

    async def withdraw_all(self, ctx: CallContext) -> int:
        """Zero the caller's balance and pay it out.

        The balance is cleared before the payment is sent; a failed payment
        is not retried and not credited back.

        Returns:
            The amount paid out

        Raises:
            AccountNotRegisteredError: If the caller is not registered
            InsufficientFundsError: If the balance is zero
        """
        view, account = await self._get_registered(ctx, ctx.caller)
        amount = account.balance
        if amount == 0:
            raise InsufficientFundsError(f"Account {ctx.caller} has no funds to withdraw")

        account.balance = 0
        await view.accounts.insert(ctx.caller, account)
        send_payment(ctx, self.host, ctx.caller, amount)

        logger.info(f"Withdrawing {amount} to {ctx.caller}")
        return amount

    async def balance_of(self, ctx: CallContext, account_id: str) -> int:
        """Return the balance of a registered account."""
        if not account_id:
            raise InvalidAccount("account_id is empty")
        _, account = await self._get_registered(ctx, account_id)
        return account.balance

    async def view_user(self, ctx: CallContext) -> Tuple[str, List[str], int]:
        """Return the caller's (account_id, asset_ids, balance)."""
        _, account = await self._get_registered(ctx, ctx.caller)
        return account.account_id, list(account.asset_ids), account.balance

    async def view_users(self, ctx: CallContext) -> List[str]:
        """Return registered account ids in registration order."""
        view = await self.storage.open(ctx.session)
        return await view.accounts.keys()

    async def view_accounts(self, ctx: CallContext) -> List[Tuple[str, int]]:
        """Return (account_id, balance) for every registered account."""
        view = await self.storage.open(ctx.session)
        return [(key, account.balance) for key, account in await view.accounts.items()]

__all__ = [
    'Account',
    'AccountV1',
    'AccountV2',
    'AccountLedger',
    'LedgerError',
    'AccountExistsError',
    'AccountNotRegisteredError',
    'InvalidAmountError',
    'InsufficientFundsError',
]
