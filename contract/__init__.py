"""Escrow contract facade.

Wires the ledger, the asset registry, the transfer coordinator and the
versioned storage onto one runtime, and exposes them as the contract's
method surface. Mutating methods run as calls (one transaction each,
external effects dispatched after commit); view methods run read-only.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from assets import Asset, AssetRegistry
from config import settings_conf
from database.store import Store, create_store
from database.versioning import VersionedStorage
from ledger import Account, AccountLedger
from rpc import HostRPC, RegistryRPC, create_host_client, create_registry_client
from runtime import CallContext, Runtime, Unauthorized
from transfers import TransferCoordinator

logger = logging.getLogger(__name__)

Authorizer = Callable[[str], bool]

class AdminAuthorizer:
    """Accepts the contract's own account and a fixed set of admins."""

    def __init__(self, contract_id: str, admin_accounts: Iterable[str] = ()):
        self.allowed = {contract_id, *admin_accounts}

    def __call__(self, account_id: str) -> bool:
        return account_id in self.allowed

class EscrowContract:
    """The escrow contract's public methods."""

    def __init__(
        self,
        runtime: Runtime,
        storage: VersionedStorage,
        ledger: AccountLedger,
        registry: AssetRegistry,
        authorizer: Authorizer
    ):
        self.runtime = runtime
        self.storage = storage
        self.ledger = ledger
        self.registry = registry
        self.authorizer = authorizer

    @property
    def contract_id(self) -> str:
        return self.runtime.contract_id

    # Accounts

    async def new_user(self, caller: str, attached_payment: int = 0) -> Account:
        return await self.runtime.call(self.ledger.register, caller, attached_payment)

    async def deposit(self, caller: str, attached_payment: int) -> Account:
        return await self.runtime.call(self.ledger.deposit, caller, attached_payment)

    async def withdraw_all(self, caller: str) -> int:
        return await self.runtime.call(self.ledger.withdraw_all, caller)

    async def get_balance(self, account_id: str) -> int:
        return await self.runtime.view(self.ledger.balance_of, account_id=account_id)

    async def view_users(self) -> List[str]:
        return await self.runtime.view(self.ledger.view_users)

    async def view_accounts(self) -> List[Tuple[str, int]]:
        return await self.runtime.view(self.ledger.view_accounts)

    async def view_user(self, caller: str) -> Tuple[str, List[str], int]:
        return await self.runtime.view(self.ledger.view_user, caller=caller)

    # Assets

    async def place_new_asset(
        self,
        caller: str,
        token_id: str,
        price: int,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
        attached_payment: int = 0
    ) -> Asset:
        return await self.runtime.call(
            self.registry.list_asset,
            caller,
            attached_payment,
            token_id=token_id,
            price=price,
            approval_id=approval_id,
            memo=memo
        )

    async def buy_asset(self, caller: str, token_id: str, attached_payment: int) -> Asset:
        return await self.runtime.call(
            self.registry.buy_asset, caller, attached_payment, token_id=token_id
        )

    async def view_assets(self) -> List[Tuple[str, Asset]]:
        return await self.runtime.view(self.registry.view_all_assets)

    async def view_asset(self, token_id: str) -> Asset:
        return await self.runtime.view(self.registry.view_asset, token_id=token_id)

    # Administration

    async def _reset(self, ctx: CallContext) -> Tuple[int, int, int]:
        if not self.authorizer(ctx.caller):
            raise Unauthorized(f"Account {ctx.caller} may not reset contract state")
        version = await self.storage.reset(ctx.session)
        logger.warning(f"State reset by {ctx.caller}")
        return version.as_tuple()

    async def reset_state(self, caller: str) -> Tuple[int, int, int]:
        """Discard all accounts and assets and bump the patch version."""
        return await self.runtime.call(self._reset, caller)

    async def _current_version(self, ctx: CallContext) -> Tuple[int, int, int]:
        return (await self.storage.current_version(ctx.session)).as_tuple()

    async def get_current_ver(self) -> Tuple[int, int, int]:
        return await self.runtime.view(self._current_version)

    async def _stats(self, ctx: CallContext) -> Dict[str, Any]:
        state = await self.storage.load_state(ctx.session)
        return {
            'version': list(state.version),
            'account_count': state.account_count,
            'asset_count': state.asset_count,
            'pending_promises': self.runtime.pending,
        }

    async def stats(self) -> Dict[str, Any]:
        return await self.runtime.view(self._stats)

def create_contract(
    settings: Optional[Dict[str, Any]] = None,
    store: Optional[Store] = None,
    registry_client: Optional[RegistryRPC] = None,
    host_client: Optional[HostRPC] = None,
    clock: Optional[Callable[[], int]] = None,
    authorizer: Optional[Authorizer] = None
) -> EscrowContract:
    """Build a contract from settings.

    Args:
        settings: Validated settings, defaults to the loaded settings.conf
        store: Storage backend, defaults to the one selected by storage_backend
        registry_client: Registry RPC client, defaults to one built from settings
        host_client: Host wallet RPC client, defaults to one built from settings
        clock: Nanosecond clock, defaults to time.time_ns
        authorizer: Reset authorization check, defaults to AdminAuthorizer

    Returns:
        The wired contract. The store still has to be opened.
    """
    settings = settings or settings_conf
    contract_id = settings['contract_account_id']

    registry_client = registry_client or create_registry_client(settings)
    host_client = host_client or create_host_client(settings)

    runtime = Runtime(
        store or create_store(settings),
        contract_id,
        clock=clock,
        receipt_log_size=settings.get('receipt_log_size', 1000)
    )
    storage = VersionedStorage()
    coordinator = TransferCoordinator(
        registry_client,
        settings['registry_account_id'],
        gas=settings['transfer_gas']
    )
    ledger = AccountLedger(storage, host_client)
    registry = AssetRegistry(
        storage,
        coordinator,
        host_client,
        track_transfer_phase=settings.get('track_transfer_phase', False)
    )

    logger.info(
        f"Escrow contract {contract_id} using registry {settings['registry_account_id']}"
    )
    return EscrowContract(
        runtime,
        storage,
        ledger,
        registry,
        authorizer or AdminAuthorizer(contract_id, settings.get('admin_accounts', ()))
    )

__all__ = ['EscrowContract', 'AdminAuthorizer', 'create_contract']
