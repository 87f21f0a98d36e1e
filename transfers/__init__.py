"""Transfers module for moving asset custody through the external registry.

Each invocation issues exactly one ownership-transfer RPC and attaches a
continuation that classifies the outcome. The call that issued the transfer
has already committed by the time the continuation runs, so the outcome is
reported (logged, recorded in the receipt, optionally handed to an outcome
hook) but never unwinds earlier state changes.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from rpc import RegistryRPC
from runtime import CallContext, Promise, PromiseResult, ensure_amount
from .payments import send_payment

logger = logging.getLogger(__name__)

# 5 Tgas, the execution fee budget forwarded with each transfer
DEFAULT_TRANSFER_GAS = 5 * 10 ** 12

class TransferPhase(str, Enum):
    """Custody state of an asset's most recent transfer"""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    FAILED = 'failed'

class ExternalCallFailed(Exception):
    """The registry rejected or never completed an ownership transfer.

    Only ever logged from the continuation; never raised to the caller
    of the call that issued the transfer.
    """
    def __init__(self, token_id: str, receiver_id: str, reason: Any):
        self.token_id = token_id
        self.receiver_id = receiver_id
        self.reason = reason
        super().__init__(
            f"Transfer of {token_id} to {receiver_id} failed: {reason}"
        )

@dataclass
class TransferRequest:
    """Ownership-transfer request sent to the registry"""
    receiver_id: str
    token_id: str
    approval_id: Optional[int] = None
    memo: Optional[str] = None
    deposit: int = 0
    gas: int = DEFAULT_TRANSFER_GAS
    # Contract version the transfer was issued under; never sent to the registry
    state_version: Optional[Tuple[int, int, int]] = None

    def to_params(self) -> Dict[str, Any]:
        params = asdict(self)
        del params['state_version']
        # Amounts travel as decimal strings to survive JSON number limits
        params['deposit'] = str(self.deposit)
        params['gas'] = str(self.gas)
        return params

OutcomeHook = Callable[[CallContext, TransferRequest, bool], Awaitable[None]]

class TransferCoordinator:
    """Issues ownership transfers and processes their outcome."""

    def __init__(
        self,
        registry: RegistryRPC,
        registry_account_id: str,
        gas: int = DEFAULT_TRANSFER_GAS,
        on_outcome: Optional[OutcomeHook] = None
    ) -> None:
        """Initialize the coordinator.

        Args:
            registry: RPC client of the external asset registry
            registry_account_id: Account id of the registry
            gas: Execution fee budget forwarded with every transfer
            on_outcome: Optional hook receiving each transfer's success flag
        """
        self.registry = registry
        self.registry_account_id = registry_account_id
        self.gas = gas
        self.on_outcome = on_outcome

    def transfer(
        self,
        ctx: CallContext,
        receiver_id: str,
        token_id: str,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
        deposit: int = 0,
        state_version: Optional[Tuple[int, int, int]] = None
    ) -> Promise:
        """Schedule one ownership transfer of token_id to receiver_id.

        Args:
            ctx: Context of the issuing call
            receiver_id: New owner of the token
            token_id: Token to move
            approval_id: Optional approval the registry should check
            memo: Optional memo passed to the registry
            deposit: Payment forwarded with the transfer
            state_version: Contract version the outcome belongs to

        Returns:
            The scheduled promise
        """
        request = TransferRequest(
            receiver_id=receiver_id,
            token_id=token_id,
            approval_id=approval_id,
            memo=memo,
            deposit=ensure_amount(deposit, 'deposit'),
            gas=self.gas,
            state_version=state_version
        )
        return ctx.schedule(Promise(
            description=f"{self.registry_account_id}::nft_transfer({token_id} -> {receiver_id})",
            action=partial(self._send, request),
            callback=partial(self.on_transfer_complete, request=request)
        ))

    def _send(self, request: TransferRequest) -> Any:
        return self.registry.nft_transfer(**request.to_params())

    async def on_transfer_complete(
        self,
        ctx: CallContext,
        result: PromiseResult,
        request: TransferRequest
    ) -> bool:
        """Continuation of a transfer: classify the outcome.

        Returns:
            True if the registry accepted the transfer
        """
        success = result.ok
        if success:
            logger.info(f"Transfer of {request.token_id} to {request.receiver_id} confirmed")
        else:
            error = ExternalCallFailed(request.token_id, request.receiver_id, result.error)
            logger.error(str(error))

        if self.on_outcome is not None:
            await self.on_outcome(ctx, request, success)
        return success

__all__ = [
    'DEFAULT_TRANSFER_GAS',
    'TransferPhase',
    'ExternalCallFailed',
    'TransferRequest',
    'TransferCoordinator',
    'send_payment',
]
